"""
Interactive entry points for the proximity graph feature.
"""

from .contact_import_service import ContactImportService, contact_import_service
from .content_service import ContentService, content_service
from .short_range_service import ShortRangeService, short_range_service

__all__ = [
    "ContactImportService",
    "ContentService",
    "ShortRangeService",
    "contact_import_service",
    "content_service",
    "short_range_service",
]
