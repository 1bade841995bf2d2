"""
Contact export import.

Parses an uploaded LinkedIn data export (a Connections.csv, or the full zip
archive containing one), turns every email / phone into a keyed contact
token and deletes the upload. Raw identifiers are never persisted.
"""

from __future__ import annotations

import asyncio
import csv
import io
import re
import zipfile
from collections.abc import Iterable

from app.config import settings
from app.features.proximity_graph.domain import ContactToken, InvalidArgument, TokenKind
from app.features.proximity_graph.repository import ContactTokenRepository
from app.infrastructure.observability.logging import get_logger
from app.security.hashing import hash_email, hash_phone, normalize_email, normalize_phone
from app.services.object_storage import ObjectStorageClient, object_storage

logger = get_logger(__name__)

CONNECTIONS_ENTRY_RE = re.compile(r"Connections\.csv$", re.IGNORECASE)
EMAIL_COLUMNS = ("Email Address", "Email")
PHONE_COLUMNS = ("Phone Number",)
HEADER_COLUMNS = frozenset(EMAIL_COLUMNS + PHONE_COLUMNS + ("First Name", "Last Name"))


def upload_owner(file_path: str) -> str:
    """Owner segment of `<prefix>/<owner>/...`; raises InvalidArgument otherwise."""
    prefix = re.escape(settings.CONTACT_UPLOAD_PREFIX.strip("/"))
    match = re.match(rf"^{prefix}/([^/]+)/", file_path)
    if not match:
        raise InvalidArgument("Invalid file path format")
    return match.group(1)


def extract_csv_payloads(file_path: str, payload: bytes) -> list[bytes]:
    """CSV documents contained in an upload; unknown extensions yield none."""
    lowered = file_path.lower()
    if lowered.endswith(".zip"):
        try:
            with zipfile.ZipFile(io.BytesIO(payload)) as archive:
                return [
                    archive.read(info)
                    for info in archive.infolist()
                    if not info.is_dir() and CONNECTIONS_ENTRY_RE.search(info.filename)
                ]
        except zipfile.BadZipFile as exc:
            raise InvalidArgument("Upload is not a valid zip archive") from exc
    if lowered.endswith(".csv"):
        return [payload]
    return []


def parse_connection_rows(document: bytes) -> list[dict[str, str]]:
    """
    Rows of a connections CSV as dicts.

    LinkedIn exports start with a few "Notes:" lines before the real header,
    so everything above the first row naming a known column is skipped.
    """
    text = document.decode("utf-8-sig", errors="replace")
    reader = csv.reader(io.StringIO(text))

    header: list[str] | None = None
    rows: list[dict[str, str]] = []
    for raw in reader:
        if not any(cell.strip() for cell in raw):
            continue
        if header is None:
            cells = [cell.strip() for cell in raw]
            if HEADER_COLUMNS.intersection(cells):
                header = cells
            continue
        rows.append({name: value for name, value in zip(header, raw)})
    return rows


def _first_value(row: dict[str, str], columns: Iterable[str]) -> str:
    for column in columns:
        value = (row.get(column) or "").strip()
        if value:
            return value
    return ""


def tokens_for_rows(owner_user_id: str, rows: Iterable[dict[str, str]]) -> set[ContactToken]:
    tokens: set[ContactToken] = set()
    for row in rows:
        email = normalize_email(_first_value(row, EMAIL_COLUMNS))
        if email:
            tokens.add(ContactToken(owner_user_id, hash_email(email), TokenKind.EMAIL))

        phone = normalize_phone(_first_value(row, PHONE_COLUMNS))
        if phone:
            tokens.add(ContactToken(owner_user_id, hash_phone(phone), TokenKind.PHONE))
    return tokens


def _tokens_from_upload(owner_user_id: str, file_path: str, payload: bytes) -> set[ContactToken] | None:
    documents = extract_csv_payloads(file_path, payload)
    if not documents:
        return None

    tokens: set[ContactToken] = set()
    for document in documents:
        tokens |= tokens_for_rows(owner_user_id, parse_connection_rows(document))
    return tokens


class ContactImportService:
    def __init__(self, storage: ObjectStorageClient | None = None, tokens=ContactTokenRepository):
        self._storage = storage or object_storage
        self._tokens = tokens

    async def submit_contact_export(
        self, caller_id: str, file_path: str | None, bucket_name: str | None
    ) -> dict:
        file_path = (file_path or "").strip()
        bucket_name = (bucket_name or "").strip()
        if not file_path or not bucket_name:
            raise InvalidArgument("filePath and bucketName are required")

        owner = upload_owner(file_path)
        if owner != caller_id:
            raise InvalidArgument("File path does not belong to the caller")

        payload = await self._storage.download(bucket_name, file_path)
        tokens = await asyncio.to_thread(_tokens_from_upload, caller_id, file_path, payload)

        if tokens is None:
            logger.info("Upload contained no connections file", user_id=caller_id, file_path=file_path)
            return {"tokens_written": 0}

        written = await self._tokens.upsert_tokens(tokens)
        await self._storage.delete(bucket_name, file_path, ignore_not_found=True)

        logger.info(
            "Contact export imported",
            user_id=caller_id,
            tokens_written=written,
            email_tokens=sum(1 for t in tokens if t.kind is TokenKind.EMAIL),
            phone_tokens=sum(1 for t in tokens if t.kind is TokenKind.PHONE),
        )
        return {"tokens_written": written}


contact_import_service = ContactImportService()
