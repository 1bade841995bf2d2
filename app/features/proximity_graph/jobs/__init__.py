"""
Job runners for the proximity graph feature.
"""

from .ephemeral_reaper_job import run_ephemeral_reaper_once, start_ephemeral_reaper_scheduler
from .graph_build_job import run_graph_build_once, start_graph_build_scheduler

__all__ = [
    "run_ephemeral_reaper_once",
    "run_graph_build_once",
    "start_ephemeral_reaper_scheduler",
    "start_graph_build_scheduler",
]
