"""
Upload pipeline

Collects picked or dropped files into upload items and drives each item
through optional spreadsheet conversion and the GitHub contents upsert.
"""

from repodrop.uploads.collector import EntryCollector, build_items
from repodrop.uploads.items import ItemStatus, UploadItem, UploadSession
from repodrop.uploads.orchestrator import SubmissionResult, UploadOrchestrator

__all__ = [
    "EntryCollector",
    "build_items",
    "ItemStatus",
    "UploadItem",
    "UploadSession",
    "SubmissionResult",
    "UploadOrchestrator",
]
