"""Sync engine for pysettingsync - profile upload and download."""

from .engine import (
    EMPTY_KEYBINDINGS,
    EMPTY_SETTINGS,
    DownloadResult,
    ItemOutcome,
    SyncEngine,
    UploadResult,
)

__all__ = [
    "SyncEngine",
    "UploadResult",
    "DownloadResult",
    "ItemOutcome",
    "EMPTY_SETTINGS",
    "EMPTY_KEYBINDINGS",
]
