"""
Check-in Leaderboard - a QR code driven check-in scoreboard.

This package provides:
- Entry store and scan ledger on SQLite (aiosqlite)
- Scan engine crediting at most one scan per origin and entry
- QR code check-in artifacts with the entry name underneath
- Web interface and JSON API with an optional admin password
"""

from .artifacts import QRArtifact, QRArtifactGenerator
from .board import CheckinBoardSystem
from .config import CheckinConfig
from .database import DatabaseManager
from .entries import EntryStore
from .errors import (
    CheckinError,
    DuplicateOrigin,
    EntryNotFound,
    InvalidInput,
    NotPrivileged,
    StorageUnavailable,
)
from .ledger import ScanLedger
from .models import Entry, ScanRecord
from .scanning import ScanEngine
from .web_handlers import WebHandlers

__version__ = "1.0.0"
__author__ = "Check-in Leaderboard Contributors"

__all__ = [
    "CheckinBoardSystem",
    "CheckinConfig",
    "CheckinError",
    "DatabaseManager",
    "DuplicateOrigin",
    "Entry",
    "EntryNotFound",
    "EntryStore",
    "InvalidInput",
    "NotPrivileged",
    "QRArtifact",
    "QRArtifactGenerator",
    "ScanEngine",
    "ScanLedger",
    "ScanRecord",
    "StorageUnavailable",
    "WebHandlers",
]
