"""
Storage module - Database operations.
"""

from voicenotes.services.storage.database import (
    Base,
    close_db,
    get_engine,
    get_session,
    init_db,
    reset_engine,
)
from voicenotes.services.storage.models_db import CredentialEntry, Recording
from voicenotes.services.storage.repository import CredentialRepository, RecordingRepository

__all__ = [
    "Base",
    "CredentialEntry",
    "CredentialRepository",
    "Recording",
    "RecordingRepository",
    "close_db",
    "get_engine",
    "get_session",
    "init_db",
    "reset_engine",
]
