"""
SQLAlchemy ORM models for the Voice Notes schema.

Tables: ``recordings``, ``credential_entries``.
"""

from datetime import UTC, datetime

from sqlalchemy import Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from voicenotes.core.models import AnnotationStatus, TranscriptionStatus
from voicenotes.services.storage.database import Base


def _utcnow() -> datetime:
    return datetime.now(UTC)


class Recording(Base):
    """One captured audio note with its location and processing state."""

    __tablename__ = "recordings"
    __table_args__ = (Index("ix_recordings_status_timestamp", "transcription_status", "timestamp"),)

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    filename: Mapped[str] = mapped_column(String(255))
    filepath: Mapped[str] = mapped_column(String(1024))
    timestamp: Mapped[datetime] = mapped_column(default=_utcnow)
    latitude: Mapped[float] = mapped_column()
    longitude: Mapped[float] = mapped_column()

    transcription_status: Mapped[str] = mapped_column(
        String(20), default=TranscriptionStatus.NOT_STARTED.value
    )
    transcription_result: Mapped[str] = mapped_column(Text, default="")
    used_fallback: Mapped[bool] = mapped_column(default=False)
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)

    annotation_status: Mapped[str] = mapped_column(
        String(20), default=AnnotationStatus.NOT_ATTEMPTED.value
    )
    annotation_result: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(default=_utcnow)

    def __repr__(self) -> str:
        return (
            f"<Recording id={self.id} transcription={self.transcription_status!r} "
            f"annotation={self.annotation_status!r}>"
        )


class CredentialEntry(Base):
    """One key/value field of a stored credential, scoped by provider."""

    __tablename__ = "credential_entries"

    provider: Mapped[str] = mapped_column(String(50), primary_key=True)
    key: Mapped[str] = mapped_column(String(50), primary_key=True)
    value: Mapped[str] = mapped_column(Text)
    updated_at: Mapped[datetime] = mapped_column(default=_utcnow)

    def __repr__(self) -> str:
        return f"<CredentialEntry provider={self.provider!r} key={self.key!r}>"
