"""
Application configuration via pydantic-settings.

Loads values from .env file with sensible defaults for local development.
Use ``get_settings()`` to obtain the cached singleton instance.
"""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Voice Notes service settings loaded from environment / .env file.

    All settings can be overridden via environment variables or a `.env` file.
    Field names map directly to env var names (case-insensitive).

    Attributes:
        stt_provider: Speech-to-text backend ("local" for faster-whisper, "google").
        transcription_timeout_seconds: Ceiling for a single recording's transcription.
        annotation_enabled: Publish a map note for each transcribed recording.
        annotation_text_max_length: Note text is truncated to this many characters.
        database_url: Async SQLAlchemy connection string for SQLite.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",  # Silently ignore unrecognized env vars
    )

    # --- Speech-to-text ---
    # "local"/"whisper" runs faster-whisper in-process, "google" calls Cloud Speech-to-Text
    stt_provider: str = "local"
    whisper_model: str = "base"  # Model size: tiny, base, small, medium, large-v3
    whisper_default_language: str = ""  # Empty = auto-detect; ISO 639-1 code e.g. "en"

    # Google Cloud Speech-to-Text settings
    google_credentials_path: str = ""  # Service-account JSON; empty = application default
    google_language_code: str = "en-US"
    google_sample_rate_hertz: int = 44100

    # --- Batch processing ---
    transcription_timeout_seconds: float = 120.0  # Per-recording ceiling

    # --- Map annotations (OpenStreetMap notes) ---
    annotation_enabled: bool = False
    annotation_timeout_seconds: float = 30.0
    annotation_text_max_length: int = 2000
    osm_api_base_url: str = "https://api.openstreetmap.org/"
    credential_provider: str = "osm"  # Scope key for stored credential rows

    # --- Application ---
    app_host: str = "0.0.0.0"  # Bind address for the FastAPI server
    app_port: int = 8000
    log_level: str = "INFO"  # Python logging level

    # --- Storage ---
    # Paths are relative to the project root; absolute paths also supported
    database_url: str = "sqlite+aiosqlite:///data/voicenotes.db"
    recordings_dir: str = "data/recordings"  # Captured audio storage directory


@lru_cache
def get_settings() -> Settings:
    """Return a cached Settings singleton.

    Uses ``functools.lru_cache`` so the .env file is read only once.
    Subsequent calls return the same ``Settings`` instance.

    Returns:
        Settings: The application-wide configuration object.
    """
    return Settings()
