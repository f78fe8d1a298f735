"""Run the Voice Notes API server: ``python -m voicenotes``."""

from voicenotes.core.config import get_settings


def run_server(host: str | None = None, port: int | None = None) -> None:
    """Run the web server on the configured bind address."""
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "voicenotes.api.app:app",
        host=host or settings.app_host,
        port=port or settings.app_port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    run_server()
