#!/usr/bin/env python3
"""
Voice Notes batch runner

Transcribes pending recordings (and publishes map notes when enabled)
in the foreground, printing one line per progress event.

Usage:
    python scripts/process_recordings.py                   # all NOT_STARTED recordings
    python scripts/process_recordings.py --recording-id 42 # a single recording
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path

# Ensure project root is on sys.path for ``voicenotes`` imports
PROJECT_ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from voicenotes.core.config import get_settings  # noqa: E402
from voicenotes.core.exceptions import RecordingNotFoundError  # noqa: E402
from voicenotes.core.models import BatchCompleteEvent, BatchEvent  # noqa: E402
from voicenotes.services.events import Subscription, get_broadcaster  # noqa: E402
from voicenotes.services.orchestrator import BatchOrchestrator, resolve_recording_id  # noqa: E402
from voicenotes.services.storage.database import close_db, init_db  # noqa: E402

logger = logging.getLogger(__name__)


def _print_event(event: BatchEvent) -> None:
    if isinstance(event, BatchCompleteEvent):
        print(f"  DONE  processed {event.total} recording(s)")
    else:
        print(f"  [{event.current}/{event.total}]  {event.filename}: {event.status}")


async def _print_events(subscription: Subscription) -> None:
    async for event in subscription:
        _print_event(event)


async def run(recording_id: int | None) -> int:
    """Run one batch and return the process exit code."""
    await init_db()
    subscription = get_broadcaster().subscribe()
    printer = asyncio.create_task(_print_events(subscription))
    orchestrator = BatchOrchestrator()
    try:
        if recording_id is not None:
            await orchestrator.process_one(recording_id)
        else:
            await orchestrator.process_all()
    except RecordingNotFoundError as exc:
        print(f"  ERROR  {exc.detail}", file=sys.stderr)
        return 1
    finally:
        printer.cancel()
        subscription.close()
        orchestrator.close()
        for event in subscription.drain():
            _print_event(event)
        await close_db()
    return 0


def main() -> int:
    """Entry point with CLI argument parsing."""
    parser = argparse.ArgumentParser(description="Transcribe and annotate pending voice notes")
    parser.add_argument(
        "--recording-id",
        type=int,
        default=None,
        help="Process only this recording (0 or omitted processes all pending)",
    )
    args = parser.parse_args()

    logging.basicConfig(level=get_settings().log_level.upper())
    return asyncio.run(run(resolve_recording_id(args.recording_id)))


if __name__ == "__main__":
    sys.exit(main())
