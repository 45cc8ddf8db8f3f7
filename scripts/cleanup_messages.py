#!/usr/bin/env python3
"""
CLI utility to delete received messages older than the retention period.

Usage:
    uv run scripts/cleanup_messages.py --days 30
    uv run scripts/cleanup_messages.py --days 7 --project my-project
"""

import argparse
import json
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from app.messages.services.message_repository import PostgresMessageRepository
from gatekit_core.config import settings
from gatekit_core.logging import setup_logging


def cleanup_messages(days: int, project_id: str | None = None, repository=None) -> dict:
    """Delete received messages older than `days` days, for one project or all."""
    if days < 1:
        raise ValueError("--days must be at least 1")

    repository = repository or PostgresMessageRepository()
    cutoff = datetime.now(timezone.utc) - timedelta(days=days)
    deleted = repository.delete_received_before(project_id, cutoff)
    return {
        "project": project_id or "*",
        "cutoff": cutoff.isoformat(),
        "deleted_count": deleted,
    }


def main(argv=None):
    parser = argparse.ArgumentParser(description="Cleanup old received messages")
    parser.add_argument(
        "--days",
        type=int,
        default=settings.MESSAGE_RETENTION_DAYS,
        help="Delete messages older than this many days (defaults to settings.MESSAGE_RETENTION_DAYS)",
    )
    parser.add_argument(
        "--project",
        default=None,
        help="Only clean up this project (defaults to all projects)",
    )
    args = parser.parse_args(argv)

    # stdout carries the JSON summary
    setup_logging(sink=sys.stderr)
    result = cleanup_messages(args.days, args.project)
    print(json.dumps(result, indent=2, default=str))


if __name__ == "__main__":
    main()
