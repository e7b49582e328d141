"""Diagnostic snapshots of the movements fetched by each sync run.

Snapshots are never read back; a failed write is logged and ignored.
"""

import json
import logging
import re
from collections.abc import Sequence
from datetime import datetime
from pathlib import Path

from pydantic_core import PydanticSerializationError

from ..schemas import SourceMovement

logger = logging.getLogger(__name__)


def snapshot_filename(iban: str, full_sync: bool, timestamp: datetime) -> str:
    """Build ``sync-<iban>-<full|incremental>-<timestamp>.json``.

    Whitespace is stripped from the IBAN; the timestamp is ISO 8601 with
    ``:`` and ``.`` replaced so the name is valid on every filesystem.
    """
    sanitized_iban = re.sub(r"\s", "", iban)
    mode = "full" if full_sync else "incremental"
    stamp = re.sub(r"[:.]", "-", timestamp.isoformat())
    return f"sync-{sanitized_iban}-{mode}-{stamp}.json"


def save_sync_snapshot(
    directory: Path,
    iban: str,
    movements: Sequence[SourceMovement],
    full_sync: bool,
    now: datetime | None = None,
) -> Path | None:
    """Write the raw movements of one run to ``directory``.

    Returns:
        Path | None: The written file, or None when the write failed
    """
    now = now or datetime.now()
    path = directory / snapshot_filename(iban, full_sync, now)
    try:
        payload = {
            "sync_time": now.isoformat(),
            "iban": iban,
            "full_sync": full_sync,
            "total_movements": len(movements),
            "movements": [
                m.model_dump(mode="json", by_alias=True) for m in movements
            ],
        }
        directory.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(payload, indent=2), encoding="utf-8")
    except (OSError, TypeError, ValueError, PydanticSerializationError) as e:
        logger.error(f"Failed to save debug file {path}: {e}")
        return None

    logger.debug(f"Debug data saved to {path}")
    return path


__all__ = ["save_sync_snapshot", "snapshot_filename"]
