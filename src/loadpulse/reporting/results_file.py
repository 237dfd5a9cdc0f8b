"""JSON results file named by run timestamp."""

from __future__ import annotations

import json
from datetime import UTC, datetime
from pathlib import Path
from typing import TYPE_CHECKING

from loadpulse._internal.logging import get_logger

if TYPE_CHECKING:
    from loadpulse.metrics.models import AggregateStats

logger = get_logger("reporting.results_file")


def results_filename(now: datetime) -> str:
    """Return ``http_test_results_YYYYMMDD_HHMMSS.json`` for ``now`` in UTC."""
    return f"http_test_results_{now.astimezone(UTC).strftime('%Y%m%d_%H%M%S')}.json"


def save_results(
    stats: AggregateStats,
    directory: Path,
    *,
    now: datetime | None = None,
) -> Path:
    """Write ``stats`` as indented JSON into ``directory``.

    Args:
        stats: Final statistics of the run.
        directory: Output directory; created if missing.
        now: Timestamp used for the file name. Defaults to the current time.

    Returns:
        Path of the written file.

    Raises:
        OSError: If the directory or file cannot be written.
    """
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / results_filename(now or datetime.now(UTC))
    path.write_text(json.dumps(stats.to_dict(), indent=2), encoding="utf-8")
    logger.info("Results saved to %s", path)
    return path
