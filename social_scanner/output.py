"""Persist scan results as a JSON report."""

from __future__ import annotations

import json
import time
from pathlib import Path
from typing import Optional, Sequence

from .errors import Outcome, OutputError
from .result import ScanResult
from .utils import get_logger

logger = get_logger(__name__)


def build_filename(username: Optional[str] = None, timestamp_ms: Optional[int] = None) -> str:
    if timestamp_ms is None:
        timestamp_ms = int(time.time() * 1000)
    return f"{username}_{timestamp_ms}.json" if username else f"{timestamp_ms}.json"


def write_results(
    directory: str,
    results: Sequence[ScanResult],
    username: Optional[str] = None,
    timestamp_ms: Optional[int] = None,
) -> Outcome[Path]:
    """Write ``results`` under ``directory`` and return the file path or the failure."""

    output_file = Path(directory) / build_filename(username, timestamp_ms)
    payload = json.dumps([result.to_dict() for result in results], indent=2, ensure_ascii=False)
    try:
        output_file.parent.mkdir(parents=True, exist_ok=True)
        with output_file.open("w", encoding="utf-8") as handle:
            handle.write(payload)
            handle.write("\n")
    except OSError as exc:
        logger.error("output_failed", path=str(output_file), error=str(exc))
        return Outcome(error=OutputError(f"Could not write report to {output_file}: {exc}"))

    logger.info("output_written", path=str(output_file), results=len(results))
    return Outcome(value=output_file)
