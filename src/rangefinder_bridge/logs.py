"""NDJSON status log with sequence numbers and daily rotation."""

from __future__ import annotations

import json
import time
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional, TextIO


class NdjsonLogger:
    """Writes structured bridge status records, one JSON object per line."""

    def __init__(self, log_dir: str, file_prefix: str = "bridge") -> None:
        self.log_dir = Path(log_dir)
        self.file_prefix = file_prefix

        # Ensure log directory exists
        self.log_dir.mkdir(parents=True, exist_ok=True)

        # State tracking
        self._seq = 0
        self._current_file: Optional[TextIO] = None
        self._current_date: Optional[str] = None
        self._start_time_ns = time.monotonic_ns()

        self._rotate_if_needed()

    @property
    def current_path(self) -> Optional[Path]:
        if self._current_date is None:
            return None
        return self.log_dir / f"{self.file_prefix}_{self._current_date}.ndjson"

    def log(self, msg_type: str, msg: str, data: Optional[Dict[str, Any]] = None) -> None:
        """Log a structured message to NDJSON."""
        self._rotate_if_needed()

        self._seq += 1

        ts_ms = (time.monotonic_ns() - self._start_time_ns) / 1_000_000

        record = {
            "seq": self._seq,
            "type": msg_type,
            "ts_ms": round(ts_ms, 3),
            "msg": msg,
        }
        if data is not None:
            record["data"] = data

        # Add human-readable timestamp
        record["hms"] = datetime.now().strftime("%H:%M:%S.%f")[:-3]

        if self._current_file:
            json.dump(record, self._current_file, separators=(",", ":"), ensure_ascii=False)
            self._current_file.write("\n")
            self._current_file.flush()

    def event(self, msg: str, data: Optional[Dict[str, Any]] = None) -> None:
        """Log an event message."""
        self.log("event", msg, data=data)

    def status(self, msg: str, data: Optional[Dict[str, Any]] = None) -> None:
        """Log a status message."""
        self.log("status", msg, data=data)

    def error(self, msg: str, data: Optional[Dict[str, Any]] = None) -> None:
        """Log an error message."""
        self.log("error", msg, data=data)

    def close(self) -> None:
        """Close the current log file."""
        if self._current_file:
            self._current_file.close()
            self._current_file = None

    def _rotate_if_needed(self) -> None:
        """Rotate log file if date has changed."""
        current_date = datetime.now().strftime("%Y%m%d")

        if self._current_date != current_date:
            if self._current_file:
                self._current_file.close()

            log_path = self.log_dir / f"{self.file_prefix}_{current_date}.ndjson"
            self._current_file = log_path.open("a", encoding="utf-8", buffering=1)
            self._current_date = current_date

    def __enter__(self) -> NdjsonLogger:
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()


class NullLogger:
    """Status logger used when NDJSON logging is disabled."""

    def log(self, msg_type: str, msg: str, data: Optional[Dict[str, Any]] = None) -> None:
        pass

    def event(self, msg: str, data: Optional[Dict[str, Any]] = None) -> None:
        pass

    def status(self, msg: str, data: Optional[Dict[str, Any]] = None) -> None:
        pass

    def error(self, msg: str, data: Optional[Dict[str, Any]] = None) -> None:
        pass

    def close(self) -> None:
        pass
