"""
Failure Sink Module.

Documents the store refused are never dropped silently. If a dead-letter
file is configured, each failure is appended to it as one NDJSON line:

    {"Document": {"index": ..., "id": ..., "source": {...}}, "failure": "<cause>"}

Otherwise the failure is logged at warning level.
"""

import logging as log
from pathlib import Path
from threading import Lock
from typing import IO, Optional

from ..helpers import truncate_long_strings
from ..models.operation import FailureRecord


class FailureSink:
    """
    Append-only destination of failed write operations.

    Writing to the dead-letter file never raises: a failure to persist a
    failure is logged and swallowed, so that it cannot stop the pipeline.
    """

    def __init__(self, dlq_file: Optional[Path] = None):
        """
        Args:
            dlq_file (Optional[Path]): NDJSON dead-letter file. If None, failures
                                       are only logged.
        """
        self._dlq_file = Path(dlq_file) if dlq_file is not None else None
        self._writer: Optional[IO[str]] = None
        self._lock = Lock()
        self._records_written = 0

    @property
    def dlq_file(self) -> Optional[Path]:
        return self._dlq_file

    @property
    def records_written(self) -> int:
        """Number of failures persisted to the dead-letter file."""
        return self._records_written

    def is_open(self) -> bool:
        return self._writer is not None

    def open(self) -> None:
        """
        Opens the dead-letter file in create-or-append mode.

        Raises:
            OSError: If the file cannot be created or opened.
        """
        if self._dlq_file is None or self._writer is not None:
            return
        self._dlq_file.parent.mkdir(parents=True, exist_ok=True)
        self._writer = open(self._dlq_file, "a", encoding="utf-8")
        log.info(f"Dead-letter file opened: {self._dlq_file}")

    def record(self, failure: FailureRecord) -> None:
        """
        Persists (or logs) one failed operation.
        """
        with self._lock:
            if self._writer is not None:
                try:
                    self._writer.write(failure.to_line() + "\n")
                    self._writer.flush()
                    self._records_written += 1
                except (OSError, ValueError, TypeError) as e:
                    # ValueError: file already closed; TypeError: unserializable document
                    log.error(
                        f"DLQ failed for Document "
                        f"[{truncate_long_strings(failure.operation.to_dict())}] "
                        f"with failure [{failure.cause}]: {e}"
                    )
                return

        log.warning(
            f"Document [{truncate_long_strings(failure.operation.to_dict())}] "
            f"has failure: {failure.cause}"
        )

    def close(self) -> None:
        """
        Closes the dead-letter file. Safe to call multiple times; close
        errors are logged, not raised.
        """
        with self._lock:
            writer, self._writer = self._writer, None
        if writer is None:
            return
        try:
            writer.close()
        except Exception as e:
            log.error(f"Error closing dead-letter file '{self._dlq_file}': {e}")
