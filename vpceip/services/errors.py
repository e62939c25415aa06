"""Failed-operation log — recent adapter errors keyed by resource and operation.

Entries are held in an in-memory ring buffer. Once attached to a file, every
new entry is also appended there as one JSON line, so failures from earlier
CLI runs can be listed with ``vpceip errors``.
"""

from __future__ import annotations

import json
import logging
import time
from dataclasses import asdict, dataclass, field
from pathlib import Path
from threading import Lock
from typing import Optional

logger = logging.getLogger(__name__)


@dataclass
class OperationError:
    """One failed lifecycle call on one resource."""

    resource_type: str
    operation: str
    error_type: str
    message: str
    resource_id: str = ""
    timestamp: float = field(default_factory=time.time)


class ErrorTracker:
    def __init__(self, max_entries: int = 200):
        self._entries: list[OperationError] = []
        self._max = max_entries
        self._lock = Lock()
        self._path: Optional[Path] = None

    @property
    def path(self) -> Optional[Path]:
        return self._path

    def attach(self, path: Path) -> None:
        """Mirror new entries to *path* and load the ones it already holds."""
        if path == self._path:
            return
        loaded: list[OperationError] = []
        if path.exists():
            for line in path.read_text().splitlines():
                if not line.strip():
                    continue
                try:
                    loaded.append(OperationError(**json.loads(line)))
                except (ValueError, TypeError):
                    logger.warning("Skipping malformed entry in %s", path)
        with self._lock:
            self._path = path
            self._entries = (loaded + self._entries)[-self._max:]

    def detach(self) -> None:
        with self._lock:
            self._path = None

    def record(
        self,
        resource_type: str,
        operation: str,
        error: Exception,
        resource_id: str = "",
    ) -> OperationError:
        entry = OperationError(
            resource_type=resource_type,
            operation=operation,
            error_type=type(error).__name__,
            message=str(error),
            resource_id=resource_id,
        )
        with self._lock:
            self._entries.append(entry)
            if len(self._entries) > self._max:
                self._entries = self._entries[-self._max:]
            path = self._path

        if path is not None:
            path.parent.mkdir(parents=True, exist_ok=True)
            with path.open("a") as f:
                f.write(json.dumps(asdict(entry)) + "\n")
        return entry

    def recent(
        self,
        resource_id: Optional[str] = None,
        operation: Optional[str] = None,
        limit: int = 20,
    ) -> list[OperationError]:
        """Newest first, optionally narrowed to one resource and/or operation."""
        with self._lock:
            entries = list(reversed(self._entries))
        if resource_id:
            entries = [e for e in entries if e.resource_id == resource_id]
        if operation:
            entries = [e for e in entries if e.operation == operation]
        return entries[:limit]

    def clear(self) -> None:
        """Forget all entries, truncating the attached file."""
        with self._lock:
            self._entries.clear()
            path = self._path
        if path is not None and path.exists():
            path.write_text("")

    @property
    def count(self) -> int:
        return len(self._entries)


error_tracker = ErrorTracker()
