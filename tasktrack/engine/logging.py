"""
TaskTrack Logging — Structured JSON file-based audit logging with async queue.

Implements:
- FileLogger: one JSONL file per area, category and UTC day
- AsyncLogQueue: bounded queue drained by a single writer thread
- Log entry builders for API requests, security events, record operations
- configure_stdlib_logging(): level/format for the ``tasktrack.*`` loggers

Layout: {log_dir}/{area}/{category}/{YYYY-MM-DD}.jsonl
"""

from __future__ import annotations

import json
import logging
import threading
import time
from datetime import date, datetime, timezone
from pathlib import Path
from queue import Empty, Full, Queue
from typing import Any, Dict, Iterable, List, Optional

logger = logging.getLogger("tasktrack.engine.logging")

# Log areas and their permitted categories
AREA_CATEGORIES = {
    "api": ["requests"],
    "security": ["auth"],
    "records": ["tasks", "users"],
    "system": ["events"],
}

STDLIB_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


class LogEntry:
    """One JSONL line plus the (area, category) file it belongs in."""

    __slots__ = ("area", "category", "data")

    def __init__(self, area: str, category: str, data: Dict[str, Any]):
        self.area = area
        self.category = category
        self.data = data

    def to_json(self) -> str:
        return json.dumps(self.data, default=str, separators=(",", ":"))


class FileLogger:
    """
    Appends entries to {log_dir}/{area}/{category}/{YYYY-MM-DD}.jsonl.

    A new file starts each UTC day. Appends are serialized by one lock;
    the async queue is the only writer in a running server.
    """

    def __init__(self, log_dir: str = ".tasktrack/logs"):
        self._root = Path(log_dir)
        self._lock = threading.Lock()
        for area, categories in AREA_CATEGORIES.items():
            for category in categories:
                (self._root / area / category).mkdir(parents=True, exist_ok=True)

    @property
    def log_dir(self) -> Path:
        return self._root

    def path_for(self, area: str, category: str, day: Optional[date] = None) -> Path:
        day = day or datetime.now(timezone.utc).date()
        folder = self._root / area / category
        folder.mkdir(parents=True, exist_ok=True)
        return folder / f"{day.isoformat()}.jsonl"

    def write(self, entry: LogEntry) -> None:
        self.write_batch([entry])

    def write_batch(self, entries: Iterable[LogEntry]) -> None:
        """Append entries, opening each target file once per batch."""
        by_path: Dict[Path, List[str]] = {}
        for entry in entries:
            by_path.setdefault(self.path_for(entry.area, entry.category), []).append(entry.to_json())

        with self._lock:
            for path, lines in by_path.items():
                with path.open("a", encoding="utf-8") as fh:
                    fh.write("\n".join(lines) + "\n")


_STOP = object()


class AsyncLogQueue:
    """
    Bounded hand-off between request threads and one writer thread.

    push() never blocks; when the queue is full the entry is counted as
    dropped. The writer flushes whenever ``flush_batch_size`` entries are
    waiting or ``flush_interval_ms`` has passed since the first one arrived.
    stop() enqueues a stop marker, so everything pushed before it is written.
    """

    def __init__(
        self,
        file_logger: FileLogger,
        flush_interval_ms: int = 100,
        flush_batch_size: int = 50,
        max_queue_size: int = 10000,
    ):
        self._sink = file_logger
        self._interval = flush_interval_ms / 1000.0
        self._batch_size = max(1, flush_batch_size)
        self._queue: Queue = Queue(maxsize=max_queue_size)
        self._writer: Optional[threading.Thread] = None
        self._dropped = 0

    def start(self) -> None:
        if self._writer is not None and self._writer.is_alive():
            return
        self._writer = threading.Thread(target=self._run, name="tasktrack-log-writer", daemon=True)
        self._writer.start()
        logger.info("Log writer started")

    def stop(self, timeout: float = 5.0) -> None:
        """Write everything already queued, then end the writer thread."""
        writer, self._writer = self._writer, None
        if writer is None:
            self._write(self._take_all())
            return
        try:
            self._queue.put(_STOP, timeout=timeout)
        except Full:
            logger.warning("Log queue still full at shutdown; writer not stopped cleanly")
            return
        writer.join(timeout=timeout)
        logger.info(f"Log writer stopped ({self._dropped} entries dropped)")

    def push(self, entry: LogEntry) -> bool:
        """Queue an entry. Returns False when it had to be dropped."""
        try:
            self._queue.put_nowait(entry)
        except Full:
            self._dropped += 1
            return False
        return True

    @property
    def pending_count(self) -> int:
        return self._queue.qsize()

    @property
    def dropped_count(self) -> int:
        return self._dropped

    def _run(self) -> None:
        stopping = False
        while not stopping:
            first = self._queue.get()
            if first is _STOP:
                break
            batch = [first]
            flush_at = time.monotonic() + self._interval
            while len(batch) < self._batch_size:
                wait = flush_at - time.monotonic()
                if wait <= 0:
                    break
                try:
                    item = self._queue.get(timeout=wait)
                except Empty:
                    break
                if item is _STOP:
                    stopping = True
                    break
                batch.append(item)
            self._write(batch)

    def _take_all(self) -> List[LogEntry]:
        items = []
        while True:
            try:
                item = self._queue.get_nowait()
            except Empty:
                return items
            if item is not _STOP:
                items.append(item)

    def _write(self, batch: List[LogEntry]) -> None:
        if not batch:
            return
        try:
            self._sink.write_batch(batch)
        except OSError as e:
            logger.error(f"Failed to write {len(batch)} log entries: {e}")


# ---------------------------------------------------------------------------
# Log Entry Builders
# ---------------------------------------------------------------------------

def _base_entry(
    event: str,
    level: str,
    request_id: Optional[str] = None,
    user_id: Optional[str] = None,
    **extra: Any,
) -> Dict[str, Any]:
    entry: Dict[str, Any] = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "level": level,
        "event": event,
    }
    if request_id:
        entry["request_id"] = request_id
    if user_id is not None:
        entry["user_id"] = user_id
    entry.update(extra)
    return entry


def log_api_request(
    method: str,
    path: str,
    status_code: int,
    duration_ms: float,
    request_id: Optional[str] = None,
    user_id: Optional[str] = None,
    client_ip: Optional[str] = None,
) -> LogEntry:
    """Build an API request log entry."""
    data = _base_entry(
        event="api_request",
        level="INFO" if status_code < 400 else ("ERROR" if status_code >= 500 else "WARNING"),
        request_id=request_id,
        user_id=user_id,
        method=method,
        path=path,
        status_code=status_code,
        duration_ms=round(duration_ms, 2),
    )
    if client_ip:
        data["client_ip"] = client_ip
    return LogEntry("api", "requests", data)


def log_security_event(
    event: str,
    reason: str,
    request_id: Optional[str] = None,
    user_id: Optional[str] = None,
    resource_id: Optional[str] = None,
    level: str = "WARNING",
) -> LogEntry:
    """Build a security event entry (auth rejected, ownership denied, login)."""
    data = _base_entry(
        event=event,
        level=level,
        request_id=request_id,
        user_id=user_id,
        reason=reason,
    )
    if resource_id:
        data["resource_id"] = resource_id
    return LogEntry("security", "auth", data)


def log_record_operation(
    operation: str,
    record_type: str,
    record_id: str,
    user_id: Optional[str] = None,
    request_id: Optional[str] = None,
    fields_changed: Optional[List[str]] = None,
) -> LogEntry:
    """Build a record create/update/delete entry."""
    data = _base_entry(
        event=f"record_{operation}",
        level="INFO",
        request_id=request_id,
        user_id=user_id,
        operation=operation,
        record_id=record_id,
    )
    if fields_changed:
        data["fields_changed"] = sorted(fields_changed)
    category = record_type if record_type in AREA_CATEGORIES["records"] else "tasks"
    return LogEntry("records", category, data)


def log_system_event(
    event: str,
    level: str = "INFO",
    details: Optional[Dict[str, Any]] = None,
) -> LogEntry:
    """Build a system event entry (startup, shutdown, config)."""
    data = _base_entry(event=event, level=level)
    if details:
        data["details"] = details
    return LogEntry("system", "events", data)


# ---------------------------------------------------------------------------
# Process-wide Queue
# ---------------------------------------------------------------------------

_active_queue: Optional[AsyncLogQueue] = None


def configure_stdlib_logging(level: str = "INFO") -> None:
    """Configure the ``tasktrack`` logger hierarchy once."""
    root = logging.getLogger("tasktrack")
    root.setLevel(level.upper())
    if not root.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(STDLIB_FORMAT))
        root.addHandler(handler)


def init_logging(
    log_dir: str = ".tasktrack/logs",
    flush_interval_ms: int = 100,
    flush_batch_size: int = 50,
    max_queue_size: int = 10000,
) -> AsyncLogQueue:
    """Start the process-wide queue. A second call returns the running one."""
    global _active_queue
    if _active_queue is not None:
        return _active_queue
    _active_queue = AsyncLogQueue(
        FileLogger(log_dir=log_dir),
        flush_interval_ms=flush_interval_ms,
        flush_batch_size=flush_batch_size,
        max_queue_size=max_queue_size,
    )
    _active_queue.start()
    return _active_queue


def get_log_queue() -> Optional[AsyncLogQueue]:
    return _active_queue


def log(entry: LogEntry) -> bool:
    """
    Hand an entry to the running queue without blocking.

    With no queue running (CLI, unit tests) the entry is emitted on the
    stdlib logger at DEBUG instead and False is returned.
    """
    if _active_queue is None:
        logger.debug("%s/%s %s", entry.area, entry.category, entry.to_json())
        return False
    return _active_queue.push(entry)


def shutdown_logging() -> None:
    """Write out pending entries and stop the queue."""
    global _active_queue
    queue, _active_queue = _active_queue, None
    if queue is not None:
        queue.stop()
