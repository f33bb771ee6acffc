"""TaskTrack Stats Aggregator — per-principal task counts, computed on every call."""

from __future__ import annotations

from tasktrack.schemas import TaskStats
from tasktrack.services.task_store import TaskStore

STATUS_FIELDS = {
    "pending": "pending",
    "in-progress": "in_progress",
    "completed": "completed",
}


def summarize(store: TaskStore, principal_id: str) -> TaskStats:
    """Count the principal's tasks by status, plus high-priority ones."""
    counts = {"total": 0, "pending": 0, "in_progress": 0, "completed": 0, "high_priority": 0}
    for status, priority, count in store.tally(principal_id):
        counts["total"] += count
        counts[STATUS_FIELDS[status]] += count
        if priority == "high":
            counts["high_priority"] += count
    return TaskStats(**counts)
