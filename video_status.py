"""Map upstream video-generation statuses onto the internal lifecycle."""
from typing import Any

PENDING = "pending"
PROCESSING = "processing"
COMPLETED = "completed"
FAILED = "failed"

LIFECYCLE_STATES = (PENDING, PROCESSING, COMPLETED, FAILED)
TERMINAL_STATES = frozenset({COMPLETED, FAILED})

STATUS_MAP = {
    "queued": PENDING,
    "in_progress": PROCESSING,
    "processing": PROCESSING,
    "succeeded": COMPLETED,
    "completed": COMPLETED,
    "failed": FAILED,
    "cancelled": FAILED,
}

# Coarse: one upstream path reports no percentage of its own.
STATUS_PROGRESS = {
    "queued": 0,
    "in_progress": 50,
    "processing": 50,
    "succeeded": 100,
    "completed": 100,
    "failed": 0,
}


def normalize_status(status: Any) -> str:
    """Return the lifecycle state for an upstream status, ``pending`` if unknown."""
    if not isinstance(status, str):
        return PENDING
    return STATUS_MAP.get(status, PENDING)


def progress_for_status(status: Any) -> int:
    """Estimate a percentage from the upstream status alone."""
    if not isinstance(status, str):
        return 0
    return STATUS_PROGRESS.get(status, 0)


def is_terminal(state: str) -> bool:
    return state in TERMINAL_STATES
