"""Ephemeral reading session state."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class SessionState(Enum):
    IDLE = "idle"
    TRACKING = "tracking"


@dataclass
class ReadingSession:
    """Time accumulated while a book is open. Never persisted."""

    book_id: int
    started_at: datetime
    elapsed_seconds: int = 0
