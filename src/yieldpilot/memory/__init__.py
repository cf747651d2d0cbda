"""Append-only conversation memory."""

from .models import ADDRESS_PATTERN, ActionTag, MemoryRecord, is_valid_address
from .state import RoomState
from .store import MemoryStore

__all__ = [
    "ADDRESS_PATTERN",
    "ActionTag",
    "MemoryRecord",
    "MemoryStore",
    "RoomState",
    "is_valid_address",
]
