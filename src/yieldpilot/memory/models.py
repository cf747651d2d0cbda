"""Data models for the conversation memory log."""

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

ADDRESS_PATTERN = re.compile(r"^0x[a-fA-F0-9]{40}$")


def is_valid_address(value: Any) -> bool:
    """Return True if value is ``0x`` followed by exactly 40 hex digits."""
    return isinstance(value, str) and ADDRESS_PATTERN.fullmatch(value) is not None


class ActionTag(str, Enum):
    """Tag identifying which step produced a memory record."""

    GET_USER_WALLET = "GET_USER_WALLET"
    CHANGE_USER_WALLET = "CHANGE_USER_WALLET"
    PROPOSE_PLAN = "PROPOSE_PLAN"
    CREATE_MULTISIG = "CREATE_MULTISIG"
    PROPOSE_TRANSACTION = "PROPOSE_TRANSACTION"
    MESSAGE = "MESSAGE"
    REPLY = "REPLY"
    PROCESSED = "PROCESSED"


@dataclass(frozen=True)
class MemoryRecord:
    """One entry in a room's append-only log.

    Attributes:
        room_id: Conversation the record belongs to.
        user_id: Participant the record concerns.
        agent_id: Agent that wrote or received the record.
        action: Step that produced the record.
        content: Action-specific fields.
        message_id: Id of the user message that triggered the record.
        id: Database id, None until appended. Insertion order is authoritative.
        created_at: ISO timestamp assigned by the store.
    """

    room_id: str
    user_id: str
    agent_id: str
    action: ActionTag
    content: dict[str, Any] = field(default_factory=dict)
    message_id: str | None = None
    id: int | None = None
    created_at: str | None = None

    @property
    def text(self) -> str:
        """Human-readable text carried by the record, if any."""
        return str(self.content.get("text") or "")
