"""Base action interface.

An action is one conversation step. Its guard decides from the incoming
message and the derived room state whether it may run this turn; its
handler performs at most one side-effecting external call, appends to
the memory log and produces replies.
"""

from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any

from ..memory import ActionTag, MemoryRecord, MemoryStore, RoomState

PASS_THROUGH_TAG = "CONTINUE"


@dataclass(frozen=True)
class Message:
    """An incoming user message.

    Attributes:
        id: Unique message id, used for dedupe.
        room_id: Conversation the message belongs to.
        user_id: Sender.
        agent_id: Agent receiving the message.
        text: Message text.
        tag: Upstream action tag; ``CONTINUE`` marks a pass-through
            continuation that no action may consume.
    """

    id: str
    room_id: str
    user_id: str
    agent_id: str
    text: str
    tag: str | None = None

    @property
    def is_pass_through(self) -> bool:
        return self.tag == PASS_THROUGH_TAG


@dataclass
class Reply:
    """User-visible output of a handler."""

    text: str
    action: str | None = None
    fields: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"text": self.text}
        if self.action:
            data["action"] = self.action
        data.update(self.fields)
        return data


ReplyCallback = Callable[[Reply], Awaitable[None]]


@dataclass
class ActionResult:
    """Outcome of a handler.

    Attributes:
        handled: True when the turn completed normally, including the
            "nothing resolved, asked the user" outcome.
        replies: Everything sent to the user.
        follow_up: Action to try next in the same turn, if its guard passes.
        error: Short description of a failure, for logs.
    """

    handled: bool
    replies: list[Reply] = field(default_factory=list)
    follow_up: ActionTag | None = None
    error: str | None = None


@dataclass
class ActionContext:
    """Per-turn context handed to guards and handlers."""

    message: Message
    state: RoomState
    store: MemoryStore
    recent: list[MemoryRecord]

    def record(
        self,
        action: ActionTag,
        content: dict[str, Any],
        user_id: str | None = None,
    ) -> MemoryRecord:
        """Append a record for this room, attributed to the current message."""
        return self.store.append(
            MemoryRecord(
                room_id=self.message.room_id,
                user_id=user_id or self.message.user_id,
                agent_id=self.message.agent_id,
                action=action,
                content=content,
                message_id=self.message.id,
            )
        )

    def mark_processed(self, by: ActionTag) -> None:
        """Record that the current message has been consumed by an action."""
        self.record(ActionTag.PROCESSED, {"message_id": self.message.id, "by": by.value})
        self.state.processed_ids.add(self.message.id)


class Action(ABC):
    """Base interface for all conversation actions."""

    @property
    @abstractmethod
    def name(self) -> ActionTag:
        """Tag written on this action's records."""
        ...

    @property
    @abstractmethod
    def description(self) -> str:
        """What the action does."""
        ...

    @abstractmethod
    def validate(self, message: Message, state: RoomState) -> bool:
        """Guard: may this action consume the message?"""
        ...

    @abstractmethod
    async def handle(self, ctx: ActionContext) -> ActionResult:
        """Run the step and produce replies."""
        ...

    def reply(self, text: str, **fields: Any) -> Reply:
        """Build a reply tagged with this action."""
        return Reply(text=text, action=self.name.value, fields=fields)
