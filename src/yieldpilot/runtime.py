"""Per-turn runtime: record the message, pick an action, run it, record replies."""

import logging
import time
from dataclasses import dataclass, field

from .actions import (
    Action,
    ActionContext,
    ActionRegistry,
    ActionResult,
    Message,
    Reply,
    ReplyCallback,
)
from .logging import JSONLLogger, get_logger
from .memory import ActionTag, MemoryRecord, MemoryStore, RoomState

logger = logging.getLogger(__name__)


@dataclass
class TurnResult:
    """Outcome of one user turn.

    Attributes:
        action: First action that ran, or None when no guard accepted the message.
        handled: Whether every action that ran completed normally.
        replies: Replies sent to the user, in order.
        actions: Every action that ran, including follow-ups.
    """

    action: ActionTag | None
    handled: bool
    replies: list[Reply] = field(default_factory=list)
    actions: list[ActionTag] = field(default_factory=list)


class AgentRuntime:
    """Drives one room turn at a time against the shared memory log.

    No state is held between turns: each turn re-reads the room's records
    and derives a fresh RoomState.
    """

    def __init__(
        self,
        registry: ActionRegistry,
        store: MemoryStore,
        recent_messages: int = 10,
        event_logger: JSONLLogger | None = None,
    ) -> None:
        self.registry = registry
        self.store = store
        self.recent_messages = recent_messages
        self.events = event_logger or get_logger()

    def room_state(self, room_id: str) -> RoomState:
        """Derive the current state of a room from its records."""
        return RoomState.from_records(self.store.query_by_room(room_id))

    async def process(self, message: Message, callback: ReplyCallback | None = None) -> TurnResult:
        """Handle one incoming message."""
        self.events.log_turn_start(message.room_id, message.id, message.text)
        self.store.append(
            MemoryRecord(
                room_id=message.room_id,
                user_id=message.user_id,
                agent_id=message.agent_id,
                action=ActionTag.MESSAGE,
                content={"text": message.text, "tag": message.tag},
                message_id=message.id,
            )
        )

        state = self.room_state(message.room_id)
        action = self.registry.select(message, state)
        if action is None:
            logger.debug("No action accepted message %s", message.id)
            self.events.log_turn_stop(message.room_id, message.id)
            return TurnResult(action=None, handled=False)

        turn = TurnResult(action=action.name, handled=True)
        while action is not None:
            result = await self._run(action, message, state, callback)
            turn.actions.append(action.name)
            turn.handled = turn.handled and result.handled
            for reply in result.replies:
                turn.replies.append(reply)

            action = None
            if result.handled and result.follow_up is not None:
                candidate = self.registry.get(result.follow_up)
                state = self.room_state(message.room_id)
                if (
                    candidate is not None
                    and candidate.name not in turn.actions
                    and candidate.validate(message, state)
                ):
                    action = candidate

        self.events.log_turn_stop(
            message.room_id,
            message.id,
            action=turn.action.value,
            handled=turn.handled,
            replies=len(turn.replies),
        )
        return turn

    async def _run(
        self,
        action: Action,
        message: Message,
        state: RoomState,
        callback: ReplyCallback | None,
    ) -> ActionResult:
        self.events.log_action_selected(message.room_id, message.id, action.name.value)
        ctx = ActionContext(
            message=message,
            state=state,
            store=self.store,
            recent=self.store.recent_messages(message.room_id, self.recent_messages),
        )

        start = time.monotonic()
        result = await self.registry.dispatch(action, ctx)
        duration_ms = (time.monotonic() - start) * 1000
        self.events.log_action_result(
            message.room_id,
            message.id,
            action.name.value,
            result.handled,
            duration_ms=duration_ms,
            error=result.error,
        )

        for reply in result.replies:
            self.store.append(
                MemoryRecord(
                    room_id=message.room_id,
                    user_id=message.agent_id,
                    agent_id=message.agent_id,
                    action=ActionTag.REPLY,
                    content=reply.to_dict(),
                    message_id=message.id,
                )
            )
            if callback is not None:
                try:
                    await callback(reply)
                except Exception:
                    logger.exception("Reply callback failed for message %s", message.id)
        return result
