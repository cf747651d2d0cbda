"""Action registry: priority-ordered guard polling and safe dispatch."""

import logging

from ..memory import ActionTag, RoomState
from .base import Action, ActionContext, ActionResult, Message, Reply

logger = logging.getLogger(__name__)

APOLOGY = "Sorry, something went wrong while handling your request. Please try again."


class ActionRegistry:
    """Registry of actions, polled in registration order."""

    def __init__(self) -> None:
        self._actions: dict[ActionTag, Action] = {}

    def register(self, action: Action) -> None:
        """Register an action; earlier registrations win ties."""
        if action.name in self._actions:
            raise ValueError(f"Action '{action.name.value}' already registered")
        self._actions[action.name] = action

    def get(self, name: ActionTag) -> Action | None:
        """Get an action by tag."""
        return self._actions.get(name)

    def list_actions(self) -> list[ActionTag]:
        """List registered tags in priority order."""
        return list(self._actions.keys())

    def select(self, message: Message, state: RoomState) -> Action | None:
        """Return the first action whose guard accepts the message."""
        for action in self._actions.values():
            try:
                if action.validate(message, state):
                    return action
            except Exception:
                logger.exception("Guard for %s raised", action.name.value)
        return None

    async def dispatch(self, action: Action, ctx: ActionContext) -> ActionResult:
        """Run a handler; nothing it raises escapes the turn."""
        try:
            return await action.handle(ctx)
        except Exception as e:
            logger.exception("Action %s failed", action.name.value)
            return ActionResult(
                handled=False,
                replies=[Reply(text=APOLOGY, action=action.name.value)],
                error=f"Action execution failed: {e}",
            )
