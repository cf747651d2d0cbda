"""YieldPilot - conversational agent that walks users into Aave lending positions."""

__version__ = "0.1.0"

from .actions import ActionRegistry, ActionResult, Message, Reply
from .config import AgentSettings, load_config
from .errors import ChainError, LLMError, RetryExhaustedError, ServiceError, YieldPilotError
from .memory import ActionTag, MemoryRecord, MemoryStore, RoomState
from .runtime import AgentRuntime, TurnResult

__all__ = [
    "ActionRegistry",
    "ActionResult",
    "ActionTag",
    "AgentRuntime",
    "AgentSettings",
    "ChainError",
    "LLMError",
    "MemoryRecord",
    "MemoryStore",
    "Message",
    "Reply",
    "RetryExhaustedError",
    "RoomState",
    "ServiceError",
    "TurnResult",
    "YieldPilotError",
    "load_config",
]
