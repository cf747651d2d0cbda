"""Error types raised by yieldpilot's external collaborators.

Handlers catch these at their boundary and turn them into a user-facing
reply; nothing here is allowed to escape the conversation loop.
"""


class YieldPilotError(Exception):
    """Base class for all yieldpilot errors."""


class ServiceError(YieldPilotError):
    """An HTTP service (custody or executor) failed or answered non-2xx."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class ChainError(YieldPilotError):
    """An RPC read or contract call failed."""


class LLMError(YieldPilotError):
    """The language model could not produce a completion."""


class RetryExhaustedError(YieldPilotError):
    """A bounded retry ran out of attempts.

    This is recoverable: the caller reports it to the user and the next
    turn may try again.
    """

    def __init__(self, attempts: int, last_error: BaseException | None = None) -> None:
        detail = f": {last_error}" if last_error else ""
        super().__init__(f"Gave up after {attempts} attempts{detail}")
        self.attempts = attempts
        self.last_error = last_error
