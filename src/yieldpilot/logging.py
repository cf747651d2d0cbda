"""JSONL event log for conversation turns and external calls.

One line per event. Every line carries a UTC ``timestamp`` and the
``event`` name; the routing fields below appear at the top level when
given, and anything else lands under ``extra``. Fields passed as None
are left out.
"""

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

ROUTING_FIELDS = ("room_id", "message_id", "action", "handled", "duration_ms", "error")
DEFAULT_LOG_DIR = Path.home() / ".yieldpilot" / "logs"


class JSONLLogger:
    """Append-only event sink that rolls the file over past a size cap.

    Rolled files are kept beside the live one as ``turns.1.jsonl``,
    ``turns.2.jsonl``, and so on, oldest first.
    """

    def __init__(
        self,
        log_dir: str | Path | None = None,
        filename: str = "turns.jsonl",
        max_size_mb: float = 10.0,
    ) -> None:
        self.log_dir = Path(log_dir) if log_dir is not None else DEFAULT_LOG_DIR
        self.log_dir.mkdir(parents=True, exist_ok=True)
        self.filename = filename
        self.max_size_bytes = int(max_size_mb * 1024 * 1024)

    @property
    def log_path(self) -> Path:
        """File currently receiving events."""
        return self.log_dir / self.filename

    def _roll_over(self) -> None:
        path = self.log_path
        if not path.exists() or path.stat().st_size < self.max_size_bytes:
            return
        index = 1
        while (self.log_dir / f"{path.stem}.{index}{path.suffix}").exists():
            index += 1
        path.rename(self.log_dir / f"{path.stem}.{index}{path.suffix}")

    def log(self, event: str, **fields: Any) -> None:
        """Append one event."""
        line: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "event": event,
        }
        extra = {}
        for key, value in fields.items():
            if value is None:
                continue
            if key in ROUTING_FIELDS:
                line[key] = value
            else:
                extra[key] = value
        if extra:
            line["extra"] = extra

        self._roll_over()
        with self.log_path.open("a", encoding="utf-8") as f:
            f.write(json.dumps(line, default=str) + "\n")

    def log_turn_start(self, room_id: str, message_id: str, text: str) -> None:
        self.log("turn_start", room_id=room_id, message_id=message_id, text=text[:500])

    def log_action_selected(self, room_id: str, message_id: str, action: str) -> None:
        self.log("action_selected", room_id=room_id, message_id=message_id, action=action)

    def log_action_result(
        self,
        room_id: str,
        message_id: str,
        action: str,
        handled: bool,
        *,
        duration_ms: float | None = None,
        error: str | None = None,
    ) -> None:
        self.log(
            "action_result",
            room_id=room_id,
            message_id=message_id,
            action=action,
            handled=handled,
            duration_ms=duration_ms,
            error=error,
        )

    def log_external_call(
        self,
        service: str,
        operation: str,
        success: bool,
        *,
        room_id: str | None = None,
        duration_ms: float | None = None,
        error: str | None = None,
    ) -> None:
        """Log a call to the custody API, executor, chain or LLM.

        ``error`` is only written for failed calls.
        """
        self.log(
            "external_call",
            room_id=room_id,
            duration_ms=duration_ms,
            error=None if success else error,
            service=service,
            operation=operation,
            success=success,
        )

    def log_turn_stop(
        self,
        room_id: str,
        message_id: str,
        *,
        action: str | None = None,
        handled: bool = False,
        replies: int = 0,
    ) -> None:
        self.log(
            "turn_stop",
            room_id=room_id,
            message_id=message_id,
            action=action,
            handled=handled,
            replies=replies,
        )


_events: JSONLLogger | None = None


def get_logger() -> JSONLLogger:
    """Process-wide event logger, created on first use."""
    global _events
    if _events is None:
        _events = JSONLLogger()
    return _events


def configure_logger(log_dir: str | Path | None = None, max_size_mb: float = 10.0) -> JSONLLogger:
    """Point the process-wide event logger at ``log_dir``."""
    global _events
    _events = JSONLLogger(log_dir=log_dir, max_size_mb=max_size_mb)
    return _events
