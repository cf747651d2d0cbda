"""Runtime configuration.

Settings come from environment variables (a ``.env`` file is loaded by the
entry point) and may be overridden by ``~/.yieldpilot/config.json``.
"""

import json
import logging
import os
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path.home() / ".yieldpilot" / "config.json"
DEFAULT_DB_PATH = Path.home() / ".yieldpilot" / "memory.db"

EXECUTION_MODES = ("payload", "handoff")


@dataclass
class AgentSettings:
    """Configuration for the agent and its external collaborators.

    Attributes:
        groq_api_key: API key for the Groq completion endpoint.
        model_small: Model used for short extractions.
        model_large: Model used for longer reasoning prompts.
        rpc_url: JSON-RPC endpoint of the chain hosting the lending pool.
        custody_url: Base URL of the wallet-custody API.
        executor_url: Base URL of the execution hand-off API.
        private_key: Agent-held key used to derive the agent address and
            sign task registrations.
        agent_id: Identifier sent to the custody and executor services.
        execution_mode: ``payload`` returns the raw transaction,
            ``handoff`` registers it with the executor contract.
        pool_address: Lending pool receiving ``supply`` calls.
        gateway_address: Wrapped-token gateway receiving ``depositETH`` calls.
        task_registry_address: Executor contract exposing ``registerTask``.
        min_native_balance: Minimum multisig balance, in native units,
            before a deposit is proposed.
        native_deposit_amount: Native units attached to ``depositETH``.
        request_timeout: Seconds allowed for any single external call.
        handoff_attempts: Executor poll attempts.
        handoff_base_delay: Seconds before the second poll; doubles each time.
        handoff_initial_wait: Seconds to wait after registering a task.
        recent_messages: Size of the message window given to extractors.
        db_path: SQLite file backing the memory store.
    """

    groq_api_key: str | None = None
    model_small: str = "llama-3.1-8b-instant"
    model_large: str = "llama-3.1-70b-versatile"
    rpc_url: str = "https://sepolia-rpc.scroll.io"
    custody_url: str = "http://localhost:3001/api"
    executor_url: str = "http://localhost:3002"
    private_key: str | None = None
    agent_id: str = "0"
    execution_mode: str = "payload"
    pool_address: str = "0x48914C788295b5db23aF2b5F0B3BE775C4eA9440"
    gateway_address: str = "0x57ce905CfD7f986A929A26b006f797d181dB706e"
    task_registry_address: str = "0x5e38f31693CcAcFCA4D8b70882d8b696cDc24273"
    min_native_balance: float = 0.03
    native_deposit_amount: float = 0.03
    request_timeout: float = 15.0
    handoff_attempts: int = 5
    handoff_base_delay: float = 1.0
    handoff_initial_wait: float = 10.0
    recent_messages: int = 10
    db_path: Path = DEFAULT_DB_PATH

    def __post_init__(self) -> None:
        """Validate settings."""
        self.db_path = Path(self.db_path)
        if self.execution_mode not in EXECUTION_MODES:
            raise ValueError(
                f"execution_mode must be one of {', '.join(EXECUTION_MODES)}"
            )
        if self.min_native_balance < 0:
            raise ValueError("min_native_balance must not be negative")
        if self.request_timeout <= 0:
            raise ValueError("request_timeout must be positive")
        if self.handoff_attempts < 1:
            raise ValueError("handoff_attempts must be at least 1")
        if self.recent_messages < 1:
            raise ValueError("recent_messages must be at least 1")

    @classmethod
    def from_env(cls) -> "AgentSettings":
        """Build settings from environment variables."""
        defaults = cls()
        return cls(
            groq_api_key=os.getenv("GROQ_API_KEY"),
            model_small=os.getenv("GROQ_MODEL_SMALL", defaults.model_small),
            model_large=os.getenv("GROQ_MODEL_LARGE", defaults.model_large),
            rpc_url=os.getenv("YIELDPILOT_RPC_URL", defaults.rpc_url),
            custody_url=os.getenv("YIELDPILOT_CUSTODY_URL", defaults.custody_url),
            executor_url=os.getenv("YIELDPILOT_EXECUTOR_URL", defaults.executor_url),
            private_key=os.getenv("EVM_PRIVATE_KEY"),
            agent_id=os.getenv("YIELDPILOT_AGENT_ID", defaults.agent_id),
            execution_mode=os.getenv("YIELDPILOT_EXECUTION_MODE", defaults.execution_mode),
            request_timeout=float(os.getenv("YIELDPILOT_TIMEOUT", str(defaults.request_timeout))),
            db_path=Path(os.getenv("YIELDPILOT_DB_PATH", str(defaults.db_path))),
        )


def load_config(
    base: AgentSettings | None = None,
    config_path: Path | None = None,
) -> AgentSettings:
    """Apply overrides from a JSON config file.

    The file holds a flat object whose keys are ``AgentSettings`` field
    names, for example::

        {"custody_url": "https://custody.example", "min_native_balance": 0.05}

    Unknown keys are ignored with a warning. A missing or unreadable file
    leaves the settings untouched.

    Args:
        base: Settings to override. Built from the environment if None.
        config_path: Path to config file. Uses DEFAULT_CONFIG_PATH if None.

    Returns:
        AgentSettings with file overrides applied.
    """
    settings = base or AgentSettings.from_env()
    path = config_path or DEFAULT_CONFIG_PATH

    if not path.exists():
        logger.debug("No config file at %s, using defaults", path)
        return settings

    try:
        with open(path, "r") as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        logger.warning("Invalid JSON in %s: %s. Using defaults.", path, e)
        return settings
    except OSError as e:
        logger.warning("Cannot read %s: %s. Using defaults.", path, e)
        return settings

    if not isinstance(data, dict):
        logger.warning("Config in %s is not an object. Using defaults.", path)
        return settings

    return _apply_overrides(settings, data)


def _apply_overrides(settings: AgentSettings, data: dict[str, Any]) -> AgentSettings:
    """Return a copy of settings with known keys replaced."""
    known = {f.name for f in fields(AgentSettings)}
    overrides = {}
    for key, value in data.items():
        if key not in known:
            logger.warning("Unknown config key '%s' ignored", key)
            continue
        overrides[key] = value
    return replace(settings, **overrides)
