"""Shared fixtures: in-memory fakes for the LLM, chain and custody service."""

from decimal import Decimal
from pathlib import Path
from unittest.mock import AsyncMock

import pytest

from yieldpilot.actions import ActionContext, Message
from yieldpilot.config import AgentSettings
from yieldpilot.errors import ChainError
from yieldpilot.memory import MemoryStore, RoomState

USER_WALLET = "0x1111111111111111111111111111111111111111"
OTHER_WALLET = "0x2222222222222222222222222222222222222222"
AGENT_ADDRESS = "0x3333333333333333333333333333333333333333"
MULTISIG = "0x4444444444444444444444444444444444444444"


class FakeLLM:
    """Answers each extractor prompt with a scripted response."""

    def __init__(self, wallet: str = "NO_WALLET_FOUND", criteria: str = "{}", apr: str = "") -> None:
        self.wallet = wallet
        self.criteria = criteria
        self.apr = apr
        self.prompts: list[str] = []

    async def complete(self, prompt, size_class=None) -> str:
        self.prompts.append(prompt)
        if "wallet addresses" in prompt:
            return self.wallet
        if "investment criteria" in prompt:
            return self.criteria
        return self.apr


class FakeCustody:
    """Custody service holding at most one binding."""

    def __init__(self, bound: str | None = None) -> None:
        self.bound = bound
        self.lookups = 0
        self.creates = 0

    async def get_multisig(self, agent_address: str, user_address: str) -> str | None:
        self.lookups += 1
        return self.bound

    async def create_multisig(self, agent_id: str, agent_address: str, user_address: str) -> str:
        self.creates += 1
        self.bound = MULTISIG
        return MULTISIG


class FakeChain:
    """Chain with no readable reserves, a $1 oracle and a configurable balance."""

    def __init__(self, balance: str = "1", agent_address: str | None = AGENT_ADDRESS) -> None:
        self.agent_address = agent_address
        self.get_native_balance = AsyncMock(return_value=Decimal(balance))
        self.get_reserve_data = AsyncMock(side_effect=ChainError("rpc unavailable"))
        self.get_oracle_price = AsyncMock(return_value=1.0)
        self.register_task = AsyncMock(return_value="0xabc")


@pytest.fixture
def store(tmp_path: Path) -> MemoryStore:
    """Create a MemoryStore with a temporary database."""
    store = MemoryStore(tmp_path / "memory.db")
    store.init_db()
    yield store
    store.close()


@pytest.fixture
def settings(tmp_path: Path) -> AgentSettings:
    return AgentSettings(db_path=tmp_path / "memory.db", handoff_initial_wait=0.0)


@pytest.fixture
def make_message():
    """Factory for messages in room-1."""

    def _make(text: str, id: str = "m-1", tag: str | None = None, room_id: str = "room-1") -> Message:
        return Message(id=id, room_id=room_id, user_id="user-1", agent_id="agent-1", text=text, tag=tag)

    return _make


@pytest.fixture
def make_context(store: MemoryStore, make_message):
    """Factory for an ActionContext over the shared store."""

    def _make(text: str, state: RoomState | None = None, id: str = "m-1") -> ActionContext:
        message = make_message(text, id=id)
        return ActionContext(
            message=message,
            state=state or RoomState(),
            store=store,
            recent=store.recent_messages(message.room_id),
        )

    return _make


@pytest.fixture
def fake_llm() -> FakeLLM:
    return FakeLLM()


@pytest.fixture
def custody() -> FakeCustody:
    return FakeCustody()


@pytest.fixture
def chain() -> FakeChain:
    return FakeChain()
