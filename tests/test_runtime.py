"""Tests for AgentRuntime, including the full wallet → plan → deposit conversation."""

import json
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest

from yieldpilot.actions import Message
from yieldpilot.cli import build_registry
from yieldpilot.config import AgentSettings
from yieldpilot.logging import JSONLLogger
from yieldpilot.memory import ActionTag, MemoryStore
from yieldpilot.runtime import AgentRuntime

WALLET = "0x1111111111111111111111111111111111111111"
OTHER = "0x2222222222222222222222222222222222222222"
MULTISIG = "0x4444444444444444444444444444444444444444"
POOL = "0x48914C788295b5db23aF2b5F0B3BE775C4eA9440"
USDC = "0x2C9678042D52B97D27f2bD2947F7111d93F3dD0D"



class PerWalletCustody:
    """Custody service keyed by user wallet."""

    def __init__(self) -> None:
        self.bindings: dict[str, str] = {}
        self.creates: list[str] = []

    async def get_multisig(self, agent_address: str, user_address: str) -> str | None:
        return self.bindings.get(user_address)

    async def create_multisig(self, agent_id: str, agent_address: str, user_address: str) -> str:
        self.creates.append(user_address)
        address = "0x" + str(len(self.creates) + 4) * 40
        self.bindings[user_address] = address
        return address

@pytest.fixture
def events(tmp_path) -> JSONLLogger:
    return JSONLLogger(log_dir=tmp_path / "logs")


@pytest.fixture
def runtime(settings: AgentSettings, store: MemoryStore, fake_llm, chain, custody, events) -> AgentRuntime:
    fake_llm.wallet = WALLET
    fake_llm.criteria = json.dumps({"asset": "USDC", "allocationAmountUSD": 500, "riskTolerance": "low"})
    registry = build_registry(settings, fake_llm, chain, custody)
    return AgentRuntime(registry, store, event_logger=events)


def msg(text: str, id: str, room_id: str = "room-1", tag: str | None = None) -> Message:
    return Message(id=id, room_id=room_id, user_id="user-1", agent_id="agent-1", text=text, tag=tag)


class TestConversation:
    """The three-message scenario from wallet to deposit payload."""

    @pytest.mark.asyncio
    async def test_end_to_end(self, runtime: AgentRuntime, store: MemoryStore, custody):
        sent = []

        async def callback(reply):
            sent.append(reply)

        first = await runtime.process(msg(f"My wallet is {WALLET}", "m-1"), callback)
        assert first.action is ActionTag.GET_USER_WALLET
        assert first.handled
        assert runtime.room_state("room-1").wallet == WALLET

        second = await runtime.process(msg("I want to invest 500 in USDC", "m-2"), callback)
        assert second.action is ActionTag.PROPOSE_PLAN
        plan = runtime.room_state("room-1").plan
        assert plan["chosenAsset"] == "USDC"
        assert plan["allocationAmount"] == 500

        third = await runtime.process(msg("yes, proceed", "m-3"), callback)
        assert third.actions == [ActionTag.CREATE_MULTISIG, ActionTag.PROPOSE_TRANSACTION]
        assert third.handled
        assert custody.creates == 1

        tx = third.replies[-1].fields["transaction"]
        assert tx["to"] == POOL
        assert MULTISIG[2:].lower() in tx["data"]
        assert USDC[2:].lower() in tx["data"]
        assert sent == first.replies + second.replies + third.replies

        replies = [r for r in store.query_by_room("room-1") if r.action is ActionTag.REPLY]
        assert len(replies) == len(sent)

    @pytest.mark.asyncio
    async def test_transaction_waits_for_multisig(self, runtime: AgentRuntime, custody):
        await runtime.process(msg(f"My wallet is {WALLET}", "m-1"))
        await runtime.process(msg("I want to invest 500 in USDC", "m-2"))
        custody.get_multisig = AsyncMock(return_value=None)

        result = await runtime.process(msg("yes, proceed", "m-3"))

        # custody never reports a binding, so no payload is built
        assert result.actions == [ActionTag.CREATE_MULTISIG, ActionTag.PROPOSE_TRANSACTION]
        assert "transaction" not in result.replies[-1].fields
        assert "multisig" in result.replies[-1].text

    @pytest.mark.asyncio
    async def test_wallet_change_provisions_new_multisig(self, settings, store, fake_llm, chain, events):
        custody = PerWalletCustody()
        registry = build_registry(settings, fake_llm, chain, custody)
        runtime = AgentRuntime(registry, store, event_logger=events)
        fake_llm.wallet = WALLET
        fake_llm.criteria = json.dumps({"asset": "USDC", "allocationAmountUSD": 500, "riskTolerance": "low"})

        await runtime.process(msg(f"My wallet is {WALLET}", "m-1"))
        await runtime.process(msg("I want to invest 500 in USDC", "m-2"))
        await runtime.process(msg("yes, proceed", "m-3"))
        assert runtime.room_state("room-1").multisig == custody.bindings[WALLET]

        fake_llm.wallet = OTHER
        changed = await runtime.process(msg(f"please change my wallet to {OTHER}", "m-4"))
        assert changed.action is ActionTag.CHANGE_USER_WALLET
        assert runtime.room_state("room-1").multisig is None

        result = await runtime.process(msg("yes, proceed", "m-5"))

        assert result.actions == [ActionTag.CREATE_MULTISIG, ActionTag.PROPOSE_TRANSACTION]
        assert custody.creates == [WALLET, OTHER]
        tx = result.replies[-1].fields["transaction"]
        assert custody.bindings[OTHER][2:].lower() in tx["data"]

    @pytest.mark.asyncio
    async def test_explicit_request_bypasses_cached_multisig(self, runtime: AgentRuntime, custody):
        await runtime.process(msg(f"My wallet is {WALLET}", "m-1"))
        await runtime.process(msg("I want to invest 500 in USDC", "m-2"))
        await runtime.process(msg("yes, proceed", "m-3"))

        # binding disappears from the custody service
        custody.get_multisig = AsyncMock(return_value=None)
        gated = await runtime.process(msg("yes, proceed", "m-4"))
        assert gated.actions == [ActionTag.PROPOSE_TRANSACTION]
        assert "create multisig" in gated.replies[-1].text

        result = await runtime.process(msg("create multisig", "m-5"))
        assert result.action is ActionTag.CREATE_MULTISIG
        assert result.handled
        assert custody.creates == 2

    @pytest.mark.asyncio
    async def test_low_balance_refuses(self, runtime: AgentRuntime, chain):
        chain.get_native_balance = AsyncMock(return_value=Decimal("0.02"))
        await runtime.process(msg(f"My wallet is {WALLET}", "m-1"))
        await runtime.process(msg("I want to invest 500 in USDC", "m-2"))
        result = await runtime.process(msg("yes, proceed", "m-3"))
        assert "top it up" in result.replies[-1].text

    @pytest.mark.asyncio
    async def test_wallet_is_stable(self, runtime: AgentRuntime, fake_llm):
        await runtime.process(msg(f"My wallet is {WALLET}", "m-1"))
        fake_llm.wallet = "0x9999999999999999999999999999999999999999"
        await runtime.process(msg("what are your thoughts on the market", "m-2"))
        await runtime.process(msg("I want to invest 500 in USDC", "m-3"))
        assert runtime.room_state("room-1").wallet == WALLET


class TestIdempotence:
    """Replays of an already processed message."""

    @pytest.mark.asyncio
    async def test_replayed_plan_message_is_ignored(self, runtime: AgentRuntime, store: MemoryStore):
        await runtime.process(msg(f"My wallet is {WALLET}", "m-0"))
        message = msg("I want to invest 500 in USDC", "m-1")
        first = await runtime.process(message)
        replay = await runtime.process(message)

        assert first.action is ActionTag.PROPOSE_PLAN
        assert replay.action is None
        assert not replay.handled
        plans = [
            r for r in store.query_by_room("room-1")
            if r.action is ActionTag.PROPOSE_PLAN and "investmentDetails" in r.content
        ]
        assert len(plans) == 1

    @pytest.mark.asyncio
    async def test_pass_through_message_runs_nothing(self, runtime: AgentRuntime):
        result = await runtime.process(msg(f"My wallet is {WALLET}", "m-1", tag="CONTINUE"))
        assert result.action is None
        assert result.replies == []


class TestRuntimeBookkeeping:
    """Records and events written around each turn."""

    @pytest.mark.asyncio
    async def test_message_recorded_even_when_unhandled(self, runtime: AgentRuntime, store: MemoryStore):
        await runtime.process(msg("hello", "m-1"))
        [record] = store.query_by_room("room-1")
        assert record.action is ActionTag.MESSAGE
        assert record.text == "hello"

    @pytest.mark.asyncio
    async def test_rooms_are_isolated(self, runtime: AgentRuntime):
        await runtime.process(msg(f"My wallet is {WALLET}", "m-1", room_id="room-a"))
        assert runtime.room_state("room-b").wallet is None

    @pytest.mark.asyncio
    async def test_events_logged(self, runtime: AgentRuntime, events: JSONLLogger):
        await runtime.process(msg(f"My wallet is {WALLET}", "m-1"))
        lines = [json.loads(line) for line in events.log_path.read_text().splitlines()]
        names = [line["event"] for line in lines]
        assert names == ["turn_start", "action_selected", "action_result", "turn_stop"]
        assert lines[-1]["action"] == "GET_USER_WALLET"
        assert lines[-1]["handled"] is True

    @pytest.mark.asyncio
    async def test_callback_failure_does_not_break_turn(self, runtime: AgentRuntime, store: MemoryStore):
        callback = AsyncMock(side_effect=RuntimeError("socket closed"))
        result = await runtime.process(msg(f"My wallet is {WALLET}", "m-1"), callback)
        assert result.handled
        assert store.latest_by_action("room-1", ActionTag.GET_USER_WALLET) is not None

    @pytest.mark.asyncio
    async def test_handler_exception_is_contained(self, runtime: AgentRuntime, store: MemoryStore):
        action = runtime.registry.get(ActionTag.GET_USER_WALLET)
        action.extractor = MagicMock()
        action.extractor.extract = AsyncMock(side_effect=RuntimeError("unexpected"))

        result = await runtime.process(msg(f"My wallet is {WALLET}", "m-1"))
        assert not result.handled
        assert "Sorry" in result.replies[0].text
