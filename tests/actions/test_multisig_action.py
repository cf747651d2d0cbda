"""Tests for multisig provisioning."""

from unittest.mock import AsyncMock

import pytest

from yieldpilot.actions import CreateMultisigAction
from yieldpilot.errors import ServiceError
from yieldpilot.memory import ActionTag, MemoryStore, RoomState

WALLET = "0x1111111111111111111111111111111111111111"
AGENT = "0x3333333333333333333333333333333333333333"
MULTISIG = "0x4444444444444444444444444444444444444444"
EXISTING = "0x5555555555555555555555555555555555555555"
PLAN = {"chosenAsset": "USDC", "allocationAmount": 500.0}


class TestCreateMultisig:
    """Tests for CreateMultisigAction.handle."""

    @pytest.mark.asyncio
    async def test_creates_when_lookup_finds_nothing(self, make_context, store: MemoryStore, custody, chain):
        action = CreateMultisigAction(custody, chain, agent_id="7")
        result = await action.handle(make_context("create multisig", state=RoomState(wallet=WALLET)))

        assert result.handled
        assert custody.lookups == 1
        assert custody.creates == 1
        assert MULTISIG in result.replies[0].text
        record = store.latest_by_action("room-1", ActionTag.CREATE_MULTISIG)
        assert record.content == {
            "multisig_address": MULTISIG,
            "userAddress": WALLET,
            "agentAddress": AGENT,
            "created": True,
        }

    @pytest.mark.asyncio
    async def test_adopts_existing_binding(self, make_context, store: MemoryStore, custody, chain):
        custody.bound = EXISTING
        action = CreateMultisigAction(custody, chain, agent_id="7")
        result = await action.handle(make_context("create multisig", state=RoomState(wallet=WALLET)))

        assert result.handled
        assert custody.creates == 0
        assert "already have" in result.replies[0].text
        assert result.replies[0].fields == {"multisig_address": EXISTING, "created": False}

    @pytest.mark.asyncio
    async def test_requires_wallet(self, make_context, store: MemoryStore, custody, chain):
        result = await CreateMultisigAction(custody, chain, "7").handle(make_context("multisig"))

        assert result.handled
        assert "wallet address" in result.replies[0].text
        assert custody.lookups == 0
        assert store.query_by_room("room-1") == []

    @pytest.mark.asyncio
    async def test_service_failure_records_nothing(self, make_context, store: MemoryStore, custody, chain):
        custody.create_multisig = AsyncMock(side_effect=ServiceError("HTTP 500", status_code=500))
        result = await CreateMultisigAction(custody, chain, "7").handle(
            make_context("multisig", state=RoomState(wallet=WALLET))
        )

        assert not result.handled
        assert "Sorry" in result.replies[0].text
        assert store.query_by_room("room-1") == []

    @pytest.mark.asyncio
    async def test_missing_agent_key(self, make_context, custody, chain):
        chain.agent_address = None
        result = await CreateMultisigAction(custody, chain, "7").handle(
            make_context("multisig", state=RoomState(wallet=WALLET))
        )
        assert not result.handled
        assert custody.lookups == 0

    @pytest.mark.asyncio
    async def test_follow_up_only_with_plan(self, make_context, custody, chain):
        action = CreateMultisigAction(custody, chain, "7")
        without_plan = await action.handle(make_context("multisig", state=RoomState(wallet=WALLET)))
        with_plan = await action.handle(
            make_context("yes", state=RoomState(wallet=WALLET, plan=PLAN), id="m-2")
        )
        assert without_plan.follow_up is None
        assert with_plan.follow_up is ActionTag.PROPOSE_TRANSACTION
