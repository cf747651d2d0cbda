"""Tests for wallet capture and change actions."""

from unittest.mock import AsyncMock

import pytest

from yieldpilot.actions import ChangeUserWalletAction, GetUserWalletAction
from yieldpilot.errors import LLMError
from yieldpilot.extractors import WalletExtractor
from yieldpilot.memory import ActionTag, MemoryStore, RoomState

WALLET = "0x1111111111111111111111111111111111111111"
OTHER = "0x2222222222222222222222222222222222222222"


def extractor_returning(value) -> WalletExtractor:
    extractor = WalletExtractor(AsyncMock())
    extractor.extract = AsyncMock(return_value=value)
    return extractor


class TestGetUserWallet:
    """Tests for GetUserWalletAction."""

    @pytest.mark.asyncio
    async def test_records_valid_address(self, make_context, store: MemoryStore):
        action = GetUserWalletAction(extractor_returning(WALLET))
        result = await action.handle(make_context(f"My wallet is {WALLET}"))

        assert result.handled
        assert WALLET in result.replies[0].text
        assert result.replies[0].action == "GET_USER_WALLET"
        record = store.latest_by_action("room-1", ActionTag.GET_USER_WALLET)
        assert record.content["userAddress"] == WALLET
        assert record.message_id == "m-1"

    @pytest.mark.asyncio
    async def test_nothing_found_asks_for_address(self, make_context, store: MemoryStore):
        action = GetUserWalletAction(extractor_returning(None))
        result = await action.handle(make_context("my wallet is somewhere"))

        assert result.handled
        assert "0x" in result.replies[0].text
        assert store.latest_by_action("room-1", ActionTag.GET_USER_WALLET) is None

    @pytest.mark.asyncio
    async def test_known_wallet_short_circuits(self, make_context, store: MemoryStore):
        extractor = extractor_returning(OTHER)
        action = GetUserWalletAction(extractor)
        result = await action.handle(make_context("wallet?", state=RoomState(wallet=WALLET)))

        assert result.handled
        assert WALLET in result.replies[0].text
        extractor.extract.assert_not_awaited()
        assert store.query_by_room("room-1") == []

    @pytest.mark.asyncio
    async def test_llm_failure_apologises(self, make_context, store: MemoryStore):
        extractor = WalletExtractor(AsyncMock())
        extractor.extract = AsyncMock(side_effect=LLMError("down"))
        result = await GetUserWalletAction(extractor).handle(make_context("my wallet"))

        assert not result.handled
        assert result.error == "down"
        assert "Sorry" in result.replies[0].text
        assert store.query_by_room("room-1") == []

    @pytest.mark.asyncio
    async def test_mentions_pending_plan(self, make_context):
        action = GetUserWalletAction(extractor_returning(WALLET))
        state = RoomState(plan={"chosenAsset": "USDC"})
        result = await action.handle(make_context(WALLET, state=state))
        assert "plan" in result.replies[0].text


class TestChangeUserWallet:
    """Tests for ChangeUserWalletAction."""

    @pytest.mark.asyncio
    async def test_records_new_and_previous(self, make_context, store: MemoryStore):
        action = ChangeUserWalletAction(extractor_returning(OTHER))
        result = await action.handle(make_context(f"use {OTHER}", state=RoomState(wallet=WALLET)))

        assert result.handled
        record = store.latest_by_action("room-1", ActionTag.CHANGE_USER_WALLET)
        assert record.content == {"userAddress": OTHER, "previousAddress": WALLET}
        assert result.replies[0].fields["previousAddress"] == WALLET

    @pytest.mark.asyncio
    async def test_same_address_asks_for_new_one(self, make_context, store: MemoryStore):
        action = ChangeUserWalletAction(extractor_returning(WALLET))
        result = await action.handle(make_context("change wallet", state=RoomState(wallet=WALLET)))

        assert result.handled
        assert "new address" in result.replies[0].text
        assert store.latest_by_action("room-1", ActionTag.CHANGE_USER_WALLET) is None

    @pytest.mark.asyncio
    async def test_no_candidate(self, make_context, store: MemoryStore):
        action = ChangeUserWalletAction(extractor_returning(None))
        result = await action.handle(make_context("change wallet", state=RoomState(wallet=WALLET)))
        assert result.handled
        assert store.query_by_room("room-1") == []

    @pytest.mark.asyncio
    async def test_without_prior_wallet(self, make_context):
        extractor = extractor_returning(OTHER)
        result = await ChangeUserWalletAction(extractor).handle(make_context("change wallet"))
        assert result.handled
        extractor.extract.assert_not_awaited()

    def test_guard_delegation(self, make_message):
        action = ChangeUserWalletAction(extractor_returning(None))
        assert action.validate(make_message(f"use {OTHER}"), RoomState(wallet=WALLET))
        assert not action.validate(make_message(f"use {OTHER}"), RoomState())
