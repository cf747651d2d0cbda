"""Room state derived from the memory log.

Nothing here is persisted: every turn rebuilds a RoomState by scanning
the room's records, so the log stays the single source of truth.
"""

from dataclasses import dataclass, field
from typing import Any

from .models import ActionTag, MemoryRecord, is_valid_address

WALLET_ACTIONS = (ActionTag.GET_USER_WALLET, ActionTag.CHANGE_USER_WALLET)


@dataclass
class RoomState:
    """What a handler needs to know about a room at the start of a turn.

    Attributes:
        wallet: Most recent valid wallet address, or None.
        previous_wallet: Wallet that ``wallet`` superseded, or None.
        plan: ``investmentDetails`` of the most recent plan, or None.
        clarification_pending: The latest plan step asked the user a
            question instead of presenting a plan.
        multisig: Multisig last recorded for the current wallet, or None.
        multisig_owner: Wallet that ``multisig`` was provisioned for.
        processed_ids: Message ids already consumed by a dedupe-guarded action.
    """

    wallet: str | None = None
    previous_wallet: str | None = None
    plan: dict[str, Any] | None = None
    clarification_pending: bool = False
    multisig: str | None = None
    multisig_owner: str | None = None
    processed_ids: set[str] = field(default_factory=set)

    @property
    def has_wallet(self) -> bool:
        return self.wallet is not None

    @property
    def has_plan(self) -> bool:
        return self.plan is not None

    def is_processed(self, message_id: str | None) -> bool:
        """Return True if the message was already consumed."""
        return message_id is not None and message_id in self.processed_ids

    @classmethod
    def from_records(cls, records: list[MemoryRecord]) -> "RoomState":
        """Fold a room's records, oldest first, into a RoomState."""
        state = cls()
        for record in records:
            state._apply(record)
        return state

    def _apply(self, record: MemoryRecord) -> None:
        content = record.content
        if record.action in WALLET_ACTIONS:
            address = content.get("userAddress") or content.get("wallet")
            # Invalid extractions never become current
            if is_valid_address(address) and address != self.wallet:
                self.previous_wallet = self.wallet
                self.wallet = address
                if not _same_address(self.multisig_owner, address):
                    self.multisig = None
                    self.multisig_owner = None
        elif record.action == ActionTag.PROPOSE_PLAN:
            if content.get("investmentDetails"):
                self.plan = dict(content["investmentDetails"])
                self.clarification_pending = False
            elif content.get("clarification"):
                self.clarification_pending = True
        elif record.action == ActionTag.CREATE_MULTISIG:
            address = content.get("multisig_address")
            owner = content.get("userAddress")
            # Only a multisig bound to the current wallet is worth caching
            if is_valid_address(address) and _same_address(owner, self.wallet):
                self.multisig = address
                self.multisig_owner = owner
        elif record.action == ActionTag.PROCESSED:
            message_id = content.get("message_id")
            if message_id:
                self.processed_ids.add(str(message_id))


def _same_address(a: str | None, b: str | None) -> bool:
    return a is not None and b is not None and a.lower() == b.lower()
