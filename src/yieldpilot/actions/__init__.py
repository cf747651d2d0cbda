"""Conversation actions and their dispatch."""

from .base import Action, ActionContext, ActionResult, Message, Reply, ReplyCallback
from .multisig import CreateMultisigAction
from .plan import ProposePlanAction, project_returns
from .registry import ActionRegistry
from .transaction import ProposeTransactionAction
from .wallet import ChangeUserWalletAction, GetUserWalletAction

__all__ = [
    "Action",
    "ActionContext",
    "ActionRegistry",
    "ActionResult",
    "ChangeUserWalletAction",
    "CreateMultisigAction",
    "GetUserWalletAction",
    "Message",
    "ProposePlanAction",
    "ProposeTransactionAction",
    "Reply",
    "ReplyCallback",
    "project_returns",
]
