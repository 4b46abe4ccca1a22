"""Event handlers: one per upstream event kind, plus the dispatcher."""

from facilitator.handlers.anchors import AnchorHandler, ProveGatewayHandler
from facilitator.handlers.base import ContractEntityHandler
from facilitator.handlers.factory import HandlerFactory
from facilitator.handlers.messages import (
    MintProgressHandler,
    RedeemIntentConfirmedHandler,
    RedeemIntentDeclaredHandler,
    RedeemProgressHandler,
    StakeIntentConfirmedHandler,
    StakeIntentDeclaredHandler,
    StakeProgressHandler,
    UnstakeProgressHandler,
)
from facilitator.handlers.requested import RedeemRequestedHandler, StakeRequestedHandler
from facilitator.handlers.transaction_handler import TransactionHandler

__all__ = [
    "ContractEntityHandler",
    "HandlerFactory",
    "TransactionHandler",
    # Messages
    "StakeIntentDeclaredHandler",
    "StakeProgressHandler",
    "StakeIntentConfirmedHandler",
    "MintProgressHandler",
    "RedeemIntentDeclaredHandler",
    "RedeemProgressHandler",
    "RedeemIntentConfirmedHandler",
    "UnstakeProgressHandler",
    # Requests
    "StakeRequestedHandler",
    "RedeemRequestedHandler",
    # Checkpoints
    "AnchorHandler",
    "ProveGatewayHandler",
]
