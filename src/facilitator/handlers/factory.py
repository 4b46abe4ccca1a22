"""Builds the handler of every event kind."""

from __future__ import annotations

from facilitator.core.enums import EntityType
from facilitator.storage.registry import Repositories

from .anchors import AnchorHandler, ProveGatewayHandler
from .base import ContractEntityHandler
from .messages import (
    MintProgressHandler,
    RedeemIntentConfirmedHandler,
    RedeemIntentDeclaredHandler,
    RedeemProgressHandler,
    StakeIntentConfirmedHandler,
    StakeIntentDeclaredHandler,
    StakeProgressHandler,
    UnstakeProgressHandler,
)
from .requested import RedeemRequestedHandler, StakeRequestedHandler


class HandlerFactory:
    @staticmethod
    def get(repos: Repositories) -> dict[EntityType, ContractEntityHandler]:
        """Return one handler per event kind, wired to *repos*."""
        messages = repos.message_repository
        requests = repos.request_repository
        handlers: list[ContractEntityHandler] = [
            StakeRequestedHandler(requests),
            StakeIntentDeclaredHandler(messages, requests),
            StakeProgressHandler(messages),
            StakeIntentConfirmedHandler(messages),
            MintProgressHandler(messages),
            RedeemRequestedHandler(requests),
            RedeemIntentDeclaredHandler(messages, requests),
            RedeemProgressHandler(messages),
            RedeemIntentConfirmedHandler(messages),
            UnstakeProgressHandler(messages),
            AnchorHandler(repos.anchor_repository),
            ProveGatewayHandler(repos.gateway_repository),
        ]
        return {handler.kind: handler for handler in handlers}
