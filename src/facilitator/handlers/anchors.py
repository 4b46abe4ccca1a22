"""Handlers for block height checkpoints: anchored state roots and
gateway proofs.

Both keep a strictly increasing height per contract. A batch is reduced
to its highest height per contract first; a height at or below the stored
one is stale and not proposed. The stored height is read before the lock
is taken, so a concurrent batch may still get there first: the repository
then refuses the save, and the refused height is dropped as stale too.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Mapping, Sequence, TypeVar

from facilitator.core.enums import EntityType
from facilitator.core.errors import NonMonotonicUpdateError
from facilitator.core.models import Anchor, Gateway
from facilitator.storage.repos import AnchorRepository, GatewayRepository, Repository

from .base import ContractEntityHandler, gather_all
from .payloads import GatewayProvenRecord, StateRootAvailableRecord, parse_records

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _highest_per_contract(events: Sequence[Any]) -> dict[str, Any]:
    highest: dict[str, Any] = {}
    for event in events:
        best = highest.get(event.contract_address)
        if best is None or event.block_height > best.block_height:
            highest[event.contract_address] = event
    return highest


async def _save_unless_stale(repository: Repository, entity: T) -> T | None:
    try:
        return await repository.save(entity)
    except NonMonotonicUpdateError as exc:
        logger.debug("Dropped stale %s update: %s", repository.entity_name, exc)
        return None


class AnchorHandler(ContractEntityHandler[Anchor]):
    """Advances ``Anchor.last_anchored_block_number`` from StateRootAvailable."""

    kind = EntityType.STATE_ROOT_AVAILABLES

    def __init__(self, anchor_repository: AnchorRepository) -> None:
        self._anchor_repository = anchor_repository

    async def persist(self, records: Sequence[Mapping[str, Any]]) -> list[Anchor]:
        events = parse_records(StateRootAvailableRecord, self.kind, records)
        highest = _highest_per_contract(events)

        stored = await asyncio.gather(
            *(self._anchor_repository.get(anchor_ga) for anchor_ga in highest)
        )
        updates = []
        for (anchor_ga, event), anchor in zip(highest.items(), stored):
            if anchor is not None and event.block_height <= anchor.last_anchored_block_number:
                logger.debug(
                    "Anchor %s already at %s, skipping %s",
                    anchor_ga, anchor.last_anchored_block_number, event.block_height,
                )
                continue
            updates.append(
                Anchor(anchor_ga=anchor_ga, last_anchored_block_number=event.block_height)
            )

        saved = await gather_all(
            _save_unless_stale(self._anchor_repository, u) for u in updates
        )
        saved = [anchor for anchor in saved if anchor is not None]
        for anchor in saved:
            logger.info(
                "Anchor %s advanced to block %s",
                anchor.anchor_ga, anchor.last_anchored_block_number,
            )
        return saved


class ProveGatewayHandler(ContractEntityHandler[Gateway]):
    """Advances ``Gateway.last_remote_gateway_proven_block_height``."""

    kind = EntityType.GATEWAY_PROVENS

    def __init__(self, gateway_repository: GatewayRepository) -> None:
        self._gateway_repository = gateway_repository

    async def persist(self, records: Sequence[Mapping[str, Any]]) -> list[Gateway]:
        events = parse_records(GatewayProvenRecord, self.kind, records)
        highest = _highest_per_contract(events)

        stored = await asyncio.gather(
            *(self._gateway_repository.get(address) for address in highest)
        )
        updates = []
        for (address, event), gateway in zip(highest.items(), stored):
            current = gateway.last_remote_gateway_proven_block_height if gateway else None
            if current is not None and event.block_height <= current:
                logger.debug(
                    "Gateway %s already proven at %s, skipping %s",
                    address, current, event.block_height,
                )
                continue
            update = Gateway(
                gateway_address=address,
                last_remote_gateway_proven_block_height=event.block_height,
            )
            if gateway is None or gateway.remote_gateway_address is None:
                update.remote_gateway_address = event.remote_gateway
            updates.append(update)

        saved = await gather_all(
            _save_unless_stale(self._gateway_repository, u) for u in updates
        )
        return [gateway for gateway in saved if gateway is not None]
