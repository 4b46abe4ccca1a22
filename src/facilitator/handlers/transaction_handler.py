"""Routes bulk upstream records to the handler of their event kind.

The transport delivers one mapping per subscription response: event kind
name -> records of that kind. Besides dispatching, the handler keeps the
per-contract ``uts`` high-water mark (:class:`ContractEntity`) that the
transport resumes from, and can drop records at or below it so a replayed
response is not applied twice.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Any, Mapping, Sequence

from facilitator.core.enums import EntityType
from facilitator.core.errors import HandlerNotFoundError
from facilitator.core.models import ContractEntity
from facilitator.observability.logger import new_batch_id
from facilitator.storage.repos import ContractEntityRepository

from .base import ContractEntityHandler, gather_all
from .payloads import EventRecord, parse_records

logger = logging.getLogger(__name__)


class TransactionHandler:
    """Dispatches bulk records to per-kind handlers."""

    def __init__(
        self,
        handlers: Mapping[EntityType, ContractEntityHandler],
        contract_entity_repository: ContractEntityRepository,
        *,
        suppress_replays: bool = True,
    ) -> None:
        self._handlers = dict(handlers)
        self._contract_entity_repository = contract_entity_repository
        self._suppress_replays = suppress_replays

    async def handle(
        self,
        bulk_records: Mapping[str, Sequence[Mapping[str, Any]]],
    ) -> dict[EntityType, list[Any]]:
        """Persist every kind of *bulk_records* through its handler.

        Kinds are processed one after another; within a kind the handler
        fans out. The ``uts`` high-water mark of a kind is only moved once
        its handler succeeded.

        Returns:
            Entities written, per event kind.

        Raises:
            HandlerNotFoundError: If a non-empty kind has no handler. Nothing
                is persisted in that case.
        """
        batch_id = new_batch_id()
        batches = [
            (self._resolve(kind), records)
            for kind, records in bulk_records.items()
            if records
        ]
        logger.debug("Handling batch %s with %d kinds", batch_id, len(batches))

        results: dict[EntityType, list[Any]] = {}
        for kind, records in batches:
            timestamps = parse_records(EventRecord, kind, records)
            if self._suppress_replays:
                records = await self._drop_replays(kind, records, timestamps)
            if records:
                results[kind] = await self._handlers[kind].persist(records)
            await self._update_latest_uts(kind, timestamps)
        return results

    def _resolve(self, kind: str) -> EntityType:
        try:
            entity_type = EntityType(kind)
        except ValueError:
            raise HandlerNotFoundError(kind) from None
        if entity_type not in self._handlers:
            raise HandlerNotFoundError(kind)
        return entity_type

    async def _drop_replays(
        self,
        kind: EntityType,
        records: Sequence[Mapping[str, Any]],
        timestamps: Sequence[EventRecord],
    ) -> list[Mapping[str, Any]]:
        latest: dict[str, int | None] = {}
        for event in timestamps:
            if event.contract_address is not None and event.contract_address not in latest:
                entity = await self._contract_entity_repository.get(event.contract_address, kind)
                latest[event.contract_address] = entity.timestamp if entity else None

        fresh = []
        for record, event in zip(records, timestamps):
            mark = latest.get(event.contract_address) if event.contract_address else None
            if mark is not None and event.uts is not None and event.uts <= mark:
                continue
            fresh.append(record)

        if len(fresh) < len(records):
            logger.info(
                "Dropped %d replayed %s records", len(records) - len(fresh), kind.value,
            )
        return fresh

    async def _update_latest_uts(
        self,
        kind: EntityType,
        timestamps: Sequence[EventRecord],
    ) -> None:
        highest: dict[str, int] = defaultdict(int)
        for event in timestamps:
            if event.contract_address is not None and event.uts is not None:
                highest[event.contract_address] = max(highest[event.contract_address], event.uts)

        updates = []
        for contract_address, uts in highest.items():
            stored = await self._contract_entity_repository.get(contract_address, kind)
            if stored is not None and stored.timestamp is not None and uts <= stored.timestamp:
                continue
            updates.append(
                ContractEntity(contract_address=contract_address, entity_type=kind, timestamp=uts)
            )
        await gather_all(self._contract_entity_repository.save(u) for u in updates)
