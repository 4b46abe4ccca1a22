"""Handlers for stake and redeem request events."""

from __future__ import annotations

import asyncio
import logging
from abc import abstractmethod
from typing import Any, ClassVar, Mapping, Sequence

from facilitator.core.enums import EntityType, RequestType
from facilitator.core.models import Request
from facilitator.storage.repos import RequestRepository

from .base import ContractEntityHandler, gather_all
from .payloads import (
    EventRecord,
    RedeemRequestedRecord,
    StakeRequestedRecord,
    parse_records,
)

logger = logging.getLogger(__name__)


class RequestedHandler(ContractEntityHandler[Request]):
    """Creates one request per record.

    A request hash that is already stored (or repeated within the batch)
    is a replay of an event seen before and is skipped.
    """

    payload_type: ClassVar[type[EventRecord]]

    def __init__(self, request_repository: RequestRepository) -> None:
        self._request_repository = request_repository

    async def persist(self, records: Sequence[Mapping[str, Any]]) -> list[Request]:
        events = parse_records(self.payload_type, self.kind, records)
        logger.debug("Persisting %d %s records", len(events), self.kind.value)

        requests: dict[str, Request] = {}
        for event in events:
            request = self.to_request(event)
            requests.setdefault(request.request_hash, request)

        stored = await asyncio.gather(
            *(self._request_repository.get(request_hash) for request_hash in requests)
        )
        fresh = [
            request
            for request, existing in zip(requests.values(), stored)
            if existing is None
        ]
        if len(fresh) < len(events):
            logger.debug(
                "Skipped %d replayed %s records", len(events) - len(fresh), self.kind.value,
            )

        created = await gather_all(self._request_repository.create(r) for r in fresh)
        logger.debug("Created %d requests", len(created))
        return created

    @abstractmethod
    def to_request(self, event: Any) -> Request:
        """Map a parsed record onto a new request."""


class StakeRequestedHandler(RequestedHandler):
    kind = EntityType.STAKE_REQUESTEDS
    payload_type = StakeRequestedRecord

    def to_request(self, event: StakeRequestedRecord) -> Request:
        return Request(
            request_hash=event.stake_request_hash,
            request_type=RequestType.STAKE,
            amount=event.amount,
            beneficiary=event.beneficiary,
            gas_price=event.gas_price,
            gas_limit=event.gas_limit,
            nonce=event.nonce,
            gateway=event.gateway,
            sender=event.staker,
            sender_proxy=event.staker_proxy,
            block_number=event.block_number,
        )


class RedeemRequestedHandler(RequestedHandler):
    kind = EntityType.REDEEM_REQUESTEDS
    payload_type = RedeemRequestedRecord

    def to_request(self, event: RedeemRequestedRecord) -> Request:
        return Request(
            request_hash=event.redeem_request_hash,
            request_type=RequestType.REDEEM,
            amount=event.amount,
            beneficiary=event.beneficiary,
            gas_price=event.gas_price,
            gas_limit=event.gas_limit,
            nonce=event.nonce,
            gateway=event.cogateway,
            sender=event.redeemer,
            sender_proxy=event.redeemer_proxy,
            block_number=event.block_number,
        )
