"""Handlers for events that move a message along its lattice.

Every handler owns one side of the message (source or target) and one
status it proposes for that side. The upstream feed gives no ordering
between declare, confirm and progress events, so a handler:

- creates the message if this is the first event seen for its hash,
- proposes its status only if that is a forward move from the stored one
  it read; the repository repeats that check under its lock, since another
  handler of the same message may have moved it in between,
- sends only the fields its event kind is authoritative for.

The update handed to the repository is partial; fields the handler does
not know are left unset and never overwrite what other handlers stored.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, ClassVar, Mapping, Sequence

from facilitator.core.enums import (
    EntityType,
    MessageDirection,
    MessageStatus,
    MessageType,
)
from facilitator.core.lattice import is_forward_transition
from facilitator.core.models import Message, Request
from facilitator.storage.repos import MessageRepository, RequestRepository

from .base import ContractEntityHandler, gather_all
from .payloads import (
    MessageEventRecord,
    MintProgressedRecord,
    RedeemIntentConfirmedRecord,
    RedeemIntentDeclaredRecord,
    RedeemProgressedRecord,
    StakeIntentConfirmedRecord,
    StakeIntentDeclaredRecord,
    StakeProgressedRecord,
    UnstakeProgressedRecord,
    parse_records,
)

logger = logging.getLogger(__name__)

SOURCE = "source_status"
TARGET = "target_status"


class MessageEventHandler(ContractEntityHandler[Message]):
    """Shared algorithm of the message handlers."""

    payload_type: ClassVar[type[MessageEventRecord]]
    side: ClassVar[str]
    proposed_status: ClassVar[MessageStatus]
    message_type: ClassVar[MessageType]
    direction: ClassVar[MessageDirection]

    def __init__(self, message_repository: MessageRepository) -> None:
        self._message_repository = message_repository

    async def persist(self, records: Sequence[Mapping[str, Any]]) -> list[Message]:
        events = parse_records(self.payload_type, self.kind, records)
        logger.debug("Persisting %d %s records", len(events), self.kind.value)

        stored = await asyncio.gather(
            *(self._message_repository.get(event.message_hash) for event in events)
        )
        updates = [self.build_update(event, message) for event, message in zip(events, stored)]

        saved = await gather_all(self._message_repository.advance(update) for update in updates)
        logger.debug("Saved %d messages for %s", len(saved), self.kind.value)
        return saved

    def build_update(self, event: Any, stored: Message | None) -> Message:
        """Return the partial message this event implies."""
        update = Message(message_hash=event.message_hash)
        if stored is None:
            logger.debug("Creating a new message for message hash %s", event.message_hash)
            update.type = self.message_type
            update.direction = self.direction
            self.describe(update, event)
            current = MessageStatus.UNDECLARED
        else:
            current = getattr(stored, self.side)

        if current != self.proposed_status and is_forward_transition(current, self.proposed_status):
            logger.debug(
                "Changing %s of %s: %s -> %s",
                self.side, event.message_hash, current.value, self.proposed_status.value,
            )
            setattr(update, self.side, self.proposed_status)

        self.apply(update, event)
        return update

    def describe(self, update: Message, event: Any) -> None:
        """Set the fields known from the event alone on a new message."""
        if event.sender is not None:
            update.sender = event.sender
        if event.sender_nonce is not None:
            update.nonce = event.sender_nonce

    def apply(self, update: Message, event: Any) -> None:
        """Set the fields this event kind is authoritative for."""


# ---------------------------------------------------------------------------
# Declare (source side)
# ---------------------------------------------------------------------------

class IntentDeclaredHandler(MessageEventHandler):
    """Source side moves to Declared.

    Declare events are authoritative for sender, nonce, gateway and the
    declaration block height. They also link the request the message was
    made for (same sender proxy, nonce and gateway) to the message hash,
    and carry the request's gas price and limit over to the message.
    """

    side = SOURCE
    proposed_status = MessageStatus.DECLARED

    def __init__(
        self,
        message_repository: MessageRepository,
        request_repository: RequestRepository,
    ) -> None:
        super().__init__(message_repository)
        self._request_repository = request_repository

    async def persist(self, records: Sequence[Mapping[str, Any]]) -> list[Message]:
        events = parse_records(self.payload_type, self.kind, records)
        logger.debug("Persisting %d %s records", len(events), self.kind.value)

        stored, requests = await asyncio.gather(
            asyncio.gather(
                *(self._message_repository.get(event.message_hash) for event in events)
            ),
            asyncio.gather(
                *(
                    self._request_repository.get_by_sender_proxy_nonce(
                        event.sender, event.sender_nonce, gateway=event.contract_address,
                    )
                    for event in events
                )
            ),
        )

        updates = []
        for event, message, request in zip(events, stored, requests):
            update = self.build_update(event, message)
            if request is not None:
                if message is None or message.gas_price is None:
                    update.gas_price = request.gas_price
                if message is None or message.gas_limit is None:
                    update.gas_limit = request.gas_limit
            updates.append(update)

        saved = await gather_all(self._message_repository.advance(update) for update in updates)

        links = {
            request.request_hash: event.message_hash
            for event, request in zip(events, requests)
            if request is not None and request.message_hash is None
        }
        await gather_all(
            self._request_repository.save(
                Request(request_hash=request_hash, message_hash=message_hash)
            )
            for request_hash, message_hash in links.items()
        )
        if links:
            logger.debug("Linked %d requests to their messages", len(links))

        logger.debug("Saved %d messages for %s", len(saved), self.kind.value)
        return saved

    def apply(self, update: Message, event: Any) -> None:
        update.gateway_address = event.contract_address
        update.sender = event.sender
        update.nonce = event.sender_nonce
        if event.block_number is not None:
            update.source_declaration_block_height = event.block_number


class StakeIntentDeclaredHandler(IntentDeclaredHandler):
    kind = EntityType.STAKE_INTENT_DECLAREDS
    payload_type = StakeIntentDeclaredRecord
    message_type = MessageType.STAKE
    direction = MessageDirection.ORIGIN_TO_AUXILIARY


class RedeemIntentDeclaredHandler(IntentDeclaredHandler):
    kind = EntityType.REDEEM_INTENT_DECLAREDS
    payload_type = RedeemIntentDeclaredRecord
    message_type = MessageType.REDEEM
    direction = MessageDirection.AUXILIARY_TO_ORIGIN


# ---------------------------------------------------------------------------
# Progress (source side)
# ---------------------------------------------------------------------------

class ProgressHandler(MessageEventHandler):
    """Source side moves to Progressed; the unlock secret is recorded.

    A progress event seen before its declare event creates the message.
    """

    side = SOURCE
    proposed_status = MessageStatus.PROGRESSED

    def describe(self, update: Message, event: Any) -> None:
        super().describe(update, event)
        update.gateway_address = event.contract_address

    def apply(self, update: Message, event: Any) -> None:
        if event.secret is not None:
            update.secret = event.secret


class StakeProgressHandler(ProgressHandler):
    kind = EntityType.STAKE_PROGRESSEDS
    payload_type = StakeProgressedRecord
    message_type = MessageType.STAKE
    direction = MessageDirection.ORIGIN_TO_AUXILIARY


class RedeemProgressHandler(ProgressHandler):
    kind = EntityType.REDEEM_PROGRESSEDS
    payload_type = RedeemProgressedRecord
    message_type = MessageType.REDEEM
    direction = MessageDirection.AUXILIARY_TO_ORIGIN


# ---------------------------------------------------------------------------
# Confirm (target side)
# ---------------------------------------------------------------------------

class IntentConfirmedHandler(MessageEventHandler):
    """Target side moves to Declared; the hash lock is recorded."""

    side = TARGET
    proposed_status = MessageStatus.DECLARED

    def apply(self, update: Message, event: Any) -> None:
        if event.hash_lock is not None:
            update.hash_lock = event.hash_lock


class StakeIntentConfirmedHandler(IntentConfirmedHandler):
    kind = EntityType.STAKE_INTENT_CONFIRMEDS
    payload_type = StakeIntentConfirmedRecord
    message_type = MessageType.STAKE
    direction = MessageDirection.ORIGIN_TO_AUXILIARY


class RedeemIntentConfirmedHandler(IntentConfirmedHandler):
    kind = EntityType.REDEEM_INTENT_CONFIRMEDS
    payload_type = RedeemIntentConfirmedRecord
    message_type = MessageType.REDEEM
    direction = MessageDirection.AUXILIARY_TO_ORIGIN


# ---------------------------------------------------------------------------
# Progress (target side)
# ---------------------------------------------------------------------------

class TargetProgressHandler(MessageEventHandler):
    """Target side moves to Progressed; the unlock secret is recorded."""

    side = TARGET
    proposed_status = MessageStatus.PROGRESSED

    def apply(self, update: Message, event: Any) -> None:
        if event.secret is not None:
            update.secret = event.secret


class MintProgressHandler(TargetProgressHandler):
    kind = EntityType.MINT_PROGRESSEDS
    payload_type = MintProgressedRecord
    message_type = MessageType.STAKE
    direction = MessageDirection.ORIGIN_TO_AUXILIARY


class UnstakeProgressHandler(TargetProgressHandler):
    kind = EntityType.UNSTAKE_PROGRESSEDS
    payload_type = UnstakeProgressedRecord
    message_type = MessageType.REDEEM
    direction = MessageDirection.AUXILIARY_TO_ORIGIN
