"""Repository pattern for async database operations.

Each repository owns one table and one :class:`asyncio.Lock`. ``save``
and ``create`` run their read-validate-write cycle under that lock in a
session of their own, so concurrent writers to the same repository are
serialised and an invariant check never races a concurrent write. Reads
(``get`` and friends) do not take the lock.

After a successful write the repository notifies its observers (see
:class:`facilitator.core.observer.Subject`) with the merged entity, once
the lock has been released.

Conversion helpers translate between core domain models
(:mod:`facilitator.core.models`) and ORM records.
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, ClassVar, Generic, TypeVar

from pydantic import BaseModel
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from facilitator.core.enums import (
    Chain,
    EntityType,
    GatewayType,
    MessageDirection,
    MessageStatus,
    MessageType,
    RequestType,
    StatusRegressionPolicy,
)
from facilitator.core.errors import (
    InvariantViolationError,
    NonMonotonicUpdateError,
    RepositoryError,
    UniquenessViolationError,
)
from facilitator.core.lattice import ensure_forward_transition, is_forward_transition
from facilitator.core.models import (
    MANAGED_FIELDS,
    Anchor,
    ContractEntity,
    Gateway,
    Message,
    Request,
    Transaction,
    defined_fields,
)
from facilitator.core.observer import Subject

from .models import (
    AnchorRecord,
    Base,
    ContractEntityRecord,
    GatewayRecord,
    MessageRecord,
    RequestRecord,
    TransactionRecord,
)

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)
RecordT = TypeVar("RecordT", bound=Base)


def _to_column(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    return value


def _opt_int(value: Any) -> int | None:
    return None if value is None else int(value)


# ---------------------------------------------------------------------------
# Conversion helpers
# ---------------------------------------------------------------------------

def _record_to_message(record: MessageRecord) -> Message:
    return Message(
        message_hash=record.message_hash,
        type=MessageType(record.type) if record.type else None,
        direction=MessageDirection(record.direction) if record.direction else None,
        gateway_address=record.gateway_address,
        source_status=MessageStatus(record.source_status),
        target_status=MessageStatus(record.target_status),
        gas_price=record.gas_price,
        gas_limit=record.gas_limit,
        nonce=record.nonce,
        sender=record.sender,
        secret=record.secret,
        hash_lock=record.hash_lock,
        source_declaration_block_height=record.source_declaration_block_height,
        created_at=record.created_at,
        updated_at=record.updated_at,
    )


def _record_to_anchor(record: AnchorRecord) -> Anchor:
    return Anchor(
        anchor_ga=record.anchor_ga,
        last_anchored_block_number=record.last_anchored_block_number,
        created_at=record.created_at,
        updated_at=record.updated_at,
    )


def _record_to_gateway(record: GatewayRecord) -> Gateway:
    return Gateway(
        gateway_address=record.gateway_address,
        chain=Chain(record.chain) if record.chain else None,
        gateway_type=GatewayType(record.gateway_type) if record.gateway_type else None,
        remote_gateway_address=record.remote_gateway_address,
        token_address=record.token_address,
        anchor_address=record.anchor_address,
        bounty=_opt_int(record.bounty),
        activation=record.activation,
        last_remote_gateway_proven_block_height=record.last_remote_gateway_proven_block_height,
        created_at=record.created_at,
        updated_at=record.updated_at,
    )


def _record_to_transaction(record: TransactionRecord) -> Transaction:
    return Transaction(
        id=record.id,
        chain=Chain(record.chain),
        from_address=record.from_address,
        to_address=record.to_address,
        encoded_data=record.encoded_data,
        gas_price=record.gas_price,
        gas=record.gas,
        tx_hash=record.tx_hash,
        nonce=record.nonce,
        created_at=record.created_at,
        updated_at=record.updated_at,
    )


def _record_to_request(record: RequestRecord) -> Request:
    return Request(
        request_hash=record.request_hash,
        request_type=RequestType(record.request_type) if record.request_type else None,
        amount=_opt_int(record.amount),
        beneficiary=record.beneficiary,
        gas_price=record.gas_price,
        gas_limit=record.gas_limit,
        nonce=record.nonce,
        gateway=record.gateway,
        sender=record.sender,
        sender_proxy=record.sender_proxy,
        message_hash=record.message_hash,
        block_number=record.block_number,
        created_at=record.created_at,
        updated_at=record.updated_at,
    )


def _record_to_contract_entity(record: ContractEntityRecord) -> ContractEntity:
    return ContractEntity(
        contract_address=record.contract_address,
        entity_type=EntityType(record.entity_type),
        timestamp=record.timestamp,
        created_at=record.created_at,
        updated_at=record.updated_at,
    )


# ---------------------------------------------------------------------------
# Repository base
# ---------------------------------------------------------------------------

class Repository(Subject[ModelT], Generic[ModelT, RecordT], ABC):
    """Create, update and retrieve one entity type.

    Subclasses declare the record type, the key fields, the fields an
    insert cannot do without, and the fields that must strictly increase
    on every update. :meth:`_prepare` is the hook for further invariants.
    """

    entity_name: ClassVar[str]
    record_type: ClassVar[type[Base]]
    key_fields: ClassVar[tuple[str, ...]]
    required_fields: ClassVar[tuple[str, ...]] = ()
    monotonic_fields: ClassVar[tuple[str, ...]] = ()

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        super().__init__()
        self._session_factory = session_factory
        self._lock = asyncio.Lock()

    # -- public API ---------------------------------------------------------

    async def save(self, entity: ModelT) -> ModelT:
        """Insert *entity* or merge it into the stored one.

        Only fields explicitly set on *entity* (and not ``None``) are
        written; every other stored field is left as it is.

        Returns:
            The entity as persisted, with all stored fields.

        Raises:
            RepositoryError: If an invariant of the entity type is violated.
        """
        async with self._lock:
            saved = await self._write(entity, create_only=False)
        await self.notify(saved)
        return saved

    async def create(self, entity: ModelT) -> ModelT:
        """Insert *entity*; never merge.

        Raises:
            UniquenessViolationError: If an entity with the same key exists.
        """
        async with self._lock:
            saved = await self._write(entity, create_only=True)
        await self.notify(saved)
        return saved

    async def get(self, *key: Any) -> ModelT | None:
        """Return the entity stored under *key*, or ``None``."""
        async with self._session_factory() as session:
            record = await session.get(self.record_type, key if len(key) > 1 else key[0])
            if record is None:
                return None
            return self._to_model(record)

    # -- hooks --------------------------------------------------------------

    @abstractmethod
    def _to_model(self, record: Any) -> ModelT:
        """Convert an ORM record into the domain model."""

    def _key(self, entity: ModelT) -> Any:
        values = tuple(getattr(entity, name) for name in self.key_fields)
        return values if len(values) > 1 else values[0]

    def _insert_defaults(self) -> dict[str, Any]:
        return {}

    def _prepare(
        self,
        stored: ModelT | None,
        changes: dict[str, Any],
        **options: Any,
    ) -> dict[str, Any]:
        """Validate *changes* against *stored* and return what to write.

        *options* are passed through from the write operation, for
        subclasses whose invariants can be relaxed per call.
        """
        if stored is None:
            missing = [name for name in self.required_fields if name not in changes]
            if missing:
                raise RepositoryError(
                    f"Cannot create {self.entity_name} without {', '.join(missing)}"
                )
            return changes

        for name in self.monotonic_fields:
            update = changes.get(name)
            current = getattr(stored, name)
            if update is not None and current is not None and update <= current:
                logger.warning(
                    "Rejected %s update for %s: %s %s -> %s",
                    self.entity_name, self._key(stored), name, current, update,
                )
                raise NonMonotonicUpdateError(name, current, update)
        return changes

    async def _load(self, session: AsyncSession, entity: ModelT) -> Any:
        return await session.get(self.record_type, self._key(entity))

    # -- internals ----------------------------------------------------------

    async def _write(self, entity: ModelT, *, create_only: bool, **options: Any) -> ModelT:
        changes = defined_fields(
            entity, exclude=MANAGED_FIELDS | frozenset(self.key_fields),
        )
        try:
            async with self._session_factory() as session:
                async with session.begin():
                    record = await self._load(session, entity)
                    if record is not None and create_only:
                        raise UniquenessViolationError(self.entity_name, self._key(entity))

                    stored = self._to_model(record) if record is not None else None
                    changes = self._prepare(stored, changes, **options)

                    if record is None:
                        values = self._insert_defaults()
                        values.update(changes)
                        record = self.record_type(
                            **{name: _to_column(getattr(entity, name)) for name in self.key_fields},
                            **{name: _to_column(v) for name, v in values.items()},
                        )
                        session.add(record)
                        await session.flush()
                        await session.refresh(record)
                        logger.debug("Inserted %s %s", self.entity_name, self._key(entity))
                    else:
                        updated = {
                            name: _to_column(v)
                            for name, v in changes.items()
                            if getattr(record, name) != _to_column(v)
                        }
                        if updated:
                            for name, value in updated.items():
                                setattr(record, name, value)
                            await session.flush()
                            await session.refresh(record)
                            logger.debug(
                                "Updated %s %s fields=%s",
                                self.entity_name, self._key(entity), sorted(updated),
                            )

                    saved = self._to_model(record)
        except IntegrityError as exc:
            logger.warning("Integrity error saving %s: %s", self.entity_name, exc.orig)
            raise UniquenessViolationError(self.entity_name, self._key(entity)) from exc
        return saved


# ---------------------------------------------------------------------------
# MessageRepository
# ---------------------------------------------------------------------------

class MessageRepository(Repository[Message, MessageRecord]):
    """Stores messages and guards the status lattice of both sides.

    A backward status update through :meth:`save` is rejected with
    :class:`InvariantViolationError` under
    :attr:`StatusRegressionPolicy.REJECT`, or dropped (the stored status is
    kept and the remaining fields merged) under
    :attr:`StatusRegressionPolicy.IGNORE`.

    Event handlers write through :meth:`advance` instead, which always
    drops a status that is behind the stored one. Handlers for the same
    message race, so only the lock can decide which move is forward.
    """

    entity_name = "message"
    record_type = MessageRecord
    key_fields = ("message_hash",)

    STATUS_FIELDS = ("source_status", "target_status")

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        regression_policy: StatusRegressionPolicy = StatusRegressionPolicy.REJECT,
    ) -> None:
        super().__init__(session_factory)
        self._regression_policy = regression_policy

    @property
    def regression_policy(self) -> StatusRegressionPolicy:
        return self._regression_policy

    def _to_model(self, record: MessageRecord) -> Message:
        return _record_to_message(record)

    def _insert_defaults(self) -> dict[str, Any]:
        return {
            "source_status": MessageStatus.UNDECLARED,
            "target_status": MessageStatus.UNDECLARED,
        }

    async def advance(self, message: Message) -> Message:
        """Merge *message*, moving its statuses forward only.

        Like :meth:`save`, but a status behind the stored one is dropped
        regardless of the configured policy, and the remaining fields of
        *message* are merged. The comparison runs under the lock against
        the stored row, so concurrent handlers of one message converge.
        """
        async with self._lock:
            saved = await self._write(
                message, create_only=False, policy=StatusRegressionPolicy.IGNORE,
            )
        await self.notify(saved)
        return saved

    def _prepare(
        self,
        stored: Message | None,
        changes: dict[str, Any],
        *,
        policy: StatusRegressionPolicy | None = None,
        **options: Any,
    ) -> dict[str, Any]:
        changes = super()._prepare(stored, changes, **options)
        if stored is None:
            return changes

        policy = policy or self._regression_policy
        for name in self.STATUS_FIELDS:
            proposed = changes.get(name)
            if proposed is None:
                continue
            current = getattr(stored, name)
            if policy == StatusRegressionPolicy.REJECT:
                try:
                    ensure_forward_transition(name, current, proposed)
                except InvariantViolationError:
                    logger.warning(
                        "Rejected message %s: %s %s -> %s",
                        stored.message_hash, name, current.value, proposed.value,
                    )
                    raise
            elif not is_forward_transition(current, proposed):
                logger.info(
                    "Kept message %s %s at %s, ignoring %s",
                    stored.message_hash, name, current.value, proposed.value,
                )
                del changes[name]
        return changes

    async def get_by_gateway_and_nonce(
        self,
        gateway_address: str,
        nonce: int,
    ) -> Message | None:
        """Return the message sent through *gateway_address* with *nonce*."""
        stmt = (
            select(MessageRecord)
            .where(
                MessageRecord.gateway_address == gateway_address,
                MessageRecord.nonce == nonce,
            )
            .limit(1)
        )
        async with self._session_factory() as session:
            record = (await session.execute(stmt)).scalar_one_or_none()
            return _record_to_message(record) if record is not None else None


# ---------------------------------------------------------------------------
# AnchorRepository
# ---------------------------------------------------------------------------

class AnchorRepository(Repository[Anchor, AnchorRecord]):
    """Stores anchors; ``last_anchored_block_number`` must strictly grow.

    The first save for an anchor always succeeds. Every later save must
    carry a block number above the stored one, otherwise
    :class:`NonMonotonicUpdateError` is raised and nothing is written.
    """

    entity_name = "anchor"
    record_type = AnchorRecord
    key_fields = ("anchor_ga",)
    required_fields = ("last_anchored_block_number",)
    monotonic_fields = ("last_anchored_block_number",)

    def _to_model(self, record: AnchorRecord) -> Anchor:
        return _record_to_anchor(record)


# ---------------------------------------------------------------------------
# GatewayRepository
# ---------------------------------------------------------------------------

class GatewayRepository(Repository[Gateway, GatewayRecord]):
    """Stores gateways; the proven remote block height must strictly grow."""

    entity_name = "gateway"
    record_type = GatewayRecord
    key_fields = ("gateway_address",)
    monotonic_fields = ("last_remote_gateway_proven_block_height",)

    def _to_model(self, record: GatewayRecord) -> Gateway:
        return _record_to_gateway(record)


# ---------------------------------------------------------------------------
# RequestRepository
# ---------------------------------------------------------------------------

class RequestRepository(Repository[Request, RequestRecord]):
    """Stores stake and redeem requests.

    New requests go through :meth:`create`, which refuses a request hash
    that is already stored. :meth:`save` is used afterwards to attach the
    hash of the message a request led to.
    """

    entity_name = "request"
    record_type = RequestRecord
    key_fields = ("request_hash",)

    def _to_model(self, record: RequestRecord) -> Request:
        return _record_to_request(record)

    async def get_by_message_hash(self, message_hash: str) -> Request | None:
        stmt = select(RequestRecord).where(RequestRecord.message_hash == message_hash)
        async with self._session_factory() as session:
            record = (await session.execute(stmt)).scalar_one_or_none()
            return _record_to_request(record) if record is not None else None

    async def get_by_sender_proxy_nonce(
        self,
        sender_proxy: str,
        nonce: int,
        gateway: str | None = None,
    ) -> Request | None:
        """Return the latest request made through *sender_proxy* with *nonce*.

        Args:
            sender_proxy: Staker / redeemer proxy that submitted the request.
            nonce: Proxy nonce of the request.
            gateway: Restrict to requests for this gateway, if given.
        """
        stmt = select(RequestRecord).where(
            RequestRecord.sender_proxy == sender_proxy,
            RequestRecord.nonce == nonce,
        )
        if gateway is not None:
            stmt = stmt.where(RequestRecord.gateway == gateway)
        stmt = stmt.order_by(RequestRecord.created_at.desc()).limit(1)

        async with self._session_factory() as session:
            record = (await session.execute(stmt)).scalar_one_or_none()
            return _record_to_request(record) if record is not None else None


# ---------------------------------------------------------------------------
# TransactionRepository
# ---------------------------------------------------------------------------

class TransactionRepository(Repository[Transaction, TransactionRecord]):
    """Stores transactions of one chain.

    The origin and auxiliary repositories share the ``transactions`` table
    and are told apart by its ``chain`` column. ``id`` is assigned on the
    first save.
    """

    entity_name = "transaction"
    record_type = TransactionRecord
    key_fields = ("id",)

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        chain: Chain,
    ) -> None:
        super().__init__(session_factory)
        self._chain = chain

    @property
    def chain(self) -> Chain:
        return self._chain

    def _to_model(self, record: TransactionRecord) -> Transaction:
        return _record_to_transaction(record)

    def _key(self, entity: Transaction) -> Any:
        return entity.id

    def _insert_defaults(self) -> dict[str, Any]:
        return {"chain": self._chain}

    def _prepare(
        self,
        stored: Transaction | None,
        changes: dict[str, Any],
        **options: Any,
    ) -> dict[str, Any]:
        changes.pop("chain", None)
        return super()._prepare(stored, changes, **options)

    async def _load(self, session: AsyncSession, entity: Transaction) -> Any:
        if entity.id is None:
            return None
        return await self._find(session, entity.id)

    async def _find(self, session: AsyncSession, id: int) -> TransactionRecord | None:
        stmt = select(TransactionRecord).where(
            TransactionRecord.id == id,
            TransactionRecord.chain == self._chain.value,
        )
        return (await session.execute(stmt)).scalar_one_or_none()

    async def get(self, id: int) -> Transaction | None:  # type: ignore[override]
        async with self._session_factory() as session:
            record = await self._find(session, id)
            return _record_to_transaction(record) if record is not None else None

    async def dequeue(self) -> Transaction | None:
        """Return the oldest transaction that has not been sent yet.

        A transaction counts as not sent while its ``tx_hash`` is unset.
        """
        stmt = (
            select(TransactionRecord)
            .where(
                TransactionRecord.chain == self._chain.value,
                TransactionRecord.tx_hash.is_(None),
            )
            .order_by(TransactionRecord.id.asc())
            .limit(1)
        )
        async with self._session_factory() as session:
            record = (await session.execute(stmt)).scalar_one_or_none()
            return _record_to_transaction(record) if record is not None else None


# ---------------------------------------------------------------------------
# ContractEntityRepository
# ---------------------------------------------------------------------------

class ContractEntityRepository(Repository[ContractEntity, ContractEntityRecord]):
    """Stores the upstream timestamp high-water mark per contract and kind."""

    entity_name = "contract entity"
    record_type = ContractEntityRecord
    key_fields = ("contract_address", "entity_type")
    required_fields = ("timestamp",)

    def _to_model(self, record: ContractEntityRecord) -> ContractEntity:
        return _record_to_contract_entity(record)

    def _key(self, entity: ContractEntity) -> Any:
        return (entity.contract_address, _to_column(entity.entity_type))

    async def get(  # type: ignore[override]
        self,
        contract_address: str,
        entity_type: EntityType,
    ) -> ContractEntity | None:
        return await super().get(contract_address, _to_column(entity_type))
