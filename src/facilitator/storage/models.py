"""SQLAlchemy ORM models for the facilitator database.

One table per entity. Column names match the field names of the domain
models in :mod:`facilitator.core.models`; enum columns store the enum
value. Large on-chain amounts use ``Numeric(78, 0)`` (uint256).

Relationships are deliberately absent: ``requests.message_hash`` is a
weak reference and may point at a message that does not exist yet.
"""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import (
    BigInteger,
    Boolean,
    DateTime,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

# SQLite only autoincrements INTEGER PRIMARY KEY columns.
_BigIntId = BigInteger().with_variant(Integer, "sqlite")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ---------------------------------------------------------------------------
# Declarative base
# ---------------------------------------------------------------------------

class Base(DeclarativeBase):
    """Shared declarative base for all ORM models."""

    pass


class _Timestamps:
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, server_default=func.now(),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, server_default=func.now(),
    )


# ---------------------------------------------------------------------------
# MessageRecord
# ---------------------------------------------------------------------------

class MessageRecord(_Timestamps, Base):
    """Canonical state of a cross-chain message."""

    __tablename__ = "messages"

    message_hash: Mapped[str] = mapped_column(String(66), primary_key=True)
    type: Mapped[str | None] = mapped_column(String(16), nullable=True)
    direction: Mapped[str | None] = mapped_column(String(24), nullable=True)
    gateway_address: Mapped[str | None] = mapped_column(String(42), nullable=True)
    source_status: Mapped[str] = mapped_column(String(24), nullable=False)
    target_status: Mapped[str] = mapped_column(String(24), nullable=False)
    gas_price: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    gas_limit: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    nonce: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    sender: Mapped[str | None] = mapped_column(String(42), nullable=True)
    secret: Mapped[str | None] = mapped_column(String(66), nullable=True)
    hash_lock: Mapped[str | None] = mapped_column(String(66), nullable=True)
    source_declaration_block_height: Mapped[int | None] = mapped_column(
        BigInteger, nullable=True,
    )

    __table_args__ = (
        Index("ix_messages_gateway_nonce", "gateway_address", "nonce"),
        Index("ix_messages_source_status", "source_status"),
        Index("ix_messages_target_status", "target_status"),
    )

    def __repr__(self) -> str:
        return (
            f"<MessageRecord(message_hash={self.message_hash!r}, "
            f"source_status={self.source_status!r}, target_status={self.target_status!r})>"
        )


# ---------------------------------------------------------------------------
# AnchorRecord
# ---------------------------------------------------------------------------

class AnchorRecord(_Timestamps, Base):
    """Latest anchored block number per anchor contract."""

    __tablename__ = "anchors"

    anchor_ga: Mapped[str] = mapped_column(String(128), primary_key=True)
    last_anchored_block_number: Mapped[int] = mapped_column(BigInteger, nullable=False)

    def __repr__(self) -> str:
        return (
            f"<AnchorRecord(anchor_ga={self.anchor_ga!r}, "
            f"last_anchored_block_number={self.last_anchored_block_number})>"
        )


# ---------------------------------------------------------------------------
# GatewayRecord
# ---------------------------------------------------------------------------

class GatewayRecord(_Timestamps, Base):
    """Gateway / co-gateway contract."""

    __tablename__ = "gateways"

    gateway_address: Mapped[str] = mapped_column(String(42), primary_key=True)
    chain: Mapped[str | None] = mapped_column(String(16), nullable=True)
    gateway_type: Mapped[str | None] = mapped_column(String(16), nullable=True)
    remote_gateway_address: Mapped[str | None] = mapped_column(String(42), nullable=True)
    token_address: Mapped[str | None] = mapped_column(String(42), nullable=True)
    anchor_address: Mapped[str | None] = mapped_column(String(42), nullable=True)
    bounty: Mapped[Decimal | None] = mapped_column(Numeric(78, 0), nullable=True)
    activation: Mapped[bool | None] = mapped_column(Boolean, nullable=True)
    last_remote_gateway_proven_block_height: Mapped[int | None] = mapped_column(
        BigInteger, nullable=True,
    )

    def __repr__(self) -> str:
        return f"<GatewayRecord(gateway_address={self.gateway_address!r})>"


# ---------------------------------------------------------------------------
# TransactionRecord
# ---------------------------------------------------------------------------

class TransactionRecord(_Timestamps, Base):
    """Transaction queued for submission on the origin or auxiliary chain."""

    __tablename__ = "transactions"

    id: Mapped[int] = mapped_column(_BigIntId, primary_key=True, autoincrement=True)
    chain: Mapped[str] = mapped_column(String(16), nullable=False)
    from_address: Mapped[str | None] = mapped_column(String(42), nullable=True)
    to_address: Mapped[str | None] = mapped_column(String(42), nullable=True)
    encoded_data: Mapped[str | None] = mapped_column(Text, nullable=True)
    gas_price: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    gas: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    tx_hash: Mapped[str | None] = mapped_column(String(66), nullable=True)
    nonce: Mapped[int | None] = mapped_column(BigInteger, nullable=True)

    __table_args__ = (
        Index("ix_transactions_chain_tx_hash", "chain", "tx_hash"),
    )

    def __repr__(self) -> str:
        return (
            f"<TransactionRecord(id={self.id}, chain={self.chain!r}, "
            f"tx_hash={self.tx_hash!r})>"
        )


# ---------------------------------------------------------------------------
# RequestRecord
# ---------------------------------------------------------------------------

class RequestRecord(_Timestamps, Base):
    """Stake / redeem request observed on a composer contract."""

    __tablename__ = "requests"

    request_hash: Mapped[str] = mapped_column(String(66), primary_key=True)
    request_type: Mapped[str | None] = mapped_column(String(16), nullable=True)
    amount: Mapped[Decimal | None] = mapped_column(Numeric(78, 0), nullable=True)
    beneficiary: Mapped[str | None] = mapped_column(String(42), nullable=True)
    gas_price: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    gas_limit: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    nonce: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    gateway: Mapped[str | None] = mapped_column(String(42), nullable=True)
    sender: Mapped[str | None] = mapped_column(String(42), nullable=True)
    sender_proxy: Mapped[str | None] = mapped_column(String(42), nullable=True)
    message_hash: Mapped[str | None] = mapped_column(String(66), unique=True, nullable=True)
    block_number: Mapped[int | None] = mapped_column(BigInteger, nullable=True)

    __table_args__ = (
        Index("ix_requests_sender_proxy_nonce", "sender_proxy", "nonce"),
    )

    def __repr__(self) -> str:
        return (
            f"<RequestRecord(request_hash={self.request_hash!r}, "
            f"message_hash={self.message_hash!r})>"
        )


# ---------------------------------------------------------------------------
# ContractEntityRecord
# ---------------------------------------------------------------------------

class ContractEntityRecord(_Timestamps, Base):
    """Latest upstream timestamp seen per contract and event kind."""

    __tablename__ = "contract_entities"

    contract_address: Mapped[str] = mapped_column(String(42), primary_key=True)
    entity_type: Mapped[str] = mapped_column(String(32), primary_key=True)
    timestamp: Mapped[int] = mapped_column(BigInteger, nullable=False)

    def __repr__(self) -> str:
        return (
            f"<ContractEntityRecord(contract_address={self.contract_address!r}, "
            f"entity_type={self.entity_type!r}, timestamp={self.timestamp})>"
        )
