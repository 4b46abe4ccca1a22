"""Core domain models of the facilitator.

Every entity carries one mandatory key. All other fields default to
``None`` so that a handler which only learned part of an entity can still
describe it. Pydantic records which fields were explicitly assigned; a
repository merges exactly those fields (see :func:`defined_fields`) and
leaves every other stored column untouched.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from .enums import (
    Chain,
    EntityType,
    GatewayType,
    MessageDirection,
    MessageStatus,
    MessageType,
    RequestType,
)

# Maintained by the repositories, never merged from an update.
MANAGED_FIELDS = frozenset({"created_at", "updated_at"})


def defined_fields(entity: BaseModel, *, exclude: frozenset[str] = MANAGED_FIELDS) -> dict[str, Any]:
    """Return the explicitly assigned, non-``None`` fields of *entity*.

    A field left at its default or assigned ``None`` is absent: it must
    never overwrite a stored value.
    """
    return {
        name: getattr(entity, name)
        for name in entity.model_fields_set
        if name not in exclude and getattr(entity, name) is not None
    }


# ---------------------------------------------------------------------------
# Message
# ---------------------------------------------------------------------------

class Message(BaseModel):
    """A cross-chain message, identified by its hash.

    ``source_status`` and ``target_status`` advance independently along
    the message lattice (:mod:`facilitator.core.lattice`).
    """

    message_hash: str
    type: MessageType | None = None
    direction: MessageDirection | None = None
    gateway_address: str | None = None
    source_status: MessageStatus | None = None
    target_status: MessageStatus | None = None
    gas_price: int | None = Field(default=None, ge=0)
    gas_limit: int | None = Field(default=None, ge=0)
    nonce: int | None = Field(default=None, ge=0)
    sender: str | None = None
    secret: str | None = None
    hash_lock: str | None = None
    source_declaration_block_height: int | None = Field(default=None, ge=0)
    created_at: datetime | None = None
    updated_at: datetime | None = None


# ---------------------------------------------------------------------------
# Anchor
# ---------------------------------------------------------------------------

class Anchor(BaseModel):
    """Latest block height anchored by an anchor contract.

    ``last_anchored_block_number`` only ever grows.
    """

    anchor_ga: str  # Global address of the anchor
    last_anchored_block_number: int | None = Field(default=None, ge=0)
    created_at: datetime | None = None
    updated_at: datetime | None = None


# ---------------------------------------------------------------------------
# Gateway
# ---------------------------------------------------------------------------

class Gateway(BaseModel):
    """Gateway or co-gateway contract and its latest proven remote height."""

    gateway_address: str
    chain: Chain | None = None
    gateway_type: GatewayType | None = None
    remote_gateway_address: str | None = None
    token_address: str | None = None
    anchor_address: str | None = None
    bounty: int | None = Field(default=None, ge=0)
    activation: bool | None = None
    last_remote_gateway_proven_block_height: int | None = Field(default=None, ge=0)
    created_at: datetime | None = None
    updated_at: datetime | None = None


# ---------------------------------------------------------------------------
# Transaction
# ---------------------------------------------------------------------------

class Transaction(BaseModel):
    """A blockchain transaction queued for (or already) submitted.

    ``id`` is assigned by the repository on first save.
    """

    id: int | None = None
    chain: Chain | None = None
    from_address: str | None = None
    to_address: str | None = None
    encoded_data: str | None = None
    gas_price: int | None = Field(default=None, ge=0)
    gas: int | None = Field(default=None, ge=0)
    tx_hash: str | None = None
    nonce: int | None = Field(default=None, ge=0)
    created_at: datetime | None = None
    updated_at: datetime | None = None


# ---------------------------------------------------------------------------
# Request
# ---------------------------------------------------------------------------

class Request(BaseModel):
    """Stake or redeem request.

    ``message_hash`` is a weak back-reference: the request usually exists
    before the message it leads to is declared.
    """

    request_hash: str
    request_type: RequestType | None = None
    amount: int | None = Field(default=None, ge=0)
    beneficiary: str | None = None
    gas_price: int | None = Field(default=None, ge=0)
    gas_limit: int | None = Field(default=None, ge=0)
    nonce: int | None = Field(default=None, ge=0)
    gateway: str | None = None
    sender: str | None = None
    sender_proxy: str | None = None
    message_hash: str | None = None
    block_number: int | None = Field(default=None, ge=0)
    created_at: datetime | None = None
    updated_at: datetime | None = None


# ---------------------------------------------------------------------------
# ContractEntity
# ---------------------------------------------------------------------------

class ContractEntity(BaseModel):
    """High-water mark of the upstream timestamp per contract and event kind."""

    contract_address: str
    entity_type: EntityType
    timestamp: int | None = Field(default=None, ge=0)
    created_at: datetime | None = None
    updated_at: datetime | None = None
