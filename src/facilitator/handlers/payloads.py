"""Schemas of the raw event records delivered by the transport layer.

Each upstream event kind gets a pydantic model whose fields are bound to
the upstream names by alias (``_messageHash``, ``_stakerNonce``,
``contractAddress``, ...). Unknown fields are ignored and optional fields
may be absent; numeric strings are coerced to ``int``.
"""

from __future__ import annotations

from typing import Any, Mapping, Sequence, TypeVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from facilitator.core.enums import EntityType
from facilitator.core.errors import PayloadValidationError

RecordT = TypeVar("RecordT", bound="EventRecord")


class EventRecord(BaseModel):
    """Fields every upstream record may carry."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)

    contract_address: str | None = Field(default=None, alias="contractAddress")
    uts: int | None = Field(default=None, ge=0)  # Subgraph update timestamp
    block_number: int | None = Field(default=None, alias="blockNumber", ge=0)


def parse_records(
    schema: type[RecordT],
    kind: EntityType,
    records: Sequence[Mapping[str, Any]],
) -> list[RecordT]:
    """Validate every record of a batch before anything is persisted.

    Raises:
        PayloadValidationError: Listing every failing field of every
            failing record.
    """
    parsed: list[RecordT] = []
    errors: list[str] = []
    for index, record in enumerate(records):
        try:
            parsed.append(schema.model_validate(record))
        except ValidationError as exc:
            for error in exc.errors():
                loc = ".".join(str(part) for part in error["loc"])
                errors.append(f"record {index}: {loc}: {error['msg']}")
    if errors:
        raise PayloadValidationError(kind.value, errors)
    return parsed


# ---------------------------------------------------------------------------
# Messages
# ---------------------------------------------------------------------------

class MessageEventRecord(EventRecord):
    """Any event that references a message by hash."""

    message_hash: str = Field(alias="_messageHash", min_length=1)

    @property
    def sender(self) -> str | None:
        return None

    @property
    def sender_nonce(self) -> int | None:
        return None

    @property
    def secret(self) -> str | None:
        return None


class _StakeFields(MessageEventRecord):
    staker: str = Field(alias="_staker")
    staker_nonce: int = Field(alias="_stakerNonce", ge=0)

    @property
    def sender(self) -> str | None:
        return self.staker

    @property
    def sender_nonce(self) -> int | None:
        return self.staker_nonce


class _RedeemFields(MessageEventRecord):
    redeemer: str = Field(alias="_redeemer")
    redeemer_nonce: int = Field(alias="_redeemerNonce", ge=0)

    @property
    def sender(self) -> str | None:
        return self.redeemer

    @property
    def sender_nonce(self) -> int | None:
        return self.redeemer_nonce


class StakeIntentDeclaredRecord(_StakeFields):
    contract_address: str = Field(alias="contractAddress")  # gateway
    beneficiary: str | None = Field(default=None, alias="_beneficiary")
    amount: int | None = Field(default=None, alias="_amount", ge=0)


class StakeProgressedRecord(_StakeFields):
    contract_address: str = Field(alias="contractAddress")  # gateway
    amount: int | None = Field(default=None, alias="_amount", ge=0)
    proof_progress: bool | None = Field(default=None, alias="_proofProgress")
    unlock_secret: str | None = Field(default=None, alias="_unlockSecret")

    @property
    def secret(self) -> str | None:
        return self.unlock_secret


class StakeIntentConfirmedRecord(_StakeFields):
    beneficiary: str | None = Field(default=None, alias="_beneficiary")
    amount: int | None = Field(default=None, alias="_amount", ge=0)
    block_height: int | None = Field(default=None, alias="_blockHeight", ge=0)
    hash_lock: str | None = Field(default=None, alias="_hashLock")


class MintProgressedRecord(MessageEventRecord):
    staker: str | None = Field(default=None, alias="_staker")
    beneficiary: str | None = Field(default=None, alias="_beneficiary")
    staked_amount: int | None = Field(default=None, alias="_stakeAmount", ge=0)
    minted_amount: int | None = Field(default=None, alias="_mintedAmount", ge=0)
    reward_amount: int | None = Field(default=None, alias="_rewardAmount", ge=0)
    proof_progress: bool | None = Field(default=None, alias="_proofProgress")
    unlock_secret: str | None = Field(default=None, alias="_unlockSecret")

    @property
    def sender(self) -> str | None:
        return self.staker

    @property
    def secret(self) -> str | None:
        return self.unlock_secret


class RedeemIntentDeclaredRecord(_RedeemFields):
    contract_address: str = Field(alias="contractAddress")  # co-gateway
    beneficiary: str | None = Field(default=None, alias="_beneficiary")
    amount: int | None = Field(default=None, alias="_amount", ge=0)


class RedeemProgressedRecord(_RedeemFields):
    contract_address: str = Field(alias="contractAddress")  # co-gateway
    amount: int | None = Field(default=None, alias="_amount", ge=0)
    proof_progress: bool | None = Field(default=None, alias="_proofProgress")
    unlock_secret: str | None = Field(default=None, alias="_unlockSecret")

    @property
    def secret(self) -> str | None:
        return self.unlock_secret


class RedeemIntentConfirmedRecord(_RedeemFields):
    beneficiary: str | None = Field(default=None, alias="_beneficiary")
    amount: int | None = Field(default=None, alias="_amount", ge=0)
    block_height: int | None = Field(default=None, alias="_blockHeight", ge=0)
    hash_lock: str | None = Field(default=None, alias="_hashLock")


class UnstakeProgressedRecord(MessageEventRecord):
    redeemer: str | None = Field(default=None, alias="_redeemer")
    beneficiary: str | None = Field(default=None, alias="_beneficiary")
    redeem_amount: int | None = Field(default=None, alias="_redeemAmount", ge=0)
    unstake_amount: int | None = Field(default=None, alias="_unstakeAmount", ge=0)
    reward_amount: int | None = Field(default=None, alias="_rewardAmount", ge=0)
    proof_progress: bool | None = Field(default=None, alias="_proofProgress")
    unlock_secret: str | None = Field(default=None, alias="_unlockSecret")

    @property
    def sender(self) -> str | None:
        return self.redeemer

    @property
    def secret(self) -> str | None:
        return self.unlock_secret


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------

class StakeRequestedRecord(EventRecord):
    stake_request_hash: str = Field(alias="_stakeRequestHash", min_length=1)
    amount: int | None = Field(default=None, alias="_amount", ge=0)
    beneficiary: str | None = Field(default=None, alias="_beneficiary")
    gas_price: int | None = Field(default=None, alias="_gasPrice", ge=0)
    gas_limit: int | None = Field(default=None, alias="_gasLimit", ge=0)
    nonce: int | None = Field(default=None, alias="_nonce", ge=0)
    gateway: str | None = Field(default=None, alias="_gateway")
    staker: str | None = Field(default=None, alias="_staker")
    staker_proxy: str | None = Field(default=None, alias="_stakerProxy")


class RedeemRequestedRecord(EventRecord):
    redeem_request_hash: str = Field(alias="_redeemRequestHash", min_length=1)
    amount: int | None = Field(default=None, alias="_amount", ge=0)
    beneficiary: str | None = Field(default=None, alias="_beneficiary")
    gas_price: int | None = Field(default=None, alias="_gasPrice", ge=0)
    gas_limit: int | None = Field(default=None, alias="_gasLimit", ge=0)
    nonce: int | None = Field(default=None, alias="_nonce", ge=0)
    cogateway: str | None = Field(default=None, alias="_cogateway")
    redeemer: str | None = Field(default=None, alias="_redeemer")
    redeemer_proxy: str | None = Field(default=None, alias="_redeemerProxy")


# ---------------------------------------------------------------------------
# Anchors and gateway proofs
# ---------------------------------------------------------------------------

class StateRootAvailableRecord(EventRecord):
    contract_address: str = Field(alias="contractAddress")  # anchor
    block_height: int = Field(alias="_blockHeight", ge=0)
    state_root: str | None = Field(default=None, alias="_stateRoot")


class GatewayProvenRecord(EventRecord):
    contract_address: str = Field(alias="contractAddress")  # proving gateway
    remote_gateway: str | None = Field(default=None, alias="_gateway")
    block_height: int = Field(alias="_blockHeight", ge=0)
    storage_root: str | None = Field(default=None, alias="_storageRoot")
    was_already_proved: bool | None = Field(default=None, alias="_wasAlreadyProved")
