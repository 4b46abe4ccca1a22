"""Enumerations used across the facilitator."""

from enum import Enum


class MessageType(str, Enum):
    STAKE = "Stake"
    REDEEM = "Redeem"


class MessageDirection(str, Enum):
    ORIGIN_TO_AUXILIARY = "OriginToAuxiliary"
    AUXILIARY_TO_ORIGIN = "AuxiliaryToOrigin"


class MessageStatus(str, Enum):
    UNDECLARED = "Undeclared"
    DECLARED = "Declared"
    PROGRESSED = "Progressed"
    REVOCATION_DECLARED = "RevocationDeclared"
    REVOKED = "Revoked"


class RequestType(str, Enum):
    STAKE = "Stake"
    REDEEM = "Redeem"


class Chain(str, Enum):
    ORIGIN = "origin"
    AUXILIARY = "auxiliary"


class GatewayType(str, Enum):
    ORIGIN = "origin"  # EIP20Gateway
    AUXILIARY = "auxiliary"  # EIP20CoGateway


class EntityType(str, Enum):
    """Upstream event kinds, named after the subgraph entity collections."""

    STAKE_REQUESTEDS = "stakeRequesteds"
    STAKE_INTENT_DECLAREDS = "stakeIntentDeclareds"
    STAKE_PROGRESSEDS = "stakeProgresseds"
    STAKE_INTENT_CONFIRMEDS = "stakeIntentConfirmeds"
    MINT_PROGRESSEDS = "mintProgresseds"
    REDEEM_REQUESTEDS = "redeemRequesteds"
    REDEEM_INTENT_DECLAREDS = "redeemIntentDeclareds"
    REDEEM_PROGRESSEDS = "redeemProgresseds"
    REDEEM_INTENT_CONFIRMEDS = "redeemIntentConfirmeds"
    UNSTAKE_PROGRESSEDS = "unstakeProgresseds"
    STATE_ROOT_AVAILABLES = "stateRootAvailables"
    GATEWAY_PROVENS = "gatewayProvens"


class StatusRegressionPolicy(str, Enum):
    """What the message repository does with a backward status update."""

    REJECT = "reject"  # raise InvariantViolationError
    IGNORE = "ignore"  # keep the stored status, merge the remaining fields
