"""Shared fixtures for the facilitator test suite."""

from __future__ import annotations

import pytest
import pytest_asyncio

from facilitator.core.config import ReconciliationConfig, Settings
from facilitator.core.enums import StatusRegressionPolicy
from facilitator.handlers.factory import HandlerFactory
from facilitator.handlers.transaction_handler import TransactionHandler
from facilitator.storage.registry import Repositories

MEMORY_URL = "sqlite+aiosqlite:///:memory:"


# ---------------------------------------------------------------------------
# Storage
# ---------------------------------------------------------------------------

@pytest.fixture
def settings() -> Settings:
    """Default settings against a private in-memory database."""
    return Settings(database={"url": MEMORY_URL})


@pytest_asyncio.fixture
async def repos(settings):
    """Fresh repository registry with the schema created."""
    repositories = await Repositories.create(settings)
    yield repositories
    await repositories.close()


@pytest_asyncio.fixture
async def lenient_repos():
    """Registry whose message repository ignores status regressions."""
    repositories = await Repositories.create(
        Settings(
            database={"url": MEMORY_URL},
            reconciliation=ReconciliationConfig(
                status_regression_policy=StatusRegressionPolicy.IGNORE,
            ),
        )
    )
    yield repositories
    await repositories.close()


# ---------------------------------------------------------------------------
# Handlers
# ---------------------------------------------------------------------------

@pytest.fixture
def handlers(repos):
    return HandlerFactory.get(repos)


@pytest.fixture
def transaction_handler(repos, handlers) -> TransactionHandler:
    return TransactionHandler(handlers, repos.contract_entity_repository)


# ---------------------------------------------------------------------------
# Raw upstream records
# ---------------------------------------------------------------------------

GATEWAY = "0x0000000000000000000000000000000000000001"
COGATEWAY = "0x0000000000000000000000000000000000000002"
STAKER_PROXY = "0x0000000000000000000000000000000000000003"
REDEEMER_PROXY = "0x0000000000000000000000000000000000000004"
ANCHOR = "0x0000000000000000000000000000000000000005"


@pytest.fixture
def stake_progressed_record() -> dict:
    """A StakeProgressed record as delivered by the subgraph."""
    return {
        "_messageHash": "0xM",
        "_staker": STAKER_PROXY,
        "_stakerNonce": "1",
        "_amount": "1000",
        "_proofProgress": False,
        "_unlockSecret": "0xsecret",
        "contractAddress": GATEWAY,
        "uts": "100",
        "blockNumber": "20",
    }


@pytest.fixture
def stake_intent_declared_record() -> dict:
    """A StakeIntentDeclared record as delivered by the subgraph."""
    return {
        "_messageHash": "0xM",
        "_staker": STAKER_PROXY,
        "_stakerNonce": "1",
        "_beneficiary": "0x00000000000000000000000000000000000000b0",
        "_amount": "1000",
        "contractAddress": GATEWAY,
        "uts": "90",
        "blockNumber": "10",
    }


@pytest.fixture
def stake_requested_record() -> dict:
    """A StakeRequested record as delivered by the subgraph."""
    return {
        "_stakeRequestHash": "0xR1",
        "_amount": "1000",
        "_beneficiary": "0x00000000000000000000000000000000000000b0",
        "_gasPrice": "2",
        "_gasLimit": "300",
        "_nonce": "1",
        "_gateway": GATEWAY,
        "_staker": "0x00000000000000000000000000000000000000a0",
        "_stakerProxy": STAKER_PROXY,
        "contractAddress": "0x00000000000000000000000000000000000000c0",
        "uts": "80",
        "blockNumber": "5",
    }
