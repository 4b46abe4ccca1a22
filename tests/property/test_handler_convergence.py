"""Property test: message handlers converge regardless of delivery order."""

import asyncio

from hypothesis import given, settings, strategies as st

from facilitator.core.config import Settings
from facilitator.core.enums import EntityType, MessageStatus, MessageType
from facilitator.handlers import HandlerFactory
from facilitator.storage.registry import Repositories

GATEWAY = "0x0000000000000000000000000000000000000001"
COGATEWAY = "0x0000000000000000000000000000000000000002"
STAKER_PROXY = "0x0000000000000000000000000000000000000003"

LIFECYCLE = [
    (
        EntityType.STAKE_INTENT_DECLAREDS,
        {
            "_messageHash": "0xM",
            "_staker": STAKER_PROXY,
            "_stakerNonce": "1",
            "contractAddress": GATEWAY,
            "blockNumber": "10",
        },
    ),
    (
        EntityType.STAKE_PROGRESSEDS,
        {
            "_messageHash": "0xM",
            "_staker": STAKER_PROXY,
            "_stakerNonce": "1",
            "_unlockSecret": "0xsecret",
            "contractAddress": GATEWAY,
        },
    ),
    (
        EntityType.STAKE_INTENT_CONFIRMEDS,
        {
            "_messageHash": "0xM",
            "_staker": STAKER_PROXY,
            "_stakerNonce": "1",
            "_hashLock": "0xlock",
            "contractAddress": COGATEWAY,
        },
    ),
    (
        EntityType.MINT_PROGRESSEDS,
        {
            "_messageHash": "0xM",
            "_staker": STAKER_PROXY,
            "_unlockSecret": "0xsecret",
            "contractAddress": COGATEWAY,
        },
    ),
]


@settings(max_examples=24, deadline=None)
@given(
    order=st.permutations(LIFECYCLE),
    replays=st.lists(st.sampled_from(LIFECYCLE), max_size=3),
)
def test_any_delivery_order_converges(order, replays):
    async def main():
        repos = await Repositories.create(Settings(database={"url": "sqlite+aiosqlite:///:memory:"}))
        try:
            handlers = HandlerFactory.get(repos)
            for kind, record in [*order, *replays]:
                await handlers[kind].persist([record])
            return await repos.message_repository.get("0xM")
        finally:
            await repos.close()

    _assert_converged(asyncio.run(main()))


def _assert_converged(message):
    assert message.type == MessageType.STAKE
    assert message.source_status == MessageStatus.PROGRESSED
    assert message.target_status == MessageStatus.PROGRESSED
    assert message.gateway_address == GATEWAY
    assert message.sender == STAKER_PROXY
    assert message.nonce == 1
    assert message.secret == "0xsecret"
    assert message.hash_lock == "0xlock"
    assert message.source_declaration_block_height == 10


@settings(max_examples=24, deadline=None)
@given(order=st.permutations(LIFECYCLE))
def test_concurrent_delivery_converges(order):
    async def main():
        repos = await Repositories.create(Settings(database={"url": "sqlite+aiosqlite:///:memory:"}))
        try:
            handlers = HandlerFactory.get(repos)
            await asyncio.gather(*(handlers[kind].persist([record]) for kind, record in order))
            return await repos.message_repository.get("0xM")
        finally:
            await repos.close()

    _assert_converged(asyncio.run(main()))
