"""Test RequestRepository creation, linking and lookups."""

import pytest

from facilitator.core.enums import RequestType
from facilitator.core.errors import UniquenessViolationError
from facilitator.core.models import Request


def _request(request_hash="0xR1", **fields):
    values = dict(
        request_type=RequestType.STAKE,
        amount=1000,
        gas_price=2,
        gas_limit=300,
        nonce=1,
        gateway="0xG",
        sender="0xstaker",
        sender_proxy="0xproxy",
    )
    values.update(fields)
    return Request(request_hash=request_hash, **values)


class TestCreate:
    @pytest.mark.asyncio
    async def test_create_and_get(self, repos):
        repo = repos.request_repository
        created = await repo.create(_request())
        assert created.amount == 1000
        assert created.request_type == RequestType.STAKE

        stored = await repo.get("0xR1")
        assert stored == created

    @pytest.mark.asyncio
    async def test_duplicate_hash_rejected(self, repos):
        repo = repos.request_repository
        await repo.create(_request(amount=1000))

        with pytest.raises(UniquenessViolationError, match="request"):
            await repo.create(_request(amount=5))
        assert (await repo.get("0xR1")).amount == 1000


class TestLinking:
    @pytest.mark.asyncio
    async def test_save_attaches_message_hash(self, repos):
        repo = repos.request_repository
        await repo.create(_request())
        await repo.save(Request(request_hash="0xR1", message_hash="0xM"))

        stored = await repo.get_by_message_hash("0xM")
        assert stored.request_hash == "0xR1"
        assert stored.gas_limit == 300

    @pytest.mark.asyncio
    async def test_message_hash_is_unique(self, repos):
        repo = repos.request_repository
        await repo.create(_request("0xR1", message_hash="0xM"))
        await repo.create(_request("0xR2", nonce=2))

        with pytest.raises(UniquenessViolationError):
            await repo.save(Request(request_hash="0xR2", message_hash="0xM"))
        assert (await repo.get("0xR2")).message_hash is None

    @pytest.mark.asyncio
    async def test_get_by_message_hash_missing(self, repos):
        assert await repos.request_repository.get_by_message_hash("0xM") is None


class TestSenderProxyNonce:
    @pytest.mark.asyncio
    async def test_lookup(self, repos):
        repo = repos.request_repository
        await repo.create(_request("0xR1", nonce=1))
        await repo.create(_request("0xR2", nonce=2))

        found = await repo.get_by_sender_proxy_nonce("0xproxy", 2)
        assert found.request_hash == "0xR2"
        assert await repo.get_by_sender_proxy_nonce("0xproxy", 3) is None

    @pytest.mark.asyncio
    async def test_gateway_filter(self, repos):
        repo = repos.request_repository
        await repo.create(_request("0xR1", gateway="0xG1"))

        assert await repo.get_by_sender_proxy_nonce("0xproxy", 1, gateway="0xG2") is None
        found = await repo.get_by_sender_proxy_nonce("0xproxy", 1, gateway="0xG1")
        assert found.request_hash == "0xR1"
