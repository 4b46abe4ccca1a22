"""Test the upstream timestamp high-water mark store."""

import pytest

from facilitator.core.enums import EntityType
from facilitator.core.errors import RepositoryError
from facilitator.core.models import ContractEntity


class TestContractEntityRepository:
    @pytest.mark.asyncio
    async def test_save_and_get(self, repos):
        repo = repos.contract_entity_repository
        await repo.save(
            ContractEntity(
                contract_address="0xC",
                entity_type=EntityType.STAKE_PROGRESSEDS,
                timestamp=100,
            )
        )
        stored = await repo.get("0xC", EntityType.STAKE_PROGRESSEDS)
        assert stored.timestamp == 100
        assert stored.entity_type == EntityType.STAKE_PROGRESSEDS

    @pytest.mark.asyncio
    async def test_keyed_by_contract_and_kind(self, repos):
        repo = repos.contract_entity_repository
        await repo.save(
            ContractEntity(
                contract_address="0xC",
                entity_type=EntityType.STAKE_PROGRESSEDS,
                timestamp=100,
            )
        )
        assert await repo.get("0xC", EntityType.MINT_PROGRESSEDS) is None
        assert await repo.get("0xD", EntityType.STAKE_PROGRESSEDS) is None

    @pytest.mark.asyncio
    async def test_update_timestamp(self, repos):
        repo = repos.contract_entity_repository
        key = dict(contract_address="0xC", entity_type=EntityType.STATE_ROOT_AVAILABLES)
        await repo.save(ContractEntity(**key, timestamp=1))
        saved = await repo.save(ContractEntity(**key, timestamp=2))
        assert saved.timestamp == 2

    @pytest.mark.asyncio
    async def test_insert_requires_timestamp(self, repos):
        with pytest.raises(RepositoryError, match="timestamp"):
            await repos.contract_entity_repository.save(
                ContractEntity(contract_address="0xC", entity_type=EntityType.GATEWAY_PROVENS)
            )
