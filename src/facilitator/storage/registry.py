"""Repository registry: the single composition root of the storage layer."""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from facilitator.core.config import ReconciliationConfig, Settings
from facilitator.core.enums import Chain

from .connection import create_all, create_engine, dispose
from .repos import (
    AnchorRepository,
    ContractEntityRepository,
    GatewayRepository,
    MessageRepository,
    RequestRepository,
    TransactionRepository,
)

logger = logging.getLogger(__name__)


class Repositories:
    """Builds every repository against one shared engine.

    Cross-entity references (e.g. ``Request.message_hash``) are not
    enforced here; each repository guards only its own invariants.

    Usage::

        async with await Repositories.create(settings) as repos:
            await repos.message_repository.save(message)
    """

    def __init__(
        self,
        engine: AsyncEngine,
        reconciliation: ReconciliationConfig | None = None,
    ) -> None:
        reconciliation = reconciliation or ReconciliationConfig()

        self._engine = engine
        self._session_factory = async_sessionmaker(
            bind=engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

        self.message_repository = MessageRepository(
            self._session_factory,
            regression_policy=reconciliation.status_regression_policy,
        )
        self.anchor_repository = AnchorRepository(self._session_factory)
        self.gateway_repository = GatewayRepository(self._session_factory)
        self.request_repository = RequestRepository(self._session_factory)
        self.contract_entity_repository = ContractEntityRepository(self._session_factory)
        self.origin_transaction_repository = TransactionRepository(
            self._session_factory, Chain.ORIGIN,
        )
        self.auxiliary_transaction_repository = TransactionRepository(
            self._session_factory, Chain.AUXILIARY,
        )

    @property
    def engine(self) -> AsyncEngine:
        return self._engine

    @classmethod
    async def create(
        cls,
        settings: Settings | None = None,
        *,
        url: str | None = None,
    ) -> Repositories:
        """Create the engine and (optionally) the schema, then the registry.

        Args:
            settings: Facilitator settings; defaults are used if omitted.
            url: Database URL overriding ``settings.database.url``.
        """
        settings = settings or Settings()
        db = settings.database
        engine = create_engine(
            url or db.url,
            pool_size=db.pool_size,
            max_overflow=db.max_overflow,
            echo=db.echo,
        )
        if db.create_tables:
            await create_all(engine)
        return cls(engine, settings.reconciliation)

    async def close(self) -> None:
        """Dispose the shared engine. Call once, after all work is done."""
        await dispose(self._engine)

    async def __aenter__(self) -> Repositories:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()
