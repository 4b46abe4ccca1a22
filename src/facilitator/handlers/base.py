"""Base class of the per-event-kind handlers."""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Any, Awaitable, ClassVar, Generic, Iterable, Mapping, Sequence, TypeVar

from facilitator.core.enums import EntityType

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ContractEntityHandler(ABC, Generic[T]):
    """Turns a batch of raw records of one event kind into entity updates.

    Handlers must be idempotent and commutative: replaying a record, or
    receiving records of related kinds in any order, converges on the same
    stored state.
    """

    kind: ClassVar[EntityType]

    @abstractmethod
    async def persist(self, records: Sequence[Mapping[str, Any]]) -> list[T]:
        """Persist *records* and return the entities that were written."""


async def gather_all(aws: Iterable[Awaitable[T]]) -> list[T]:
    """Await all of *aws* concurrently, then re-raise the first failure.

    Unlike a bare :func:`asyncio.gather`, a failing save does not leave
    its siblings running unobserved: every save completes (or fails)
    before this returns.
    """
    results = await asyncio.gather(*aws, return_exceptions=True)
    errors = [r for r in results if isinstance(r, BaseException)]
    if errors:
        for error in errors[1:]:
            logger.error("Save failed in the same batch: %r", error)
        raise errors[0]
    return list(results)  # type: ignore[arg-type]
