"""Observer pattern for repository change notifications.

A :class:`Subject` keeps an explicit list of observers. Each observer is a
plain callable or a coroutine function taking the updated entity.
Observers are called in registration order.
"""

from __future__ import annotations

import inspect
import logging
from typing import Any, Awaitable, Callable, Generic, TypeVar, Union

logger = logging.getLogger(__name__)

T = TypeVar("T")

Observer = Callable[[T], Union[Awaitable[None], None]]


class Subject(Generic[T]):
    """Observable subject with synchronous, in-process fan-out."""

    def __init__(self) -> None:
        self._observers: list[Observer[T]] = []

    @property
    def observers(self) -> list[Observer[T]]:
        return list(self._observers)

    def attach(self, observer: Observer[T]) -> None:
        """Register *observer*. Registering the same observer twice is a no-op."""
        if observer not in self._observers:
            self._observers.append(observer)

    def detach(self, observer: Observer[T]) -> None:
        if observer in self._observers:
            self._observers.remove(observer)

    async def notify(self, update: T) -> None:
        """Deliver *update* to every registered observer."""
        for observer in list(self._observers):
            try:
                result: Any = observer(update)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                logger.exception(
                    "Observer error in %s for update=%s",
                    type(self).__name__,
                    type(update).__name__,
                )
