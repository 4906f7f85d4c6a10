"""Prioritised resolver lists: try named sources in order, stop at first success."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Generic, Iterable, Optional, Tuple, TypeVar

from money_map.core.errors import UpstreamMiss

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class Resolver(Generic[T]):
    """A named async source that returns a value, ``None``, or raises a miss."""

    name: str
    resolve: Callable[[], Awaitable[Optional[T]]]


async def first_success(
    resolvers: Iterable[Resolver[T]],
    *,
    accept: Optional[Callable[[T], bool]] = None,
    label: str = "resolver",
) -> Optional[Tuple[str, T]]:
    """Run ``resolvers`` in order and return ``(name, value)`` of the first hit.

    A resolver misses when it returns ``None``, raises, or produces a value
    that ``accept`` rejects. Errors never propagate; every resolver is tried at
    most once. Returns ``None`` when all of them miss.
    """
    for resolver in resolvers:
        try:
            value = await resolver.resolve()
        except UpstreamMiss as exc:
            logger.info("%s '%s' missed: %s", label, resolver.name, exc)
            continue
        except Exception as exc:
            logger.error(
                "%s '%s' failed unexpectedly: %s", label, resolver.name, exc, exc_info=True
            )
            continue

        if value is None:
            logger.info("%s '%s' returned no result", label, resolver.name)
            continue
        if accept is not None and not accept(value):
            logger.info("%s '%s' result rejected", label, resolver.name)
            continue

        logger.debug("%s '%s' succeeded", label, resolver.name)
        return resolver.name, value
    return None
