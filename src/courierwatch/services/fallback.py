"""Ordered fallback chains: try each strategy in turn, stop at the first usable result."""

from __future__ import annotations

import logging
from typing import Awaitable, Callable, Optional, Sequence, TypeVar

T = TypeVar("T")

logger = logging.getLogger(__name__)

Strategy = Callable[[], Awaitable[Optional[T]]]


async def first_success(strategies: Sequence[tuple[str, Strategy[T]]], *, operation: str) -> Optional[T]:
    """Run ``strategies`` in order and return the first non-None result.

    A strategy that raises is logged and skipped; None means every strategy failed.
    """
    for name, strategy in strategies:
        try:
            result = await strategy()
        except Exception as exc:
            logger.warning(f"{operation}: strategy '{name}' failed: {exc}")
            continue
        if result is not None:
            if name != strategies[0][0]:
                logger.info(f"{operation}: served by fallback strategy '{name}'")
            return result
        logger.debug(f"{operation}: strategy '{name}' returned nothing")
    return None
