"""Sequential, paced execution of per-item requests."""

from __future__ import annotations

import asyncio
import threading
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from typing import TypeVar

T = TypeVar("T")
R = TypeVar("R")

Sleep = Callable[[float], Awaitable[None]]


@dataclass(frozen=True)
class PacingPolicy:
    delay_s: float = 0.05

    @classmethod
    def from_millis(cls, delay_ms: int) -> PacingPolicy:
        return cls(delay_s=delay_ms / 1000.0)


async def run_paced(
    items: Sequence[T],
    step: Callable[[T], Awaitable[R]],
    policy: PacingPolicy,
    *,
    sleep: Sleep = asyncio.sleep,
    abort: threading.Event | None = None,
) -> list[R]:
    """Await ``step`` for each item in order, sleeping between items.

    No delay follows the last item. If ``abort`` is set, the remaining items
    are not started and the returned list is shorter than ``items``.
    """
    results: list[R] = []
    for index, item in enumerate(items):
        if abort is not None and abort.is_set():
            break
        results.append(await step(item))
        if index < len(items) - 1 and policy.delay_s > 0:
            await sleep(policy.delay_s)
    return results
