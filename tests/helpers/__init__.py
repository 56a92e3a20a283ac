"""Shared test helpers."""

from __future__ import annotations

import asyncio
from typing import Any

from pcancellable import Cancellable


async def drain(turns: int = 10) -> None:
    """Let pending loop callbacks run."""
    for _ in range(turns):
        await asyncio.sleep(0)


def pending(handler: Any = None) -> Cancellable[Any]:
    """A cancellable that never settles on its own, optionally with a cancel handler."""

    def executor(resolve, reject, on_cancel):
        if handler is not None:
            on_cancel(handler)

    return Cancellable(executor)
