"""Periodic liveness output for long, otherwise silent CI steps.

CI supervisors kill jobs that produce no output for too long. A heartbeat
prints a line at a fixed interval while the wrapped block runs and is
cancelled when the block exits, whether it succeeded or raised.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import time
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Callable

logger = logging.getLogger(__name__)


def _log_beat(elapsed: float) -> None:
    logger.info("Still running... (%.0fs elapsed)", elapsed)


async def _beat(interval: float, emit: Callable[[float], None]) -> None:
    started = time.monotonic()
    while True:
        await asyncio.sleep(interval)
        emit(time.monotonic() - started)


@contextlib.asynccontextmanager
async def heartbeat(
    interval: float, emit: Callable[[float], None] | None = None
) -> AsyncIterator[asyncio.Task[None] | None]:
    """Emit a heartbeat every *interval* seconds while the block runs.

    Args:
        interval: Seconds between beats. Zero or negative disables the heartbeat.
        emit: Callback receiving the elapsed seconds; defaults to an INFO log line.

    Yields:
        The background task, or None when disabled.
    """
    if interval <= 0:
        yield None
        return

    task = asyncio.create_task(_beat(interval, emit or _log_beat))
    logger.debug("Heartbeat started (every %.1fs)", interval)
    try:
        yield task
    finally:
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task
        logger.debug("Heartbeat stopped")
