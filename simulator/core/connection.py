from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Optional, Set

from shared.utils.common import hex_preview

logger = logging.getLogger(__name__)


@dataclass(eq=False)
class ConnectionContext:
    reader: asyncio.StreamReader
    writer: asyncio.StreamWriter
    peername: str
    tls_version: Optional[str] = None
    closed: bool = False
    _pending: Set[asyncio.Task] = field(default_factory=set, repr=False)
    _last_write: Optional[asyncio.Task] = field(default=None, repr=False)

    @property
    def pending_writes(self) -> int:
        return len(self._pending)

    def schedule_write(self, data: bytes, delay: float) -> asyncio.Task:
        """
        Write ``data`` after ``delay`` seconds, counted from now.

        Writes leave in scheduling order: each task waits for its predecessor
        once its own delay has elapsed.
        """
        previous = self._last_write
        task = asyncio.create_task(self._delayed_write(data, delay, previous), name=f"reply-{self.peername}")
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        self._last_write = task
        return task

    async def _delayed_write(self, data: bytes, delay: float, previous: Optional[asyncio.Task]) -> None:
        await asyncio.sleep(delay)
        if previous is not None and not previous.done():
            await asyncio.wait({previous})
        if self.closed or self.writer.is_closing():
            logger.debug("Connection %s closed, dropping pending reply", self.peername)
            return
        try:
            self.writer.write(data)
            await self.writer.drain()
            logger.debug("Sent %s bytes to %s: %s", len(data), self.peername, hex_preview(data))
        except (ConnectionError, OSError) as exc:
            logger.warning("Write to %s failed: %s", self.peername, exc)

    async def cancel_pending(self) -> None:
        """Abandon every delayed write that has not gone out yet."""
        self.closed = True
        tasks = list(self._pending)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._pending.clear()
        self._last_write = None
