from __future__ import annotations

import asyncio
import logging
import ssl
from typing import Iterable, Optional

from shared.protocol import framing
from shared.protocol.constants import ENCODING
from shared.protocol.errors import ErrorCode, ProtocolError
from shared.protocol.tokens import restore_tokens

logger = logging.getLogger(__name__)


class ProbeError(ProtocolError):
    """Network level error surfaced to the caller."""

    pass


class ProbeClient:
    """Speaks the host's wire format: sends field frames, reads length-prefixed replies."""

    def __init__(
        self,
        host: str,
        port: int,
        ssl_context: Optional[ssl.SSLContext] = None,
        timeout: float = 10.0,
    ) -> None:
        self.host = host
        self.port = port
        self.ssl_context = ssl_context
        self.timeout = timeout
        self.reader: Optional[asyncio.StreamReader] = None
        self.writer: Optional[asyncio.StreamWriter] = None

    @property
    def connected(self) -> bool:
        return self.writer is not None and not self.writer.is_closing()

    async def connect(self) -> None:
        if self.connected:
            return
        try:
            self.reader, self.writer = await asyncio.wait_for(
                asyncio.open_connection(self.host, self.port, ssl=self.ssl_context),
                timeout=self.timeout,
            )
        except (OSError, asyncio.TimeoutError) as exc:
            raise ProbeError(ErrorCode.CONNECTION_FAILED, message=f"Connect to {self.host}:{self.port} failed: {exc}") from exc
        logger.info("Connected to %s:%s", self.host, self.port)

    async def close(self) -> None:
        if self.writer:
            self.writer.close()
            try:
                await self.writer.wait_closed()
            except (ConnectionError, OSError) as exc:
                logger.debug("Error while closing: %s", exc)
        self.reader = self.writer = None

    async def send_raw(self, data: bytes) -> None:
        if not self.connected:
            await self.connect()
        assert self.writer is not None
        try:
            self.writer.write(data)
            await self.writer.drain()
        except (ConnectionError, OSError) as exc:
            raise ProbeError(ErrorCode.CONNECTION_FAILED, message=f"Send failed: {exc}") from exc
        logger.debug("Sent %s bytes", len(data))

    async def send_fields(self, fields: Iterable[str], header: Optional[bytes] = None) -> None:
        await self.send_raw(framing.build_request(fields, header))

    async def receive_reply(self, timeout: Optional[float] = None) -> str:
        """Read one reply; control bytes come back spelled as tokens."""
        if self.reader is None:
            raise ProbeError(ErrorCode.CONNECTION_FAILED, message="Not connected")
        try:
            payload = await asyncio.wait_for(framing.read_frame(self.reader), timeout=timeout or self.timeout)
        except asyncio.TimeoutError as exc:
            raise ProbeError(ErrorCode.TIMEOUT, message="Timed out waiting for reply") from exc
        return restore_tokens(payload.decode(ENCODING, errors="replace"))

    async def request(self, fields: Iterable[str]) -> str:
        await self.send_fields(fields)
        return await self.receive_reply()

    async def __aenter__(self) -> "ProbeClient":
        await self.connect()
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()
