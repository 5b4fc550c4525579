from __future__ import annotations

import asyncio
import logging
import ssl
from typing import Optional, Set

from shared.protocol.constants import DEFAULT_RESPONSE_DELAY
from shared.utils.common import hex_preview

from .connection import ConnectionContext
from .pipeline import ResponsePipeline

logger = logging.getLogger(__name__)

READ_CHUNK_SIZE = 64 * 1024


class SimulatorServer:
    """TCP/TLS listener; every connection is served by its own coroutine."""

    def __init__(
        self,
        host: str,
        port: int,
        pipeline: ResponsePipeline,
        response_delay: float = DEFAULT_RESPONSE_DELAY,
        ssl_context: Optional[ssl.SSLContext] = None,
        max_connections: Optional[int] = None,
    ) -> None:
        self.host = host
        self.port = port
        self.pipeline = pipeline
        self.response_delay = response_delay
        self.ssl_context = ssl_context
        self.max_connections = max_connections
        self._server: Optional[asyncio.AbstractServer] = None
        self._connections: Set[ConnectionContext] = set()
        self._tasks: Set[asyncio.Task] = set()

    @property
    def label(self) -> str:
        return "TLS" if self.ssl_context else "TCP"

    @property
    def bound_port(self) -> int:
        if not self._server or not self._server.sockets:
            return self.port
        return self._server.sockets[0].getsockname()[1]

    @property
    def connection_count(self) -> int:
        return len(self._connections)

    async def start(self) -> None:
        self._server = await asyncio.start_server(self._handle_client, self.host, self.port, ssl=self.ssl_context)
        logger.info("%s server listening on %s:%s", self.label, self.host, self.bound_port)

    async def serve_forever(self) -> None:
        if self._server is None:
            await self.start()
        assert self._server is not None
        await self._server.serve_forever()

    async def stop(self) -> None:
        if self._server is None:
            return
        self._server.close()
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        await self._server.wait_closed()
        self._server = None
        logger.info("%s server stopped", self.label)

    async def _handle_client(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
        peername = str(writer.get_extra_info("peername"))
        if self.max_connections is not None and len(self._connections) >= self.max_connections:
            logger.warning("Rejecting %s: connection limit %s reached", peername, self.max_connections)
            writer.close()
            return

        ssl_object = writer.get_extra_info("ssl_object")
        ctx = ConnectionContext(
            reader=reader,
            writer=writer,
            peername=peername,
            tls_version=ssl_object.version() if ssl_object is not None else None,
        )
        task = asyncio.current_task()
        if task is not None:
            self._tasks.add(task)
        self._connections.add(ctx)
        if ctx.tls_version:
            logger.info("TLS client connected from %s (%s)", peername, ctx.tls_version)
        else:
            logger.info("Client connected from %s", peername)

        try:
            while True:
                data = await reader.read(READ_CHUNK_SIZE)
                if not data:
                    logger.info("Client %s disconnected", peername)
                    break
                logger.debug("Received data from %s: %s", peername, hex_preview(data))
                try:
                    reply = self.pipeline.handle(data, peername)
                except Exception as exc:
                    logger.exception("Failed to handle message from %s: %s", peername, exc)
                    continue
                if reply is not None:
                    ctx.schedule_write(reply, self.response_delay)
        except (ConnectionResetError, ConnectionAbortedError, BrokenPipeError, OSError) as exc:
            logger.info("Client %s connection error: %s", peername, exc)
        except asyncio.CancelledError:
            logger.debug("Handler for %s cancelled", peername)
            raise
        except Exception as exc:
            logger.exception("Unhandled error for %s: %s", peername, exc)
        finally:
            await ctx.cancel_pending()
            try:
                writer.close()
                await writer.wait_closed()
            except Exception as e:
                logger.debug("Error during writer cleanup for %s: %s", peername, e)
            finally:
                self._connections.discard(ctx)
                if task is not None:
                    self._tasks.discard(task)
