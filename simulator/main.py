from __future__ import annotations

import asyncio
import logging
import sys
from typing import Optional

from shared.protocol.decoder import build_decoder
from simulator.config import ConfigError, SimulatorConfig, load_config
from simulator.core import ResponsePipeline, ResponseResolver, SimulatorServer
from simulator.tls import build_ssl_context

logger = logging.getLogger("simulator")


def build_server(config: SimulatorConfig) -> SimulatorServer:
    """Wire decoder, resolver and listener from a loaded configuration."""
    ssl_context = build_ssl_context(config.tls) if config.enable_tls else None
    decoder = build_decoder(config.decoder, config.rules)
    resolver = ResponseResolver(config.message_mapping)
    logger.info("Loaded %s message mappings, decoder=%s", len(resolver), config.decoder)
    return SimulatorServer(
        config.host,
        config.port,
        ResponsePipeline(decoder, resolver),
        response_delay=config.response_delay,
        ssl_context=ssl_context,
        max_connections=config.max_connections,
    )


async def run_simulator(config: SimulatorConfig) -> None:
    server = build_server(config)
    logger.info(
        "Starting %s server on port %s...", "TLS " + config.tls.version if config.enable_tls else "TCP", config.port
    )
    await server.start()
    try:
        await server.serve_forever()
    finally:
        await server.stop()


def main(config_path: Optional[str] = None) -> int:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    try:
        config = load_config(config_path)
    except ConfigError as exc:
        logger.error("Configuration error: %s", exc)
        return 1
    logging.getLogger().setLevel(config.log_level)

    try:
        asyncio.run(run_simulator(config))
    except ConfigError as exc:
        logger.error("Configuration error: %s", exc)
        return 1
    except OSError as exc:
        logger.error("Server error: %s", exc)
        return 1
    except KeyboardInterrupt:
        logger.info("Interrupted, shutting down")
    return 0


if __name__ == "__main__":
    sys.exit(main())
