from __future__ import annotations

import asyncio
import logging
import ssl
import sys
from typing import Optional

from probe.client import ProbeClient, ProbeError
from probe.config import ConfigError, ProbeConfig, load_config

logger = logging.getLogger("probe")


def build_ssl_context(config: ProbeConfig) -> Optional[ssl.SSLContext]:
    if not config.tls:
        return None
    context = ssl.create_default_context(cafile=str(config.ca_file) if config.ca_file else None)
    if config.insecure:
        context.check_hostname = False
        context.verify_mode = ssl.CERT_NONE
    return context


async def run_probe(config: ProbeConfig) -> str:
    client = ProbeClient(config.host, config.port, ssl_context=build_ssl_context(config), timeout=config.timeout)
    async with client:
        return await client.request(config.fields)


def main() -> int:
    logging.basicConfig(level=logging.INFO)
    try:
        config = load_config()
    except ConfigError as exc:
        logger.error("Configuration error: %s", exc)
        return 1
    logging.getLogger().setLevel(config.log_level)
    try:
        reply = asyncio.run(run_probe(config))
    except ProbeError as exc:
        logger.error("Probe failed: %s", exc)
        return 1
    print(reply)
    return 0


if __name__ == "__main__":
    sys.exit(main())
