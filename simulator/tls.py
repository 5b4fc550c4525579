from __future__ import annotations

import logging
import ssl

from .config import ConfigError, TLSConfig

logger = logging.getLogger(__name__)

TLS_VERSIONS = {
    "TLSv1.2": ssl.TLSVersion.TLSv1_2,
    "TLSv1.3": ssl.TLSVersion.TLSv1_3,
}


def build_ssl_context(tls_config: TLSConfig) -> ssl.SSLContext:
    """Server-side SSL context pinned to exactly one protocol version."""
    if not tls_config.key or not tls_config.cert:
        raise ConfigError("TLS enabled but certificates not configured")
    version = TLS_VERSIONS[tls_config.version]
    context = ssl.SSLContext(ssl.PROTOCOL_TLS_SERVER)
    context.minimum_version = version
    context.maximum_version = version
    try:
        context.load_cert_chain(certfile=str(tls_config.cert), keyfile=str(tls_config.key))
    except FileNotFoundError as exc:
        raise ConfigError(f"TLS certificate or key not found: {exc.filename}") from exc
    except (ssl.SSLError, OSError) as exc:
        raise ConfigError(f"Cannot load TLS certificate chain: {exc}") from exc
    logger.info("TLS context ready (%s, cert=%s)", tls_config.version, tls_config.cert)
    return context


__all__ = ["TLS_VERSIONS", "build_ssl_context"]
