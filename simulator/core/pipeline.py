from __future__ import annotations

import logging
from typing import Optional

from shared.protocol import framing
from shared.protocol.decoder import FrameDecoder
from shared.protocol.errors import ProtocolError
from shared.utils.common import visible_text

from .resolver import ResponseResolver

logger = logging.getLogger(__name__)


class ResponsePipeline:
    """Turns one inbound data event into a framed reply (or nothing)."""

    def __init__(self, decoder: FrameDecoder, resolver: ResponseResolver) -> None:
        self.decoder = decoder
        self.resolver = resolver

    def handle(self, raw: bytes, peer: str = "-") -> Optional[bytes]:
        opcode = self.decoder.decode(raw)
        if not opcode:
            logger.warning("Failed to extract opcode for message from %s", peer)
            return None
        logger.info("Extracted opcode %s from %s", opcode, peer)

        response = self.resolver.resolve(opcode)
        logger.info("Sending response to %s: %s", peer, visible_text(response))
        try:
            return framing.build_reply(response)
        except ProtocolError as exc:
            logger.error("Dropping response for opcode %s to %s: %s", opcode, peer, exc)
            return None
