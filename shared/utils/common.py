from __future__ import annotations

from shared.protocol.constants import ENCODING
from shared.protocol.tokens import restore_tokens


def hex_preview(data: bytes, limit: int = 64) -> str:
    """Space-separated hex of the first ``limit`` bytes, for log lines."""
    shown = bytes(data[:limit]).hex(" ")
    if len(data) > limit:
        return f"{shown} ... (+{len(data) - limit} bytes)"
    return shown


def visible_text(data: bytes | str) -> str:
    """Render bytes or text with control tokens spelled out."""
    if isinstance(data, (bytes, bytearray)):
        data = bytes(data).decode(ENCODING, errors="replace")
    return restore_tokens(data)


__all__ = ["hex_preview", "visible_text"]
