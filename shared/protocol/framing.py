from __future__ import annotations

import asyncio
from typing import Iterable, List, Optional, Tuple

from .constants import ENCODING, FIELD_SEPARATOR, LENGTH_PREFIX_SIZE, MAX_PAYLOAD_SIZE
from .errors import ErrorCode, ProtocolError
from .tokens import substitute_tokens


def split_fields(data: bytes, include_empty: bool = False) -> List[str]:
    """
    Split raw bytes on 0x1C and decode every segment as text.

    Malformed UTF-8 is replaced rather than rejected. A trailing separator
    yields a trailing empty segment, dropped unless ``include_empty`` is set.
    """
    segments = bytes(data).split(FIELD_SEPARATOR)
    fields = [segment.decode(ENCODING, errors="replace") for segment in segments]
    if not include_empty:
        fields = [field for field in fields if field]
    return fields


def encode_response(text: str) -> bytes:
    """Substitute control tokens and encode the response text as UTF-8."""
    try:
        return substitute_tokens(text).encode(ENCODING)
    except UnicodeEncodeError as exc:
        raise ProtocolError(ErrorCode.ENCODE_FAILED, message=f"Encode failed: {exc}") from exc


def frame(payload: bytes) -> bytes:
    """Prepend a 2-byte big-endian length to ``payload``."""
    length = len(payload)
    if length > MAX_PAYLOAD_SIZE:
        raise ProtocolError(
            ErrorCode.PAYLOAD_TOO_LARGE,
            message=f"Payload of {length} bytes does not fit a {LENGTH_PREFIX_SIZE}-byte length field",
        )
    return length.to_bytes(LENGTH_PREFIX_SIZE, "big") + bytes(payload)


def build_reply(text: str) -> bytes:
    """Encode and frame a response text in one step."""
    return frame(encode_response(text))


def split_frame(data: bytes) -> Tuple[int, bytes]:
    """Decode a length-prefixed frame into (declared length, payload)."""
    if len(data) < LENGTH_PREFIX_SIZE:
        raise ProtocolError(ErrorCode.FRAME_TOO_SHORT, message="Incomplete length prefix")
    length = int.from_bytes(data[:LENGTH_PREFIX_SIZE], "big")
    payload = data[LENGTH_PREFIX_SIZE : LENGTH_PREFIX_SIZE + length]
    if len(payload) != length:
        raise ProtocolError(ErrorCode.TRUNCATED_FRAME, message="Frame payload truncated")
    return length, payload


async def read_frame(reader: asyncio.StreamReader) -> bytes:
    """Read one length-prefixed frame from the stream and return its payload."""
    try:
        prefix = await reader.readexactly(LENGTH_PREFIX_SIZE)
        length = int.from_bytes(prefix, "big")
        return await reader.readexactly(length)
    except asyncio.IncompleteReadError as exc:
        raise ProtocolError(ErrorCode.TRUNCATED_FRAME, message="Stream closed mid-frame") from exc


def build_request(fields: Iterable[str], header: Optional[bytes] = None) -> bytes:
    """
    Build an inbound-style frame: header + 0x1C-joined UTF-8 fields.

    The peer never validates the header, so by default it carries the body length.
    """
    body = FIELD_SEPARATOR.join(field.encode(ENCODING) for field in fields)
    if header is None:
        return frame(body)
    return bytes(header) + body
