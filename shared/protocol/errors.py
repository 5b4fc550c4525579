from __future__ import annotations

from enum import IntEnum


class ErrorCode(IntEnum):
    """Failure reasons raised by the codec and the probe client."""

    FRAME_TOO_SHORT = 1001
    MISSING_FIELDS = 1002
    NO_MATCHING_RULE = 1003
    INVALID_PAYLOAD = 1004
    ENCODE_FAILED = 1005
    PAYLOAD_TOO_LARGE = 1006
    UNKNOWN_STRATEGY = 1007
    TRUNCATED_FRAME = 1008
    CONNECTION_FAILED = 1009
    TIMEOUT = 1010


class ProtocolError(Exception):
    """Structured protocol exception carrying an error code + message."""

    def __init__(self, code: ErrorCode, message: str = "") -> None:
        self.code = code
        self.message = message
        super().__init__(f"{code.name} ({int(code)}): {message}")


__all__ = ["ErrorCode", "ProtocolError"]
