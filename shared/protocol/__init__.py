"""
Shared protocol package: control-token table, inbound frame decoding, and
response encoding/framing for both the simulator and the probe client.
"""

from .constants import (
    DEFAULT_RESPONSE_DELAY,
    ENCODING,
    FIELD_SEPARATOR,
    HEADER_SIZE,
    MAX_PAYLOAD_SIZE,
    UNKNOWN_OPCODE_PREFIX,
)
from .decoder import (
    DEFAULT_RULES,
    FieldRuleDecoder,
    FrameDecoder,
    OpcodeRule,
    PrefixOpcodeDecoder,
    build_decoder,
    decode,
)
from .errors import ErrorCode, ProtocolError
from .framing import build_reply, build_request, encode_response, frame, read_frame, split_fields, split_frame
from .tokens import ControlToken, restore_tokens, substitute_tokens

__all__ = [
    "DEFAULT_RESPONSE_DELAY",
    "ENCODING",
    "FIELD_SEPARATOR",
    "HEADER_SIZE",
    "MAX_PAYLOAD_SIZE",
    "UNKNOWN_OPCODE_PREFIX",
    "DEFAULT_RULES",
    "FieldRuleDecoder",
    "FrameDecoder",
    "OpcodeRule",
    "PrefixOpcodeDecoder",
    "build_decoder",
    "decode",
    "ErrorCode",
    "ProtocolError",
    "build_reply",
    "build_request",
    "encode_response",
    "frame",
    "read_frame",
    "split_fields",
    "split_frame",
    "ControlToken",
    "restore_tokens",
    "substitute_tokens",
]
