"""Wire constants shared by the simulator and the probe client."""

ENCODING = "utf-8"
HEADER_SIZE = 2  # inbound header bytes, discarded without validation
LENGTH_PREFIX_SIZE = 2  # outbound big-endian length prefix
FIELD_SEPARATOR = b"\x1c"
MAX_PAYLOAD_SIZE = 0xFFFF
MIN_FIELD_COUNT = 3
UNKNOWN_OPCODE_PREFIX = "Unknown opcode: "
DEFAULT_RESPONSE_DELAY = 2.0  # seconds

__all__ = [
    "ENCODING",
    "HEADER_SIZE",
    "LENGTH_PREFIX_SIZE",
    "FIELD_SEPARATOR",
    "MAX_PAYLOAD_SIZE",
    "MIN_FIELD_COUNT",
    "UNKNOWN_OPCODE_PREFIX",
    "DEFAULT_RESPONSE_DELAY",
]
