from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from typing import Optional, Sequence

from .constants import ENCODING, HEADER_SIZE, MIN_FIELD_COUNT
from .errors import ErrorCode, ProtocolError
from .framing import split_fields

logger = logging.getLogger(__name__)

_LEADING_OPCODE = re.compile(r"[A-Za-z0-9]+")


@dataclass(frozen=True)
class OpcodeRule:
    """Maps the value found at ``field_index`` to ``opcode``."""

    field_index: int
    expected_value: str
    opcode: str

    def matches(self, fields: Sequence[str]) -> bool:
        return 0 <= self.field_index < len(fields) and fields[self.field_index] == self.expected_value


DEFAULT_RULES: tuple[OpcodeRule, ...] = (OpcodeRule(field_index=2, expected_value="B0000", opcode="GIS"),)


def strip_header(raw: bytes) -> bytes:
    """Drop the inbound header; the declared length is never checked."""
    if raw is None or len(raw) <= HEADER_SIZE:
        raise ProtocolError(ErrorCode.FRAME_TOO_SHORT, message="No payload beyond header")
    return bytes(raw[HEADER_SIZE:])


class FrameDecoder:
    """Base decoder: ``decode`` never raises, failures come back as ``None``."""

    name = "base"

    def decode(self, raw: bytes) -> Optional[str]:
        try:
            return self.extract_opcode(raw)
        except ProtocolError as exc:
            logger.warning("Error extracting opcode: %s", exc)
        except Exception as exc:
            logger.exception("Unexpected error extracting opcode: %s", exc)
        return None

    @classmethod
    def build(cls, rules: Optional[Sequence[OpcodeRule]] = None) -> "FrameDecoder":
        return cls()

    def extract_opcode(self, raw: bytes) -> str:
        raise NotImplementedError


class FieldRuleDecoder(FrameDecoder):
    """
    Decoder for 0x1C-delimited frames.

    After the 2-byte header is stripped the payload is split into non-empty
    text fields, and the rules are tried in order; the first match names the
    opcode. A frame with fewer fields than the lowest rule index needs is
    rejected before any rule runs; for the default rules that is three.
    """

    name = "fields"

    def __init__(self, rules: Optional[Sequence[OpcodeRule]] = None) -> None:
        self.rules: tuple[OpcodeRule, ...] = tuple(DEFAULT_RULES if rules is None else rules)
        self.min_fields = min((rule.field_index for rule in self.rules), default=MIN_FIELD_COUNT - 1) + 1

    @classmethod
    def build(cls, rules: Optional[Sequence[OpcodeRule]] = None) -> "FieldRuleDecoder":
        return cls(rules)

    def extract_opcode(self, raw: bytes) -> str:
        fields = split_fields(strip_header(raw))
        logger.debug("Received message fields: %s", fields)
        if len(fields) < self.min_fields:
            raise ProtocolError(
                ErrorCode.MISSING_FIELDS,
                message=f"Expected at least {self.min_fields} fields, got {len(fields)}",
            )
        for rule in self.rules:
            if rule.matches(fields):
                return rule.opcode
        raise ProtocolError(ErrorCode.NO_MATCHING_RULE, message=f"No opcode rule matches fields {fields}")


class PrefixOpcodeDecoder(FrameDecoder):
    """
    Heuristic decoder: JSON ``{"opcode": ...}`` payloads, else the leading
    alphanumeric run of the payload text.
    """

    name = "prefix"

    def extract_opcode(self, raw: bytes) -> str:
        text = strip_header(raw).decode(ENCODING, errors="replace").strip()
        if text.startswith("{"):
            try:
                data = json.loads(text)
            except json.JSONDecodeError as exc:
                raise ProtocolError(ErrorCode.INVALID_PAYLOAD, message=f"Invalid JSON payload: {exc}") from exc
            opcode = data.get("opcode", data.get("op")) if isinstance(data, dict) else None
            if not isinstance(opcode, str) or not opcode:
                raise ProtocolError(ErrorCode.INVALID_PAYLOAD, message="JSON payload carries no opcode")
            return opcode
        match = _LEADING_OPCODE.match(text)
        if not match:
            raise ProtocolError(ErrorCode.INVALID_PAYLOAD, message="Payload does not start with an opcode")
        return match.group(0)


DECODER_STRATEGIES = {
    FieldRuleDecoder.name: FieldRuleDecoder,
    PrefixOpcodeDecoder.name: PrefixOpcodeDecoder,
}


def build_decoder(strategy: str = FieldRuleDecoder.name, rules: Optional[Sequence[OpcodeRule]] = None) -> FrameDecoder:
    """Instantiate the named decoder strategy."""
    decoder_cls = DECODER_STRATEGIES.get(strategy)
    if decoder_cls is None:
        raise ProtocolError(
            ErrorCode.UNKNOWN_STRATEGY,
            message=f"Unknown decoder strategy {strategy!r}; expected one of {sorted(DECODER_STRATEGIES)}",
        )
    return decoder_cls.build(rules)


def decode(raw: bytes, rules: Optional[Sequence[OpcodeRule]] = None) -> Optional[str]:
    """Decode with the field-rule strategy; ``None`` when no opcode can be derived."""
    return FieldRuleDecoder(rules).decode(raw)
