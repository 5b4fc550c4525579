from __future__ import annotations

from types import MappingProxyType
from typing import Mapping, Optional

from shared.protocol.constants import UNKNOWN_OPCODE_PREFIX


def resolve(opcode: str, mapping: Mapping[str, str]) -> str:
    """Canned response for ``opcode``, or the unknown-opcode placeholder."""
    if opcode in mapping:
        return mapping[opcode]
    return f"{UNKNOWN_OPCODE_PREFIX}{opcode}"


class ResponseResolver:
    """Read-only opcode -> response text table shared by every connection."""

    def __init__(self, mapping: Optional[Mapping[str, str]] = None) -> None:
        self._mapping: Mapping[str, str] = MappingProxyType(dict(mapping or {}))

    @property
    def mapping(self) -> Mapping[str, str]:
        return self._mapping

    def resolve(self, opcode: str) -> str:
        return resolve(opcode, self._mapping)

    def __contains__(self, opcode: object) -> bool:
        return opcode in self._mapping

    def __len__(self) -> int:
        return len(self._mapping)
