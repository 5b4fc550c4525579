"""
Symbolic control-character tokens used in canned response texts.

Response texts in the configuration file spell separators as ``<FS>``,
``<GS>``, ``<SO>`` and ``<SI>``; on the wire they become single control bytes.
"""

from __future__ import annotations

from enum import Enum
from typing import Tuple


class ControlToken(Enum):
    FS = ("<FS>", "\x1c")  # field separator
    SO = ("<SO>", "\x0e")  # shift-out
    GS = ("<GS>", "\x1d")  # group separator
    SI = ("<SI>", "\x0f")  # shift-in

    def __init__(self, spelling: str, char: str) -> None:
        self.spelling = spelling
        self.char = char

    @property
    def byte(self) -> int:
        return ord(self.char)


# Substitution order is fixed: FS, SO, GS, SI.
SUBSTITUTION_ORDER: Tuple[ControlToken, ...] = (
    ControlToken.FS,
    ControlToken.SO,
    ControlToken.GS,
    ControlToken.SI,
)


def substitute_tokens(text: str) -> str:
    """Replace every symbolic token with its control character."""
    for token in SUBSTITUTION_ORDER:
        text = text.replace(token.spelling, token.char)
    return text


def restore_tokens(text: str) -> str:
    """Inverse of :func:`substitute_tokens`."""
    for token in SUBSTITUTION_ORDER:
        text = text.replace(token.char, token.spelling)
    return text


__all__ = ["ControlToken", "SUBSTITUTION_ORDER", "substitute_tokens", "restore_tokens"]
