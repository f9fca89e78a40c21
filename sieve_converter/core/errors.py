"""Syntax errors raised by the lexer and parser.

WHY: Callers of the format layer (CLI ``check``, the HTTP API, tests) need
to know *what* went wrong and *where*, not just that parsing failed. A
plain string loses the category and offset.

HOW: One ValueError subclass carries a closed ``kind`` plus an optional
offset into the source text. LexError and ParseError mark which stage
raised it.

RULES:
- Every error raised by tokenize() or parse() is a SieveSyntaxError
- kind is always a SyntaxErrorKind member
- offset is a code-point offset into the input, or None at end of input
"""

from __future__ import annotations

from enum import Enum
from typing import Optional


class SyntaxErrorKind(str, Enum):
    """Closed set of format-layer failure categories."""

    unterminated_string = "unterminated_string"
    unterminated_block_comment = "unterminated_block_comment"
    unterminated_multiline = "unterminated_multiline"
    unexpected_character = "unexpected_character"
    unexpected_token = "unexpected_token"
    unexpected_end = "unexpected_end"
    unknown_command = "unknown_command"
    unknown_test = "unknown_test"
    missing_brace = "missing_brace"


class SieveSyntaxError(ValueError):
    """A script could not be tokenized or parsed."""

    def __init__(
        self,
        message: str,
        kind: SyntaxErrorKind,
        offset: Optional[int] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.kind = kind
        self.offset = offset

    def to_dict(self) -> dict:
        return {
            "kind": self.kind.value,
            "message": self.message,
            "offset": self.offset,
        }


class LexError(SieveSyntaxError):
    """Raised by the tokenizer."""


class ParseError(SieveSyntaxError):
    """Raised by the recursive-descent parser."""
