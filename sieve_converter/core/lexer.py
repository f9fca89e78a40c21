"""SIEVE (RFC 5228) tokenizer.

WHY: The parser needs a flat, typed token stream with source positions so
that it can dispatch on token kinds and report errors at exact offsets.
Regex-splitting the text is not enough: quoted strings, multi-line
literals, and comments all change how the following characters are read.

HOW: A single left-to-right scan over the input string with at most one
character of lookahead. Each branch recognises one token shape and
appends a Token carrying its kind, value, offset, and length.

RULES:
- ASCII whitespace separates tokens and produces none
- "# ..." to end of line is a COMMENT, value trimmed
- "/* ... */" is a BLOCK_COMMENT, value trimmed; unterminated is an error
- "..." is a QUOTED_STRING; a backslash takes the next character
  literally, no other escapes exist; unterminated is an error
- "text:" (any case) starts a MULTI_LINE_STRING whose body ends at a line
  holding exactly "."; the terminator is consumed and excluded
- ":" + [A-Za-z0-9_]* is a TAG, lower-cased
- digits + optional K/M/G (any case) is a NUMBER, kept verbatim
- [A-Za-z_][A-Za-z0-9_]* is an IDENTIFIER
- ; , ( ) { } [ ] map to single-character tokens
- Any other character raises LexError naming it and its offset
"""

from __future__ import annotations

import string
from dataclasses import dataclass
from enum import Enum
from typing import List, Tuple

from sieve_converter.core.errors import LexError, SyntaxErrorKind


class TokenKind(str, Enum):
    TAG = "tag"
    IDENTIFIER = "identifier"
    QUOTED_STRING = "quoted_string"
    MULTI_LINE_STRING = "multi_line_string"
    NUMBER = "number"
    COMMENT = "comment"
    BLOCK_COMMENT = "block_comment"
    SEMICOLON = ";"
    COMMA = ","
    LPAREN = "("
    RPAREN = ")"
    LBRACE = "{"
    RBRACE = "}"
    LBRACKET = "["
    RBRACKET = "]"


@dataclass(frozen=True)
class Token:
    """One lexical token.

    ``value`` is the decoded payload: the unescaped string contents, the
    lower-cased tag including its colon, the comment text, or the
    punctuation character itself.
    """

    kind: TokenKind
    value: str
    offset: int
    length: int


_PUNCTUATION = {
    ";": TokenKind.SEMICOLON,
    ",": TokenKind.COMMA,
    "(": TokenKind.LPAREN,
    ")": TokenKind.RPAREN,
    "{": TokenKind.LBRACE,
    "}": TokenKind.RBRACE,
    "[": TokenKind.LBRACKET,
    "]": TokenKind.RBRACKET,
}

_WHITESPACE = frozenset(" \t\n\r\x0b\x0c")
_LETTERS = frozenset(string.ascii_letters + "_")
_WORD_CHARS = frozenset(string.ascii_letters + string.digits + "_")
_DIGITS = frozenset(string.digits)
_SIZE_SUFFIXES = frozenset("KkMmGg")


def tokenize(text: str) -> Tuple[Token, ...]:
    """Split SIEVE script text into tokens.

    Args:
        text: The complete script source.

    Returns:
        Tokens in source order.

    Raises:
        LexError: On an unterminated string, block comment, or multi-line
            literal, or on a character no token can start with.
    """
    tokens: List[Token] = []
    n = len(text)
    i = 0

    while i < n:
        ch = text[i]
        start = i

        if ch in _WHITESPACE:
            i += 1
            continue

        if ch in _PUNCTUATION:
            tokens.append(Token(_PUNCTUATION[ch], ch, start, 1))
            i += 1
            continue

        if ch == "#":
            end = text.find("\n", i)
            if end == -1:
                end = n
            tokens.append(Token(TokenKind.COMMENT, text[i + 1:end].strip(), start, end - start))
            i = end
            continue

        if ch == "/" and i + 1 < n and text[i + 1] == "*":
            end = text.find("*/", i + 2)
            if end == -1:
                raise LexError(
                    "Unterminated block comment at offset {}".format(start),
                    SyntaxErrorKind.unterminated_block_comment,
                    start,
                )
            i = end + 2
            tokens.append(Token(TokenKind.BLOCK_COMMENT, text[start + 2:end].strip(), start, i - start))
            continue

        if ch == '"':
            i, value = _scan_quoted(text, i)
            tokens.append(Token(TokenKind.QUOTED_STRING, value, start, i - start))
            continue

        if ch in "tT" and text[i:i + 5].lower() == "text:":
            i, value = _scan_multiline(text, i)
            tokens.append(Token(TokenKind.MULTI_LINE_STRING, value, start, i - start))
            continue

        if ch == ":":
            i += 1
            while i < n and text[i] in _WORD_CHARS:
                i += 1
            tokens.append(Token(TokenKind.TAG, text[start:i].lower(), start, i - start))
            continue

        if ch in _DIGITS:
            while i < n and text[i] in _DIGITS:
                i += 1
            if i < n and text[i] in _SIZE_SUFFIXES:
                i += 1
            tokens.append(Token(TokenKind.NUMBER, text[start:i], start, i - start))
            continue

        if ch in _LETTERS:
            while i < n and text[i] in _WORD_CHARS:
                i += 1
            tokens.append(Token(TokenKind.IDENTIFIER, text[start:i], start, i - start))
            continue

        raise LexError(
            "Unexpected character {!r} at offset {}".format(ch, start),
            SyntaxErrorKind.unexpected_character,
            start,
        )

    return tuple(tokens)


def _scan_quoted(text: str, start: int) -> Tuple[int, str]:
    """Scan a quoted string starting at the opening quote.

    Returns the index just past the closing quote and the unescaped value.
    """
    n = len(text)
    i = start + 1
    chars: List[str] = []
    while True:
        if i >= n:
            raise LexError(
                "Unterminated string at offset {}".format(start),
                SyntaxErrorKind.unterminated_string,
                start,
            )
        ch = text[i]
        if ch == "\\" and i + 1 < n:
            chars.append(text[i + 1])
            i += 2
        elif ch == '"':
            return i + 1, "".join(chars)
        else:
            chars.append(ch)
            i += 1


def _scan_multiline(text: str, start: int) -> Tuple[int, str]:
    """Scan a ``text:`` literal starting at the ``t``.

    The remainder of the ``text:`` line is ignored. The body is every
    following line up to, but not including, the first line that is
    exactly ``.`` (optionally ``.\\r``) or a final ``.`` at end of input.
    """
    n = len(text)
    i = text.find("\n", start + 5)
    i = n if i == -1 else i + 1
    body_start = i

    while i < n:
        if text[i] == ".":
            after = i + 1
            if after >= n or text[after] in "\r\n":
                body = text[body_start:i]
                if text.startswith("\r", after):
                    after += 1
                if after < n and text[after] == "\n":
                    after += 1
                return after, body
        newline = text.find("\n", i)
        if newline == -1:
            break
        i = newline + 1

    raise LexError(
        "Unterminated multi-line string at offset {}".format(start),
        SyntaxErrorKind.unterminated_multiline,
        start,
    )
