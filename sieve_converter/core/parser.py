"""Recursive-descent SIEVE parser.

WHY: The converter needs a faithful AST of the script, and the CLI and
API need a strict yes/no answer with a precise error. A single-pass,
no-backtracking parser over the token stream gives both.

HOW: tokenize() the whole input, wrap the tokens in a TokenCursor that
owns the read position, then walk top-level commands. Test expressions
are parsed by mutually recursive functions rooted at parse_test_expr().

RULES:
- Empty or whitespace-only input parses to an empty Script
- Top-level identifiers: require, if, and the known action names;
  anything else raises ParseError(unknown_command)
- A "#" comment directly before "if" is consumed as filter metadata;
  other top-level comments become Comment commands
- Block comments are skipped everywhere
- elsif/else chains are parsed greedily; else is terminal
- Any error aborts the whole parse; there is no partial AST
"""

from __future__ import annotations

from typing import List, Optional, Tuple

from sieve_converter.core.ast import (
    ActionCommand,
    AddressTest,
    AllOf,
    AnyOf,
    Argument,
    BodyTest,
    Command,
    Comment,
    Else,
    ElsIf,
    EnvelopeTest,
    ExistsTest,
    FalseTest,
    HeaderTest,
    IfBlock,
    Not,
    Number,
    QuotedString,
    Require,
    Script,
    SizeTest,
    StringList,
    Tag,
    TrueTest,
)
from sieve_converter.core.errors import ParseError, SyntaxErrorKind
from sieve_converter.core.lexer import Token, TokenKind, tokenize
from sieve_converter.core.metadata import read_filter_comment

# Action commands accepted both at top level and inside blocks.
ACTION_NAMES = frozenset({
    "keep", "stop", "discard", "fileinto", "redirect",
    "reject", "setflag", "addflag", "removeflag",
})

ADDRESS_PARTS = frozenset({":all", ":localpart", ":domain"})

DEFAULT_MATCH_TYPE = ":is"

_STRING_KINDS = (TokenKind.QUOTED_STRING, TokenKind.MULTI_LINE_STRING)


class TokenCursor:
    """Read position over a token tuple.

    All parse functions share one cursor and advance it; none of them
    index the token tuple directly.
    """

    def __init__(self, tokens: Tuple[Token, ...]) -> None:
        self._tokens = tokens
        self._pos = 0

    @property
    def position(self) -> int:
        return self._pos

    def at_end(self) -> bool:
        return self._pos >= len(self._tokens)

    def peek(self) -> Optional[Token]:
        if self._pos < len(self._tokens):
            return self._tokens[self._pos]
        return None

    def peek_kind(self) -> Optional[TokenKind]:
        token = self.peek()
        return token.kind if token is not None else None

    def advance(self) -> Token:
        token = self.peek()
        if token is None:
            raise ParseError(
                "Unexpected end of input",
                SyntaxErrorKind.unexpected_end,
            )
        self._pos += 1
        return token

    def accept(self, kind: TokenKind) -> Optional[Token]:
        """Consume and return the next token if it has ``kind``."""
        if self.peek_kind() == kind:
            return self.advance()
        return None

    def next_is_word(self, word: str) -> bool:
        token = self.peek()
        return (
            token is not None
            and token.kind == TokenKind.IDENTIFIER
            and token.value.lower() == word
        )


def parse(text: str) -> Script:
    """Parse SIEVE script text into a Script AST.

    Raises:
        SieveSyntaxError: LexError or ParseError describing the first
            problem found.
    """
    if not text.strip():
        return Script()

    cursor = TokenCursor(tokenize(text))
    commands: List[Command] = []

    while not cursor.at_end():
        token = cursor.peek()

        if token.kind == TokenKind.COMMENT:
            cursor.advance()
            if cursor.next_is_word("if"):
                cursor.advance()
                commands.append(_parse_if_block(cursor, token.value))
            else:
                commands.append(Comment(token.value))
            continue

        if token.kind == TokenKind.BLOCK_COMMENT:
            cursor.advance()
            continue

        if token.kind != TokenKind.IDENTIFIER:
            raise ParseError(
                "Unexpected token {!r} at top level (offset {})".format(token.value, token.offset),
                SyntaxErrorKind.unexpected_token,
                token.offset,
            )

        word = token.value.lower()
        if word == "require":
            cursor.advance()
            commands.append(Require(_parse_require_args(cursor)))
        elif word == "if":
            cursor.advance()
            commands.append(_parse_if_block(cursor, None))
        elif word in ACTION_NAMES:
            commands.append(_parse_action_command(cursor))
        else:
            raise ParseError(
                "Unknown command '{}' at top level (offset {})".format(token.value, token.offset),
                SyntaxErrorKind.unknown_command,
                token.offset,
            )

    return Script(tuple(commands))


def _parse_require_args(cursor: TokenCursor) -> Tuple[str, ...]:
    token = cursor.accept(TokenKind.QUOTED_STRING)
    if token is not None:
        extensions = (token.value,)
    elif cursor.peek_kind() == TokenKind.LBRACKET:
        extensions = _parse_bracketed_strings(cursor)
    else:
        extensions = ()
    cursor.accept(TokenKind.SEMICOLON)
    return extensions


def _parse_if_block(cursor: TokenCursor, comment: Optional[str]) -> IfBlock:
    """Parse everything after the ``if`` keyword.

    ``comment`` is the text of the comment token immediately before the
    ``if``, if there was one.
    """
    metadata = read_filter_comment(comment)
    condition = parse_test_expr(cursor)
    actions = _parse_action_block(cursor)

    alternatives = []
    while True:
        if cursor.next_is_word("elsif"):
            cursor.advance()
            alt_condition = parse_test_expr(cursor)
            alternatives.append(ElsIf(alt_condition, _parse_action_block(cursor)))
        elif cursor.next_is_word("else"):
            cursor.advance()
            alternatives.append(Else(_parse_action_block(cursor)))
            break
        else:
            break

    return IfBlock(
        condition=condition,
        actions=actions,
        alternatives=tuple(alternatives),
        name=metadata.name if metadata else None,
        enabled=metadata.enabled if metadata else True,
    )


# ---------------------------------------------------------------------------
# Test expressions
# ---------------------------------------------------------------------------


def parse_test_expr(cursor: TokenCursor):
    """Parse one test expression at the cursor."""
    token = cursor.peek()
    if token is None:
        raise ParseError(
            "Expected test expression, got end of input",
            SyntaxErrorKind.unexpected_end,
        )
    if token.kind != TokenKind.IDENTIFIER:
        raise ParseError(
            "Expected test expression, got {!r} at offset {}".format(token.value, token.offset),
            SyntaxErrorKind.unexpected_token,
            token.offset,
        )

    word = token.value.lower()
    cursor.advance()

    if word == "allof":
        return AllOf(_parse_test_list(cursor))
    if word == "anyof":
        return AnyOf(_parse_test_list(cursor))
    if word == "not":
        return Not(parse_test_expr(cursor))
    if word == "header":
        match_type, _ = _parse_match_tags(cursor, allow_address_part=False)
        header_names = _parse_string_or_list(cursor)
        return HeaderTest(match_type, header_names, _parse_string_or_list(cursor))
    if word in ("address", "envelope"):
        match_type, address_part = _parse_match_tags(cursor, allow_address_part=True)
        header_names = _parse_string_or_list(cursor)
        keys = _parse_string_or_list(cursor)
        node = AddressTest if word == "address" else EnvelopeTest
        return node(match_type, header_names, keys, address_part)
    if word == "body":
        match_type, _ = _parse_match_tags(cursor, allow_address_part=False)
        return BodyTest(match_type, _parse_string_or_list(cursor))
    if word == "size":
        return _parse_size_test(cursor)
    if word == "exists":
        return ExistsTest(_parse_string_or_list(cursor))
    if word == "true":
        return TrueTest()
    if word == "false":
        return FalseTest()

    raise ParseError(
        "Unknown test '{}' at offset {}".format(token.value, token.offset),
        SyntaxErrorKind.unknown_test,
        token.offset,
    )


def _parse_test_list(cursor: TokenCursor) -> tuple:
    """Parse ``( test, test, ... )``; a trailing or missing comma is tolerated."""
    opening = cursor.peek()
    if cursor.accept(TokenKind.LPAREN) is None:
        raise ParseError(
            "Expected '(' in test list" + _where(opening),
            SyntaxErrorKind.unexpected_token,
            opening.offset if opening else None,
        )

    tests = []
    while True:
        if cursor.accept(TokenKind.RPAREN):
            break
        if tests and cursor.accept(TokenKind.COMMA):
            if cursor.accept(TokenKind.RPAREN):
                break
        tests.append(parse_test_expr(cursor))
    return tuple(tests)


def _parse_match_tags(cursor: TokenCursor, allow_address_part: bool) -> Tuple[str, Optional[str]]:
    """Consume leading tags of a header/address/envelope/body test.

    Returns (match_type, address_part). ``:comparator`` and its string
    argument are consumed and dropped.
    """
    match_type = DEFAULT_MATCH_TYPE
    address_part = None
    while cursor.peek_kind() == TokenKind.TAG:
        tag = cursor.advance().value
        if tag == ":comparator":
            cursor.accept(TokenKind.QUOTED_STRING)
        elif allow_address_part and tag in ADDRESS_PARTS:
            address_part = tag
        else:
            match_type = tag
    return match_type, address_part


def _parse_size_test(cursor: TokenCursor) -> SizeTest:
    comparator = ":over"
    tag = cursor.accept(TokenKind.TAG)
    if tag is not None:
        comparator = tag.value

    limit = cursor.accept(TokenKind.NUMBER) or cursor.accept(TokenKind.QUOTED_STRING)
    return SizeTest(comparator, limit.value if limit else "0")


def _parse_string_or_list(cursor: TokenCursor) -> Tuple[str, ...]:
    """One string, a bracketed list, or nothing (an empty tuple)."""
    if cursor.peek_kind() in _STRING_KINDS:
        return (cursor.advance().value,)
    if cursor.peek_kind() == TokenKind.LBRACKET:
        return _parse_bracketed_strings(cursor)
    return ()


def _parse_bracketed_strings(cursor: TokenCursor) -> Tuple[str, ...]:
    """``[ "a", "b" ]`` with the cursor on ``[``.

    Stops quietly at the first token that is neither a string, a comma,
    nor ``]``.
    """
    cursor.advance()
    items = []
    while True:
        kind = cursor.peek_kind()
        if kind in _STRING_KINDS:
            items.append(cursor.advance().value)
        elif kind == TokenKind.COMMA:
            cursor.advance()
        elif kind == TokenKind.RBRACKET:
            cursor.advance()
            break
        else:
            break
    return tuple(items)


# ---------------------------------------------------------------------------
# Actions
# ---------------------------------------------------------------------------


def _parse_action_block(cursor: TokenCursor) -> Tuple[ActionCommand, ...]:
    opening = cursor.peek()
    if cursor.accept(TokenKind.LBRACE) is None:
        raise ParseError(
            "Expected '{' to start action block" + _where(opening),
            SyntaxErrorKind.missing_brace,
            opening.offset if opening else None,
        )

    actions = []
    while True:
        while cursor.peek_kind() in (TokenKind.COMMENT, TokenKind.BLOCK_COMMENT):
            cursor.advance()
        if cursor.accept(TokenKind.RBRACE):
            break
        if cursor.at_end():
            raise ParseError(
                "Unexpected end of input in action block",
                SyntaxErrorKind.unexpected_end,
            )
        actions.append(_parse_action_command(cursor))
    return tuple(actions)


def _parse_action_command(cursor: TokenCursor) -> ActionCommand:
    token = cursor.peek()
    if token is None:
        raise ParseError(
            "Expected action name, got end of input",
            SyntaxErrorKind.unexpected_end,
        )
    if token.kind != TokenKind.IDENTIFIER:
        raise ParseError(
            "Expected action name, got {!r} at offset {}".format(token.value, token.offset),
            SyntaxErrorKind.unexpected_token,
            token.offset,
        )
    cursor.advance()

    arguments: List[Argument] = []
    while True:
        kind = cursor.peek_kind()
        if kind == TokenKind.SEMICOLON:
            cursor.advance()
            break
        if kind in _STRING_KINDS:
            arguments.append(QuotedString(cursor.advance().value))
        elif kind == TokenKind.NUMBER:
            arguments.append(Number(cursor.advance().value))
        elif kind == TokenKind.TAG:
            arguments.append(Tag(cursor.advance().value))
        elif kind == TokenKind.LBRACKET:
            arguments.append(StringList(_parse_bracketed_strings(cursor)))
        else:
            break

    return ActionCommand(token.value, tuple(arguments))


def _where(token: Optional[Token]) -> str:
    if token is None:
        return ", got end of input"
    return ", got {!r} at offset {}".format(token.value, token.offset)
