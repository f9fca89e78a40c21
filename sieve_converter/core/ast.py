"""AST node shapes for parsed SIEVE scripts.

WHY: The parser and emitter need a faithful, structured form of a script
that is independent of the simplified rule model. The converter reads it
to project rules and builds it to regenerate text.

HOW: Frozen dataclasses holding tuples. A Script is an ordered tuple of
commands; the Command, TestExpr, Alternative, and Argument aliases name
the closed variant sets.

RULES:
- Nodes are immutable values; build new ones instead of mutating
- Ordering is significant everywhere (tests in allof/anyof, actions in a
  block, the elsif/else chain) and must be preserved
- match_type, address_part, and comparator keep their sieve spelling
  including the leading colon (":contains", ":domain", ":over")
- An Else alternative is always last
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple, Union


# ---------------------------------------------------------------------------
# Action arguments and commands
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class QuotedString:
    value: str


@dataclass(frozen=True)
class Number:
    value: str


@dataclass(frozen=True)
class Tag:
    value: str


@dataclass(frozen=True)
class StringList:
    values: Tuple[str, ...] = ()


Argument = Union[QuotedString, Number, Tag, StringList]


@dataclass(frozen=True)
class ActionCommand:
    """An action such as ``fileinto "Junk";`` or ``stop;``."""

    name: str
    arguments: Tuple[Argument, ...] = ()


# ---------------------------------------------------------------------------
# Tests
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class AllOf:
    tests: Tuple["TestExpr", ...] = ()


@dataclass(frozen=True)
class AnyOf:
    tests: Tuple["TestExpr", ...] = ()


@dataclass(frozen=True)
class Not:
    test: "TestExpr"


@dataclass(frozen=True)
class HeaderTest:
    match_type: str
    header_names: Tuple[str, ...] = ()
    keys: Tuple[str, ...] = ()


@dataclass(frozen=True)
class AddressTest:
    match_type: str
    header_names: Tuple[str, ...] = ()
    keys: Tuple[str, ...] = ()
    address_part: Optional[str] = None


@dataclass(frozen=True)
class EnvelopeTest:
    match_type: str
    header_names: Tuple[str, ...] = ()
    keys: Tuple[str, ...] = ()
    address_part: Optional[str] = None


@dataclass(frozen=True)
class SizeTest:
    comparator: str = ":over"
    limit: str = "0"


@dataclass(frozen=True)
class ExistsTest:
    header_names: Tuple[str, ...] = ()


@dataclass(frozen=True)
class BodyTest:
    match_type: str
    keys: Tuple[str, ...] = ()


@dataclass(frozen=True)
class TrueTest:
    pass


@dataclass(frozen=True)
class FalseTest:
    pass


TestExpr = Union[
    AllOf,
    AnyOf,
    Not,
    HeaderTest,
    AddressTest,
    EnvelopeTest,
    SizeTest,
    ExistsTest,
    BodyTest,
    TrueTest,
    FalseTest,
]


# ---------------------------------------------------------------------------
# Control structure and top-level commands
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ElsIf:
    condition: TestExpr
    actions: Tuple[ActionCommand, ...] = ()


@dataclass(frozen=True)
class Else:
    actions: Tuple[ActionCommand, ...] = ()


Alternative = Union[ElsIf, Else]


@dataclass(frozen=True)
class IfBlock:
    """``if <test> { ... }`` with its optional elsif/else chain.

    ``name`` and ``enabled`` come from a ``# Filter:`` comment directly
    before the ``if``; a block without one has ``name=None`` and is enabled.
    """

    condition: TestExpr
    actions: Tuple[ActionCommand, ...] = ()
    alternatives: Tuple[Alternative, ...] = ()
    name: Optional[str] = None
    enabled: bool = True


@dataclass(frozen=True)
class Require:
    extensions: Tuple[str, ...] = ()


@dataclass(frozen=True)
class Comment:
    text: str


@dataclass(frozen=True)
class Raw:
    """Text emitted verbatim; never produced by the parser."""

    text: str


Command = Union[Require, IfBlock, ActionCommand, Comment, Raw]


@dataclass(frozen=True)
class Script:
    commands: Tuple[Command, ...] = ()
