"""Editable rule model: the UI-facing simplification of a SIEVE script.

WHY: The visual editor does not want an AST. It wants a list of named
rules, each a flat set of conditions joined by all/any and a list of
actions. Anything that does not fit that shape must still survive a
load/save cycle untouched.

HOW: Four frozen dataclasses. SieveScript holds SieveRules; a rule holds
Conditions and Actions, or, when its ``if`` could not be reduced to that
shape, the re-emitted text of the original block in ``raw_block``.

RULES:
- raw_block is not None  <=>  conditions and actions are empty and the
  rule's text is carried verbatim
- Sequences are tuples; use dataclasses.replace() to derive edited copies
- size_value is kept as text so suffixes like "100K" survive
- Condition fields that do not apply to its test_type keep their defaults
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple

from sieve_converter.core.enums import (
    ActionType,
    AddressPart,
    ConditionTest,
    LogicOperator,
    MatchType,
    SizeComparator,
)


@dataclass(frozen=True)
class Condition:
    """One test in a rule.

    negate wraps the test in ``not``. header_names is unused for body,
    size, true and false; keys is unused for size, exists, true and false.
    """

    test_type: ConditionTest = ConditionTest.header
    header_names: Tuple[str, ...] = ()
    keys: Tuple[str, ...] = ()
    match_type: MatchType = MatchType.contains
    address_part: AddressPart = AddressPart.all
    size_comparator: SizeComparator = SizeComparator.over
    size_value: str = "0"
    negate: bool = False


@dataclass(frozen=True)
class Action:
    action_type: ActionType = ActionType.keep
    argument: str = ""


@dataclass(frozen=True)
class SieveRule:
    name: str = ""
    enabled: bool = True
    logic: LogicOperator = LogicOperator.all_of
    conditions: Tuple[Condition, ...] = ()
    actions: Tuple[Action, ...] = ()
    raw_block: Optional[str] = None

    @property
    def is_raw(self) -> bool:
        return self.raw_block is not None


@dataclass(frozen=True)
class SieveScript:
    name: str = ""
    rules: Tuple[SieveRule, ...] = ()
    requires: Tuple[str, ...] = ()
    active: bool = False
