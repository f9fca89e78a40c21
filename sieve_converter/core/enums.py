"""Closed enumerations of the rule model and their SIEVE spellings.

WHY: The editor works with a handful of closed choices (match type,
address part, action, ...). Each needs a stable JSON value for the model
and a SIEVE spelling for the AST. Keeping the two in separate places
invites drift.

HOW: Each enum is a ``str`` Enum whose value is the JSON form. One
module-level table per enum maps members to their SIEVE spelling;
``as_sieve()`` reads it forwards and ``from_sieve()`` reads it backwards.

RULES:
- The tables below are the only place SIEVE spellings are written down
- from_sieve() returns None for unknown spellings; it never raises
- Tags are compared with their leading colon (":contains")
- Keywords (action names, test names, allof/anyof) compare case-insensitively
"""

from __future__ import annotations

from enum import Enum
from typing import Dict, Optional, TypeVar

E = TypeVar("E", bound=Enum)


def _reverse(table: Dict[E, str], text: str) -> Optional[E]:
    for member, spelling in table.items():
        if spelling == text:
            return member
    return None


class LogicOperator(str, Enum):
    all_of = "all_of"
    any_of = "any_of"

    def as_sieve(self) -> str:
        return LOGIC_OPERATOR_SIEVE[self]

    @classmethod
    def from_sieve(cls, text: str) -> Optional["LogicOperator"]:
        return _reverse(LOGIC_OPERATOR_SIEVE, text.lower())


class ConditionTest(str, Enum):
    header = "header"
    address = "address"
    envelope = "envelope"
    size = "size"
    exists = "exists"
    body = "body"
    true = "true"
    false = "false"

    def as_sieve(self) -> str:
        return CONDITION_TEST_SIEVE[self]

    @classmethod
    def from_sieve(cls, text: str) -> Optional["ConditionTest"]:
        return _reverse(CONDITION_TEST_SIEVE, text.lower())


class MatchType(str, Enum):
    is_ = "is"
    contains = "contains"
    matches = "matches"
    regex = "regex"

    def as_sieve(self) -> str:
        return MATCH_TYPE_SIEVE[self]

    @classmethod
    def from_sieve(cls, text: str) -> Optional["MatchType"]:
        return _reverse(MATCH_TYPE_SIEVE, text)


class AddressPart(str, Enum):
    all = "all"
    localpart = "localpart"
    domain = "domain"

    def as_sieve(self) -> str:
        return ADDRESS_PART_SIEVE[self]

    @classmethod
    def from_sieve(cls, text: str) -> Optional["AddressPart"]:
        return _reverse(ADDRESS_PART_SIEVE, text)


class SizeComparator(str, Enum):
    over = "over"
    under = "under"

    def as_sieve(self) -> str:
        return SIZE_COMPARATOR_SIEVE[self]

    @classmethod
    def from_sieve(cls, text: str) -> Optional["SizeComparator"]:
        return _reverse(SIZE_COMPARATOR_SIEVE, text)


class ActionType(str, Enum):
    fileinto = "fileinto"
    redirect = "redirect"
    reject = "reject"
    discard = "discard"
    keep = "keep"
    stop = "stop"
    setflag = "setflag"
    addflag = "addflag"
    removeflag = "removeflag"

    def as_sieve(self) -> str:
        return ACTION_TYPE_SIEVE[self]

    @classmethod
    def from_sieve(cls, text: str) -> Optional["ActionType"]:
        return _reverse(ACTION_TYPE_SIEVE, text.lower())

    @property
    def takes_argument(self) -> bool:
        return self not in _NO_ARGUMENT_ACTIONS


# ---------------------------------------------------------------------------
# SIEVE spellings
# ---------------------------------------------------------------------------

LOGIC_OPERATOR_SIEVE: Dict[LogicOperator, str] = {
    LogicOperator.all_of: "allof",
    LogicOperator.any_of: "anyof",
}

CONDITION_TEST_SIEVE: Dict[ConditionTest, str] = {
    ConditionTest.header: "header",
    ConditionTest.address: "address",
    ConditionTest.envelope: "envelope",
    ConditionTest.size: "size",
    ConditionTest.exists: "exists",
    ConditionTest.body: "body",
    ConditionTest.true: "true",
    ConditionTest.false: "false",
}

MATCH_TYPE_SIEVE: Dict[MatchType, str] = {
    MatchType.is_: ":is",
    MatchType.contains: ":contains",
    MatchType.matches: ":matches",
    MatchType.regex: ":regex",
}

ADDRESS_PART_SIEVE: Dict[AddressPart, str] = {
    AddressPart.all: ":all",
    AddressPart.localpart: ":localpart",
    AddressPart.domain: ":domain",
}

SIZE_COMPARATOR_SIEVE: Dict[SizeComparator, str] = {
    SizeComparator.over: ":over",
    SizeComparator.under: ":under",
}

ACTION_TYPE_SIEVE: Dict[ActionType, str] = {member: member.value for member in ActionType}

_NO_ARGUMENT_ACTIONS = frozenset({ActionType.discard, ActionType.keep, ActionType.stop})

