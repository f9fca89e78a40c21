"""Bidirectional conversion between SIEVE text and the rule model.

WHY: The editor edits SieveScript models, the server stores SIEVE text.
This module is the only place that knows both the AST and the model, and
it owns the policy that keeps every byte of user content alive: what it
cannot represent as conditions and actions it carries as raw text.

HOW:
  text_to_script()  text -> parse() -> AST -> reduce each if -> SieveScript
  script_to_text()  SieveScript -> script_to_ast() -> emit() -> text

Each ``if`` goes through reduce_if_block(), which returns either
Reduced (logic, conditions, actions) or Unreduced (the re-emitted text
of the block). There is no implicit "both lists empty" check.

RULES:
- text_to_script() never raises; a parse error yields exactly one rule
  named "(parse error)" whose raw_block is the whole input
- Blank input yields no rules and no requires
- requires are de-duplicated in first-seen order on the way in; on the
  way out they are recomputed from the rules, sorted, in one statement
- A raw rule is re-parsed on emission; its first if block is emitted,
  and text that does not parse (or holds no if) is emitted verbatim
- Bare top-level actions and comments are not projected into rules
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import List, Optional, Set, Tuple, Union

from sieve_converter.config import PARSE_ERROR_RULE_NAME
from sieve_converter.core.ast import (
    ActionCommand,
    AddressTest,
    AllOf,
    AnyOf,
    BodyTest,
    Command,
    EnvelopeTest,
    ExistsTest,
    FalseTest,
    HeaderTest,
    IfBlock,
    Not,
    QuotedString,
    Raw,
    Require,
    Script,
    SizeTest,
    TrueTest,
)
from sieve_converter.core.emitter import (
    ACTION_EXTENSIONS,
    emit,
    is_size_limit,
    required_extensions,
)
from sieve_converter.core.enums import (
    ActionType,
    AddressPart,
    ConditionTest,
    LogicOperator,
    MatchType,
    SizeComparator,
)
from sieve_converter.core.errors import SieveSyntaxError
from sieve_converter.core.model import Action, Condition, SieveRule, SieveScript
from sieve_converter.core.parser import parse

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Reduction result
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Reduced:
    logic: LogicOperator
    conditions: Tuple[Condition, ...]
    actions: Tuple[Action, ...]


@dataclass(frozen=True)
class Unreduced:
    """An if block the model cannot hold; ``original_text`` is its emission."""

    original_text: str
    reason: str


Reduction = Union[Reduced, Unreduced]


class _NotReducible(Exception):
    """Internal signal: the block cannot be expressed in the model."""


# ---------------------------------------------------------------------------
# Text -> model
# ---------------------------------------------------------------------------


def text_to_script(text: str, name: str = "") -> SieveScript:
    """Parse SIEVE text into a SieveScript model.

    Args:
        text: Script source. Empty or whitespace-only text is an empty script.
        name: Script name to record on the model.

    Returns:
        The model. Never raises on bad script content.
    """
    if not text.strip():
        return SieveScript(name=name)

    try:
        ast = parse(text)
    except SieveSyntaxError as exc:
        logger.warning("Script %r does not parse, keeping it verbatim: %s", name, exc)
        return SieveScript(
            name=name,
            rules=(SieveRule(name=PARSE_ERROR_RULE_NAME, raw_block=text),),
        )

    requires: List[str] = []
    rules: List[SieveRule] = []
    for cmd in ast.commands:
        if isinstance(cmd, Require):
            for ext in cmd.extensions:
                if ext not in requires:
                    requires.append(ext)
        elif isinstance(cmd, IfBlock):
            rules.append(rule_from_if_block(cmd))

    return SieveScript(name=name, rules=tuple(rules), requires=tuple(requires))


def rule_from_if_block(block: IfBlock) -> SieveRule:
    reduction = reduce_if_block(block)
    rule_name = block.name or ""
    if isinstance(reduction, Unreduced):
        logger.debug("Rule %r kept as raw block: %s", rule_name, reduction.reason)
        return SieveRule(
            name=rule_name,
            enabled=block.enabled,
            raw_block=reduction.original_text,
        )
    return SieveRule(
        name=rule_name,
        enabled=block.enabled,
        logic=reduction.logic,
        conditions=reduction.conditions,
        actions=reduction.actions,
    )


def reduce_if_block(block: IfBlock) -> Reduction:
    """Decide whether ``block`` fits the flat condition/action shape.

    RULES:
    - No elsif/else alternatives
    - The condition is a single reducible test, or a non-empty allof/anyof
      whose members are all reducible tests
    - A reducible test is header/address/envelope/size/exists/body/true/
      false with model-known tags, optionally under exactly one "not"
    - A size limit must be a number literal such as "100K"
    - Every action is a known action: keep/stop/discard take no arguments,
      the others at most one quoted string
    """
    try:
        if block.alternatives:
            raise _NotReducible("elsif/else chain")
        logic, conditions = _reduce_condition(block.condition)
        actions = tuple(_action_from_command(cmd) for cmd in block.actions)
    except _NotReducible as exc:
        return Unreduced(original_text=emit(Script((block,))), reason=str(exc))
    return Reduced(logic=logic, conditions=conditions, actions=actions)


def _reduce_condition(expr) -> Tuple[LogicOperator, Tuple[Condition, ...]]:
    if isinstance(expr, (AllOf, AnyOf)):
        if not expr.tests:
            raise _NotReducible("empty test list")
        logic = LogicOperator.all_of if isinstance(expr, AllOf) else LogicOperator.any_of
        return logic, tuple(_condition_from_test(test) for test in expr.tests)
    return LogicOperator.all_of, (_condition_from_test(expr),)


def _condition_from_test(expr, negate: bool = False) -> Condition:
    if isinstance(expr, Not):
        if negate:
            raise _NotReducible("nested not")
        return _condition_from_test(expr.test, negate=True)

    if isinstance(expr, HeaderTest):
        return Condition(
            test_type=ConditionTest.header,
            header_names=expr.header_names,
            keys=expr.keys,
            match_type=_match_type(expr.match_type),
            negate=negate,
        )
    if isinstance(expr, (AddressTest, EnvelopeTest)):
        return Condition(
            test_type=ConditionTest.address if isinstance(expr, AddressTest) else ConditionTest.envelope,
            header_names=expr.header_names,
            keys=expr.keys,
            match_type=_match_type(expr.match_type),
            address_part=_address_part(expr.address_part),
            negate=negate,
        )
    if isinstance(expr, SizeTest):
        comparator = SizeComparator.from_sieve(expr.comparator)
        if comparator is None:
            raise _NotReducible("size comparator {}".format(expr.comparator))
        if not is_size_limit(expr.limit):
            raise _NotReducible("size limit {!r}".format(expr.limit))
        return Condition(
            test_type=ConditionTest.size,
            size_comparator=comparator,
            size_value=expr.limit,
            negate=negate,
        )
    if isinstance(expr, ExistsTest):
        return Condition(test_type=ConditionTest.exists, header_names=expr.header_names, negate=negate)
    if isinstance(expr, BodyTest):
        return Condition(
            test_type=ConditionTest.body,
            keys=expr.keys,
            match_type=_match_type(expr.match_type),
            negate=negate,
        )
    if isinstance(expr, TrueTest):
        return Condition(test_type=ConditionTest.true, negate=negate)
    if isinstance(expr, FalseTest):
        return Condition(test_type=ConditionTest.false, negate=negate)

    raise _NotReducible("nested {}".format(type(expr).__name__))


def _match_type(tag: str) -> MatchType:
    match_type = MatchType.from_sieve(tag)
    if match_type is None:
        raise _NotReducible("match type {}".format(tag))
    return match_type


def _address_part(tag: Optional[str]) -> AddressPart:
    if tag is None:
        return AddressPart.all
    part = AddressPart.from_sieve(tag)
    if part is None:
        raise _NotReducible("address part {}".format(tag))
    return part


def _action_from_command(cmd: ActionCommand) -> Action:
    action_type = ActionType.from_sieve(cmd.name)
    if action_type is None:
        raise _NotReducible("action {}".format(cmd.name))

    if not action_type.takes_argument:
        if cmd.arguments:
            raise _NotReducible("arguments on {}".format(cmd.name))
        return Action(action_type=action_type)

    if not cmd.arguments:
        return Action(action_type=action_type)
    if len(cmd.arguments) == 1 and isinstance(cmd.arguments[0], QuotedString):
        return Action(action_type=action_type, argument=cmd.arguments[0].value)
    raise _NotReducible("arguments on {}".format(cmd.name))


# ---------------------------------------------------------------------------
# Model -> text
# ---------------------------------------------------------------------------


def script_to_text(script: SieveScript) -> str:
    """Regenerate SIEVE text from a SieveScript model."""
    return emit(script_to_ast(script))


def script_to_ast(script: SieveScript) -> Script:
    """Build the AST that script_to_text() emits.

    RULES:
    - A single Require comes first, holding the sorted extensions needed
      by modeled rules and by successfully re-parsed raw blocks
    - Raw rules: the re-parsed if block is emitted; when the rule has a
      name (other than the parse-error placeholder), the rule's name and
      enabled flag replace the block's
    - Raw text that does not parse, or holds no if block, becomes Raw
    - Modeled rules become a fresh if block without alternatives
    """
    extensions: Set[str] = set(required_extensions_for_rules(script.rules))
    commands: List[Command] = []

    for rule in script.rules:
        if rule.raw_block is not None:
            block = _reparse_raw_block(rule)
            if block is None:
                commands.append(Raw(rule.raw_block))
                continue
            extensions.update(required_extensions(Script((block,))))
            commands.append(block)
            continue

        commands.append(IfBlock(
            condition=_build_test(rule),
            actions=tuple(_build_action(action) for action in rule.actions),
            name=rule.name or None,
            enabled=rule.enabled,
        ))

    if extensions:
        commands.insert(0, Require(tuple(sorted(extensions))))
    return Script(tuple(commands))


def _reparse_raw_block(rule: SieveRule) -> Optional[IfBlock]:
    try:
        parsed = parse(rule.raw_block)
    except SieveSyntaxError as exc:
        if rule.name != PARSE_ERROR_RULE_NAME:
            logger.warning("Raw block of rule %r no longer parses, emitting verbatim: %s", rule.name, exc)
        return None

    for cmd in parsed.commands:
        if isinstance(cmd, IfBlock):
            if rule.name and rule.name != PARSE_ERROR_RULE_NAME:
                return replace(cmd, name=rule.name, enabled=rule.enabled)
            return cmd
    return None


def _build_test(rule: SieveRule):
    if not rule.conditions:
        return TrueTest()
    tests = tuple(_test_from_condition(cond) for cond in rule.conditions)
    if len(tests) == 1:
        return tests[0]
    if rule.logic == LogicOperator.any_of:
        return AnyOf(tests)
    return AllOf(tests)


def _test_from_condition(cond: Condition):
    test_type = cond.test_type
    if test_type == ConditionTest.header:
        expr = HeaderTest(cond.match_type.as_sieve(), cond.header_names, cond.keys)
    elif test_type in (ConditionTest.address, ConditionTest.envelope):
        address_part = None if cond.address_part == AddressPart.all else cond.address_part.as_sieve()
        node = AddressTest if test_type == ConditionTest.address else EnvelopeTest
        expr = node(cond.match_type.as_sieve(), cond.header_names, cond.keys, address_part)
    elif test_type == ConditionTest.size:
        expr = SizeTest(cond.size_comparator.as_sieve(), cond.size_value or "0")
    elif test_type == ConditionTest.exists:
        expr = ExistsTest(cond.header_names)
    elif test_type == ConditionTest.body:
        expr = BodyTest(cond.match_type.as_sieve(), cond.keys)
    elif test_type == ConditionTest.false:
        expr = FalseTest()
    else:
        expr = TrueTest()

    return Not(expr) if cond.negate else expr


def _build_action(action: Action) -> ActionCommand:
    arguments = ()
    if action.action_type.takes_argument and action.argument:
        arguments = (QuotedString(action.argument),)
    return ActionCommand(action.action_type.as_sieve(), arguments)


def required_extensions_for_rules(rules) -> Tuple[str, ...]:
    """Sorted extensions needed by the modeled (non-raw) rules."""
    found: Set[str] = set()
    for rule in rules:
        for action in rule.actions:
            ext = ACTION_EXTENSIONS.get(action.action_type.as_sieve())
            if ext:
                found.add(ext)
        for cond in rule.conditions:
            if cond.test_type == ConditionTest.body:
                found.add("body")
            elif cond.test_type == ConditionTest.envelope:
                found.add("envelope")
            if cond.match_type == MatchType.regex and cond.test_type in _MATCHING_TESTS:
                found.add("regex")
    return tuple(sorted(found))


_MATCHING_TESTS = frozenset({
    ConditionTest.header,
    ConditionTest.address,
    ConditionTest.envelope,
    ConditionTest.body,
})
