"""Emit SIEVE script text from an AST.

WHY: Both the format layer (reformatting a script) and the model layer
(regenerating a script from edited rules) end in text. Emission must
never fail for a structurally valid AST, and must be deterministic so
that repeated saves do not produce spurious diffs.

HOW: One pass collects every Require into a single leading statement,
a second pass writes the remaining commands in order. Tests and actions
are written by small recursive helpers.

RULES:
- All require names are de-duplicated (first seen) into one statement;
  one name uses the single-string form, several use a bracketed list
- A blank line separates an If or Raw command from earlier output;
  comments and bare actions do not add one
- Raw text is written verbatim, plus a newline only if it lacks one
- Named If blocks are preceded by their "# Filter:" comment
- Actions inside blocks are indented by config.INDENT
- Quoted strings escape backslash first, then double quote
- String lists of exactly one item render as a plain quoted string
- An address part of ":all" is the RFC default and is omitted
- A size limit is written bare only when it is a number literal
  (digits plus an optional K/M/G); anything else is quoted
"""

from __future__ import annotations

import re
from typing import Iterable, List, Set, Tuple

from sieve_converter.config import INDENT
from sieve_converter.core.ast import (
    ActionCommand,
    AddressTest,
    AllOf,
    AnyOf,
    BodyTest,
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
    Raw,
    Require,
    Script,
    SizeTest,
    StringList,
    Tag,
    TrueTest,
)
from sieve_converter.core.metadata import format_filter_comment

_SIZE_LIMIT = re.compile(r"[0-9]+[KkMmGg]?")


def is_size_limit(text: str) -> bool:
    """True if ``text`` can be written as a bare SIEVE number."""
    return _SIZE_LIMIT.fullmatch(text) is not None


def emit(script: Script) -> str:
    """Render a Script AST as SIEVE text."""
    out: List[str] = []
    first = True

    requires = _merge_requires(script)
    if requires:
        out.append("require {};\n".format(_string_or_list(requires)))
        first = False

    for cmd in script.commands:
        if isinstance(cmd, Require):
            continue
        if isinstance(cmd, IfBlock):
            if not first:
                out.append("\n")
            _emit_if_block(out, cmd)
            first = False
        elif isinstance(cmd, ActionCommand):
            _emit_action(out, cmd, 0)
            first = False
        elif isinstance(cmd, Comment):
            out.append("# {}\n".format(cmd.text))
        elif isinstance(cmd, Raw):
            if not first:
                out.append("\n")
            out.append(cmd.text)
            if not cmd.text.endswith("\n"):
                out.append("\n")
            first = False

    return "".join(out)


def _merge_requires(script: Script) -> List[str]:
    merged: List[str] = []
    for cmd in script.commands:
        if isinstance(cmd, Require):
            for ext in cmd.extensions:
                if ext not in merged:
                    merged.append(ext)
    return merged


def _emit_if_block(out: List[str], block: IfBlock) -> None:
    if block.name:
        out.append("# {}\n".format(format_filter_comment(block.name, block.enabled)))

    out.append("if ")
    out.append(emit_test(block.condition))
    _emit_action_block(out, block.actions)

    for alt in block.alternatives:
        if isinstance(alt, ElsIf):
            out.append(" elsif ")
            out.append(emit_test(alt.condition))
            _emit_action_block(out, alt.actions)
        elif isinstance(alt, Else):
            out.append(" else")
            _emit_action_block(out, alt.actions)

    out.append("\n")


def _emit_action_block(out: List[str], actions: Iterable[ActionCommand]) -> None:
    out.append(" {\n")
    for action in actions:
        _emit_action(out, action, 1)
    out.append("}")


def emit_test(expr) -> str:
    """Render one test expression."""
    if isinstance(expr, (AllOf, AnyOf)):
        keyword = "allof" if isinstance(expr, AllOf) else "anyof"
        return "{} ({})".format(keyword, ", ".join(emit_test(t) for t in expr.tests))
    if isinstance(expr, Not):
        return "not " + emit_test(expr.test)
    if isinstance(expr, HeaderTest):
        return "header {} {} {}".format(
            expr.match_type,
            _string_or_list(expr.header_names),
            _string_or_list(expr.keys),
        )
    if isinstance(expr, (AddressTest, EnvelopeTest)):
        keyword = "address" if isinstance(expr, AddressTest) else "envelope"
        parts = [keyword, expr.match_type]
        if expr.address_part and expr.address_part != ":all":
            parts.append(expr.address_part)
        parts.append(_string_or_list(expr.header_names))
        parts.append(_string_or_list(expr.keys))
        return " ".join(parts)
    if isinstance(expr, SizeTest):
        limit = expr.limit if is_size_limit(expr.limit) else quote(expr.limit)
        return "size {} {}".format(expr.comparator, limit)
    if isinstance(expr, ExistsTest):
        return "exists " + _string_or_list(expr.header_names)
    if isinstance(expr, BodyTest):
        return "body {} {}".format(expr.match_type, _string_or_list(expr.keys))
    if isinstance(expr, TrueTest):
        return "true"
    if isinstance(expr, FalseTest):
        return "false"
    raise TypeError("Not a test expression: {!r}".format(expr))


def _emit_action(out: List[str], action: ActionCommand, depth: int) -> None:
    out.append(INDENT * depth)
    out.append(action.name)
    for arg in action.arguments:
        out.append(" ")
        if isinstance(arg, QuotedString):
            out.append(quote(arg.value))
        elif isinstance(arg, (Number, Tag)):
            out.append(arg.value)
        elif isinstance(arg, StringList):
            out.append(_string_or_list(arg.values))
    out.append(";\n")


def quote(value: str) -> str:
    """Quote a string literal, escaping backslash then double quote."""
    return '"{}"'.format(value.replace("\\", "\\\\").replace('"', '\\"'))


def _string_or_list(items) -> str:
    items = list(items)
    if len(items) == 1:
        return quote(items[0])
    return "[{}]".format(", ".join(quote(item) for item in items))


# ---------------------------------------------------------------------------
# Required extensions
# ---------------------------------------------------------------------------

# Lower-cased action name -> extension it needs.
ACTION_EXTENSIONS = {
    "fileinto": "fileinto",
    "reject": "reject",
    "setflag": "imap4flags",
    "addflag": "imap4flags",
    "removeflag": "imap4flags",
}


def required_extensions(script: Script) -> Tuple[str, ...]:
    """Sorted extension names the commands of ``script`` depend on.

    Walks nested tests and every elsif/else branch. Existing Require
    commands are not consulted.
    """
    found: Set[str] = set()
    for cmd in script.commands:
        if isinstance(cmd, IfBlock):
            _collect_test(cmd.condition, found)
            _collect_actions(cmd.actions, found)
            for alt in cmd.alternatives:
                if isinstance(alt, ElsIf):
                    _collect_test(alt.condition, found)
                _collect_actions(alt.actions, found)
        elif isinstance(cmd, ActionCommand):
            _collect_actions((cmd,), found)
    return tuple(sorted(found))


def _collect_test(expr, found: Set[str]) -> None:
    if isinstance(expr, (AllOf, AnyOf)):
        for test in expr.tests:
            _collect_test(test, found)
    elif isinstance(expr, Not):
        _collect_test(expr.test, found)
    elif isinstance(expr, (HeaderTest, AddressTest, EnvelopeTest, BodyTest)):
        if isinstance(expr, EnvelopeTest):
            found.add("envelope")
        if isinstance(expr, BodyTest):
            found.add("body")
        if expr.match_type == ":regex":
            found.add("regex")


def _collect_actions(actions: Iterable[ActionCommand], found: Set[str]) -> None:
    for action in actions:
        ext = ACTION_EXTENSIONS.get(action.name.lower())
        if ext:
            found.add(ext)
