"""Unit tests for the recursive-descent parser.

WHY: The parser decides what the converter sees. Each grammar rule and
each failure category needs a direct test so regressions show up here
and not as mysterious raw blocks in the editor.

HOW: parse() short scripts and compare against hand-built AST nodes;
error tests assert on SyntaxErrorKind.

RULES:
- AST nodes are frozen dataclasses, so equality compares whole trees
"""

import pytest

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
    Require,
    Script,
    SizeTest,
    StringList,
    Tag,
    TrueTest,
)
from sieve_converter.core.errors import ParseError, SieveSyntaxError, SyntaxErrorKind
from sieve_converter.core.lexer import tokenize
from sieve_converter.core.parser import TokenCursor, parse, parse_test_expr


def _test_of(text):
    """Parse ``text`` as a single test expression."""
    return parse_test_expr(TokenCursor(tokenize(text)))


def _only_if(text) -> IfBlock:
    commands = parse(text).commands
    assert len(commands) == 1
    assert isinstance(commands[0], IfBlock)
    return commands[0]


class TestTopLevel:
    """Commands accepted outside blocks."""

    def test_empty_input(self):
        assert parse("") == Script()
        assert parse("  \n\t ") == Script()

    def test_require_single_and_list(self):
        script = parse('require "fileinto";\nrequire ["body", "regex"];')
        assert script.commands == (
            Require(("fileinto",)),
            Require(("body", "regex")),
        )

    def test_require_semicolon_optional(self):
        assert parse('require "envelope"').commands == (Require(("envelope",)),)

    def test_bare_actions(self):
        script = parse('keep;\nfileinto "Archive";')
        assert script.commands == (
            ActionCommand("keep"),
            ActionCommand("fileinto", (QuotedString("Archive"),)),
        )

    def test_keywords_are_case_insensitive(self):
        block = _only_if('IF TRUE { KEEP; }')
        assert block.condition == TrueTest()
        assert block.actions == (ActionCommand("KEEP"),)

    def test_standalone_comment_kept(self):
        script = parse("# just a note\nkeep;")
        assert script.commands == (Comment("just a note"), ActionCommand("keep"))

    def test_block_comment_skipped(self):
        assert parse("/* header */ keep;").commands == (ActionCommand("keep"),)

    def test_unknown_command(self):
        with pytest.raises(ParseError) as excinfo:
            parse("vacation :days 7;")
        assert excinfo.value.kind == SyntaxErrorKind.unknown_command
        assert excinfo.value.offset == 0

    def test_unexpected_token_at_top_level(self):
        with pytest.raises(ParseError) as excinfo:
            parse('keep;\n"stray"')
        assert excinfo.value.kind == SyntaxErrorKind.unexpected_token
        assert excinfo.value.offset == 6

    def test_lex_errors_propagate(self):
        with pytest.raises(SieveSyntaxError) as excinfo:
            parse('if true { fileinto "x; }')
        assert excinfo.value.kind == SyntaxErrorKind.unterminated_string


class TestMetadata:
    """# Filter: comments directly above if."""

    def test_filter_comment_names_block(self, move_spam_script):
        script = parse(move_spam_script)
        block = script.commands[1]
        assert block.name == "Move spam"
        assert block.enabled is True

    def test_disabled_marker(self):
        block = _only_if("# Filter: Old rule [DISABLED]\nif true { keep; }")
        assert block.name == "Old rule"
        assert block.enabled is False

    def test_other_comment_before_if_is_discarded(self):
        block = _only_if("# catch newsletters\nif true { keep; }")
        assert block.name is None
        assert block.enabled is True

    def test_only_immediately_preceding_comment_counts(self):
        script = parse("# Filter: Far away\nkeep;\nif true { stop; }")
        assert script.commands[0] == Comment("Filter: Far away")
        assert script.commands[2].name is None

    def test_empty_filter_name(self):
        block = _only_if("# Filter:\nif true { keep; }")
        assert block.name is None


class TestTests:
    """Test expressions through parse_test_expr()."""

    def test_header_default_match_type(self):
        assert _test_of('header "Subject" "hi"') == HeaderTest(":is", ("Subject",), ("hi",))

    def test_header_lists(self):
        assert _test_of('header :contains ["To", "Cc"] ["a", "b"]') == HeaderTest(
            ":contains", ("To", "Cc"), ("a", "b")
        )

    def test_comparator_is_dropped(self):
        expr = _test_of('header :comparator "i;ascii-casemap" :matches "Subject" "*x*"')
        assert expr == HeaderTest(":matches", ("Subject",), ("*x*",))

    def test_address_part_and_match_type_in_any_order(self):
        expected = AddressTest(":is", ("From",), ("hapimag.com",), ":domain")
        assert _test_of('address :is :domain "From" "hapimag.com"') == expected
        assert _test_of('address :domain :is "From" "hapimag.com"') == expected

    def test_address_without_part(self):
        expr = _test_of('address "From" "a@b"')
        assert expr == AddressTest(":is", ("From",), ("a@b",), None)

    def test_envelope(self):
        expr = _test_of('envelope :localpart :matches "to" "sales*"')
        assert expr == EnvelopeTest(":matches", ("to",), ("sales*",), ":localpart")

    def test_body_has_no_header_names(self):
        assert _test_of('body :contains "unsubscribe"') == BodyTest(":contains", ("unsubscribe",))

    def test_size(self):
        assert _test_of("size :under 100K") == SizeTest(":under", "100K")

    def test_size_defaults(self):
        assert _test_of("size") == SizeTest(":over", "0")

    def test_size_quoted_limit(self):
        assert _test_of('size :over "5M"') == SizeTest(":over", "5M")

    def test_exists(self):
        assert _test_of('exists ["X-Spam", "X-Virus"]') == ExistsTest(("X-Spam", "X-Virus"))

    def test_true_false_not(self):
        assert _test_of("not false") == Not(FalseTest())

    def test_allof_anyof_nesting(self):
        expr = _test_of('anyof (true, allof (exists "A", not exists "B"))')
        assert expr == AnyOf((
            TrueTest(),
            AllOf((ExistsTest(("A",)), Not(ExistsTest(("B",))))),
        ))

    def test_trailing_comma_tolerated(self):
        assert _test_of("allof (true, false,)") == AllOf((TrueTest(), FalseTest()))

    def test_missing_comma_between_tests_tolerated(self):
        assert _test_of("allof (true false)") == AllOf((TrueTest(), FalseTest()))

    def test_empty_test_list(self):
        assert _test_of("anyof ()") == AnyOf(())

    def test_missing_string_list_is_lenient(self):
        assert _test_of("exists") == ExistsTest(())

    def test_multi_line_string_as_key(self):
        expr = _test_of('header :is "Subject" text:\nhello\n.\n')
        assert expr == HeaderTest(":is", ("Subject",), ("hello\n",))

    def test_unknown_test(self):
        with pytest.raises(ParseError) as excinfo:
            parse("if spamtest 5 { discard; }")
        assert excinfo.value.kind == SyntaxErrorKind.unknown_test
        assert excinfo.value.offset == 3

    def test_allof_without_parenthesis(self):
        with pytest.raises(ParseError) as excinfo:
            parse("if allof true { keep; }")
        assert excinfo.value.kind == SyntaxErrorKind.unexpected_token

    def test_condition_missing(self):
        with pytest.raises(ParseError) as excinfo:
            parse("if")
        assert excinfo.value.kind == SyntaxErrorKind.unexpected_end
        assert excinfo.value.offset is None


class TestBlocks:
    """Action blocks and elsif/else chains."""

    def test_action_arguments(self):
        block = _only_if('if true { redirect :copy "a@b"; setflag ["\\\\Seen", "x"]; foo 5; }')
        assert block.actions == (
            ActionCommand("redirect", (Tag(":copy"), QuotedString("a@b"))),
            ActionCommand("setflag", (StringList(("\\Seen", "x")),)),
            ActionCommand("foo", (Number("5"),)),
        )

    def test_multi_line_action_argument(self):
        block = _only_if("if true { reject text:\nGo away.\n.\n; }")
        assert block.actions == (ActionCommand("reject", (QuotedString("Go away.\n"),)),)

    def test_comments_inside_block_skipped(self):
        block = _only_if("if true {\n    # first\n    keep; /* second */\n}")
        assert block.actions == (ActionCommand("keep"),)

    def test_empty_block(self):
        assert _only_if("if true {}").actions == ()

    def test_elsif_else_chain(self, chain_script):
        block = parse(chain_script).commands[1]
        assert block.name == "Sort by sender"
        assert block.alternatives == (
            ElsIf(
                HeaderTest(":is", ("From",), ("bob@example.com",)),
                (ActionCommand("fileinto", (QuotedString("Bob"),)),),
            ),
            Else((ActionCommand("keep"),)),
        )

    def test_else_is_terminal(self):
        with pytest.raises(ParseError) as excinfo:
            parse("if true { keep; } else { stop; } elsif false { discard; }")
        assert excinfo.value.kind == SyntaxErrorKind.unknown_command

    def test_missing_brace(self):
        with pytest.raises(ParseError) as excinfo:
            parse('if header :is "Subject" "x" keep;')
        assert excinfo.value.kind == SyntaxErrorKind.missing_brace
        assert excinfo.value.offset == 28

    def test_missing_brace_at_end_of_input(self):
        with pytest.raises(ParseError) as excinfo:
            parse("if true")
        assert excinfo.value.kind == SyntaxErrorKind.missing_brace
        assert excinfo.value.offset is None

    def test_unclosed_block(self):
        with pytest.raises(ParseError) as excinfo:
            parse("if true { keep;")
        assert excinfo.value.kind == SyntaxErrorKind.unexpected_end

    def test_non_identifier_in_block(self):
        with pytest.raises(ParseError) as excinfo:
            parse('if true { "keep"; }')
        assert excinfo.value.kind == SyntaxErrorKind.unexpected_token
