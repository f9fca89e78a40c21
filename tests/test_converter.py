"""Tests for the AST <-> rule model converter.

WHY: This is the layer the editor actually calls. It must never reject a
script, never lose content it cannot model, and round-trip everything it
can model without drift.

HOW: text_to_script() on reference scripts with field-by-field checks,
script_to_text() on hand-built models, and round trips in both
directions. Raw-block behaviour is tested through both the reduction
sum type and the public functions.

RULES:
- Scenario scripts come from conftest.py
- Log assertions use caplog with the converter's logger name
"""

import logging
from dataclasses import replace

import pytest

from sieve_converter.config import PARSE_ERROR_RULE_NAME
from sieve_converter.core.ast import IfBlock
from sieve_converter.core.converter import (
    Reduced,
    Unreduced,
    reduce_if_block,
    required_extensions_for_rules,
    script_to_ast,
    script_to_text,
    text_to_script,
)
from sieve_converter.core.enums import (
    ActionType,
    AddressPart,
    ConditionTest,
    LogicOperator,
    MatchType,
    SizeComparator,
)
from sieve_converter.core.model import Action, Condition, SieveRule, SieveScript
from sieve_converter.core.parser import parse

CONVERTER_LOGGER = "sieve_converter.core.converter"


def _if_block(text) -> IfBlock:
    return [cmd for cmd in parse(text).commands if isinstance(cmd, IfBlock)][0]


class TestTextToScript:
    """Parse direction, including the reference scenarios."""

    def test_move_spam_scenario(self, move_spam_script):
        script = text_to_script(move_spam_script, "main")
        assert script.name == "main"
        assert script.requires == ("fileinto",)
        assert len(script.rules) == 1

        rule = script.rules[0]
        assert rule.name == "Move spam"
        assert rule.enabled is True
        assert rule.raw_block is None
        assert rule.logic == LogicOperator.all_of
        assert rule.conditions == (
            Condition(
                test_type=ConditionTest.header,
                header_names=("Subject",),
                keys=("SPAM",),
                match_type=MatchType.contains,
            ),
        )
        assert rule.actions[0] == Action(ActionType.fileinto, "Junk")
        assert rule.actions[1] == Action(ActionType.stop)

    def test_allof_scenario(self):
        text = (
            'if allof (header :is "From" "boss@example.com", '
            'header :contains "Subject" "urgent") { keep; }'
        )
        rule = text_to_script(text).rules[0]
        assert rule.logic == LogicOperator.all_of
        assert [c.match_type for c in rule.conditions] == [MatchType.is_, MatchType.contains]
        assert [c.header_names for c in rule.conditions] == [("From",), ("Subject",)]
        assert [c.keys for c in rule.conditions] == [("boss@example.com",), ("urgent",)]

    def test_anyof_logic(self):
        rule = text_to_script('if anyof (exists "X-A", exists "X-B") { stop; }').rules[0]
        assert rule.logic == LogicOperator.any_of
        assert len(rule.conditions) == 2

    def test_address_domain_scenario(self):
        rule = text_to_script('if address :is :domain "From" "hapimag.com" { keep; }').rules[0]
        assert rule.raw_block is None
        assert rule.conditions == (
            Condition(
                test_type=ConditionTest.address,
                header_names=("From",),
                keys=("hapimag.com",),
                match_type=MatchType.is_,
                address_part=AddressPart.domain,
            ),
        )

    def test_elsif_chain_scenario(self, chain_script):
        script = text_to_script(chain_script)
        rule = script.rules[0]
        assert rule.name == "Sort by sender"
        assert rule.conditions == ()
        assert rule.actions == ()
        assert rule.raw_block == chain_script.split("\n", 2)[2]
        assert script_to_text(script) == chain_script

    def test_not_sets_negate(self):
        rule = text_to_script('if not header :matches "Subject" "*[ok]*" { discard; }').rules[0]
        assert rule.conditions[0].negate is True
        assert rule.conditions[0].match_type == MatchType.matches

    def test_size_and_body_and_constants(self):
        text = 'if allof (size :under 2M, body :regex "win", true, not false) { keep; }'
        conditions = text_to_script(text).rules[0].conditions
        assert conditions[0] == Condition(
            test_type=ConditionTest.size,
            size_comparator=SizeComparator.under,
            size_value="2M",
        )
        assert conditions[1].test_type == ConditionTest.body
        assert conditions[1].match_type == MatchType.regex
        assert conditions[2].test_type == ConditionTest.true
        assert conditions[3] == Condition(test_type=ConditionTest.false, negate=True)

    def test_disabled_rule(self):
        rule = text_to_script("# Filter: Later [DISABLED]\nif true { keep; }").rules[0]
        assert rule.name == "Later"
        assert rule.enabled is False

    def test_rule_without_metadata_has_empty_name(self):
        assert text_to_script("if true { keep; }").rules[0].name == ""

    def test_empty_text(self):
        for text in ("", "   \n"):
            script = text_to_script(text, "empty")
            assert script.rules == ()
            assert script.requires == ()
            assert script.name == "empty"

    def test_requires_deduplicated_in_first_seen_order(self):
        text = 'require ["reject", "fileinto"];\nrequire "reject";\nrequire "body";\nkeep;'
        assert text_to_script(text).requires == ("reject", "fileinto", "body")

    def test_top_level_actions_and_comments_are_not_rules(self):
        script = text_to_script("# hello\nkeep;\nif true { stop; }\n")
        assert len(script.rules) == 1

    def test_parse_error_becomes_single_raw_rule(self, broken_script, caplog):
        with caplog.at_level(logging.WARNING, logger=CONVERTER_LOGGER):
            script = text_to_script(broken_script, "bad")
        assert script.rules == (SieveRule(name=PARSE_ERROR_RULE_NAME, raw_block=broken_script),)
        assert script.requires == ()
        assert "does not parse" in caplog.text

    def test_parse_error_text_survives_emission(self, broken_script):
        assert script_to_text(text_to_script(broken_script)) == broken_script


class TestReduction:
    """The Reduced / Unreduced decision for single if blocks."""

    def test_reducible_block(self, move_spam_script):
        result = reduce_if_block(_if_block(move_spam_script))
        assert isinstance(result, Reduced)
        assert result.logic == LogicOperator.all_of
        assert len(result.actions) == 2

    @pytest.mark.parametrize("text, reason", [
        ("if true { keep; } else { stop; }", "elsif/else chain"),
        ("if allof () { keep; }", "empty test list"),
        ("if not not true { keep; }", "nested not"),
        ("if allof (true, anyof (true, false)) { keep; }", "nested AnyOf"),
        ('if header :value "Subject" "x" { keep; }', "match type :value"),
        ('if address :user "From" "x" { keep; }', "match type :user"),
        ("if size :exactly 5 { keep; }", "size comparator :exactly"),
        ('if size :over "10 MB" { discard; }', "size limit '10 MB'"),
        ('if true { redirect :copy "a@b"; }', "arguments on redirect"),
        ('if true { fileinto "A" "B"; }', "arguments on fileinto"),
        ('if true { keep "x"; }', "arguments on keep"),
        ("if true { vacation; }", "action vacation"),
    ])
    def test_unreducible_blocks(self, text, reason):
        block = _if_block(text)
        result = reduce_if_block(block)
        assert isinstance(result, Unreduced)
        assert result.reason == reason
        assert parse(result.original_text).commands == (block,)

    def test_fallback_logged_at_debug(self, caplog):
        with caplog.at_level(logging.DEBUG, logger=CONVERTER_LOGGER):
            text_to_script("# Filter: Chain\nif true { keep; } else { stop; }")
        assert "kept as raw block" in caplog.text
        assert "elsif/else chain" in caplog.text

    def test_raw_block_invariant(self, chain_script, mixed_script):
        script = text_to_script(chain_script + "\n" + mixed_script.split("\n", 1)[1])
        for rule in script.rules:
            if rule.raw_block is not None:
                assert rule.conditions == () and rule.actions == ()
            else:
                assert rule.conditions or rule.actions


class TestScriptToText:
    """Emit direction from hand-built models."""

    def test_builds_require_and_rules(self):
        script = SieveScript(rules=(
            SieveRule(
                name="Lists",
                logic=LogicOperator.any_of,
                conditions=(
                    Condition(header_names=("List-Id",), keys=("dev",)),
                    Condition(test_type=ConditionTest.envelope, header_names=("to",),
                              keys=("lists@x.org",), match_type=MatchType.is_),
                ),
                actions=(Action(ActionType.fileinto, "Lists"), Action(ActionType.stop)),
            ),
            SieveRule(
                enabled=False,
                conditions=(Condition(test_type=ConditionTest.body, keys=("^win",),
                                      match_type=MatchType.regex, negate=True),),
                actions=(Action(ActionType.addflag, "\\Seen"),),
            ),
        ))
        assert script_to_text(script) == (
            'require ["body", "envelope", "fileinto", "imap4flags", "regex"];\n'
            "\n"
            "# Filter: Lists\n"
            'if anyof (header :contains "List-Id" "dev", envelope :is "to" "lists@x.org") {\n'
            '    fileinto "Lists";\n'
            "    stop;\n"
            "}\n"
            "\n"
            'if not body :regex "^win" {\n'
            '    addflag "\\\\Seen";\n'
            "}\n"
        )

    def test_single_condition_is_not_wrapped(self):
        rule = SieveRule(conditions=(Condition(test_type=ConditionTest.exists,
                                               header_names=("X-Spam",)),),
                         actions=(Action(ActionType.discard),))
        assert script_to_text(SieveScript(rules=(rule,))) == 'if exists "X-Spam" {\n    discard;\n}\n'

    def test_no_conditions_means_true(self):
        rule = SieveRule(actions=(Action(ActionType.keep),))
        assert script_to_text(SieveScript(rules=(rule,))) == "if true {\n    keep;\n}\n"

    def test_argument_ignored_for_argumentless_actions(self):
        rule = SieveRule(actions=(Action(ActionType.stop, "ignored"),))
        assert "    stop;\n" in script_to_text(SieveScript(rules=(rule,)))

    def test_requires_merged_into_one_statement(self):
        text = 'require "fileinto";\nif true { fileinto "A"; }\nrequire "fileinto";\nif true { fileinto "B"; }\n'
        emitted = script_to_text(text_to_script(text))
        assert emitted.count("require") == 1
        assert emitted.startswith('require "fileinto";\n')

    def test_unused_requires_are_dropped(self):
        emitted = script_to_text(text_to_script('require "vacation";\nif true { keep; }'))
        assert "require" not in emitted

    def test_line_break_in_rule_name_stays_in_comment(self):
        rule = SieveRule(name="a\nstop", actions=(Action(ActionType.keep),))
        text = script_to_text(SieveScript(rules=(rule,)))
        assert text == "# Filter: a stop\nif true {\n    keep;\n}\n"
        reloaded = text_to_script(text)
        assert [r.name for r in reloaded.rules] == ["a stop"]
        assert reloaded.rules[0].actions == (Action(ActionType.keep),)

    def test_empty_model(self):
        assert script_to_text(SieveScript()) == ""


class TestRawBlocks:
    """Emission of rules that carry raw_block."""

    def test_raw_block_requires_are_emitted(self):
        rule = SieveRule(raw_block='if true { reject "no"; } else { fileinto "Ok"; }')
        text = script_to_text(SieveScript(rules=(rule,)))
        assert text.startswith('require ["fileinto", "reject"];\n')

    def test_rule_name_and_flag_override_raw_comment(self, chain_script):
        rule = replace(text_to_script(chain_script).rules[0], name="Renamed", enabled=False)
        text = script_to_text(SieveScript(rules=(rule,)))
        assert "# Filter: Renamed [DISABLED]\n" in text
        assert "Sort by sender" not in text

    def test_only_first_if_block_is_kept(self):
        rule = SieveRule(raw_block="keep;\nif true { stop; } else { keep; }\nif false { discard; }")
        text = script_to_text(SieveScript(rules=(rule,)))
        assert text == "if true {\n    stop;\n} else {\n    keep;\n}\n"

    def test_unparseable_raw_block_emitted_verbatim(self, caplog):
        rule = SieveRule(name="Hand edited", raw_block="if header {")
        with caplog.at_level(logging.WARNING, logger=CONVERTER_LOGGER):
            ast = script_to_ast(SieveScript(rules=(rule,)))
        assert script_to_text(SieveScript(rules=(rule,))) == "if header {\n"
        assert len(ast.commands) == 1
        assert "no longer parses" in caplog.text

    def test_raw_block_without_if_is_kept(self):
        rule = SieveRule(raw_block="# just a comment")
        assert script_to_text(SieveScript(rules=(rule,))) == "# just a comment\n"

    def test_raw_block_between_modeled_rules(self, chain_script):
        model = text_to_script(chain_script + "\n# Filter: Tail\nif true {\n    stop;\n}\n")
        assert [r.is_raw for r in model.rules] == [True, False]
        assert script_to_text(model) == chain_script + "\n# Filter: Tail\nif true {\n    stop;\n}\n"


class TestRoundTrip:
    """text -> model -> text -> model."""

    def test_mixed_script_round_trips_exactly(self, mixed_script):
        assert script_to_text(text_to_script(mixed_script)) == mixed_script

    def test_model_is_stable(self, mixed_script):
        first = text_to_script(mixed_script, "w")
        second = text_to_script(script_to_text(first), "w")
        assert second == first

    def test_hand_built_model_round_trips(self):
        rule = SieveRule(
            name="Everything",
            logic=LogicOperator.any_of,
            conditions=(
                Condition(test_type=ConditionTest.address, header_names=("From", "Sender"),
                          keys=("a", "b"), match_type=MatchType.matches,
                          address_part=AddressPart.localpart),
                Condition(test_type=ConditionTest.size, size_comparator=SizeComparator.over,
                          size_value="100K", negate=True),
                Condition(test_type=ConditionTest.exists, header_names=("X-Spam",)),
            ),
            actions=(
                Action(ActionType.redirect, "other@example.com"),
                Action(ActionType.reject, 'Say "no"'),
                Action(ActionType.removeflag, "\\Seen"),
                Action(ActionType.keep),
            ),
        )
        model = SieveScript(name="s", rules=(rule,), requires=("imap4flags", "reject"))
        assert text_to_script(script_to_text(model), "s") == model

    def test_quoted_size_limit_kept_as_raw(self):
        text = 'if size :over "10 MB" {\n    discard;\n}\n'
        model = text_to_script(text)
        assert model.rules[0].is_raw
        assert script_to_text(model) == text
        assert text_to_script(script_to_text(model)) == model

    def test_quoted_numeric_size_limit_is_modeled(self):
        model = text_to_script('if size :under "5M" { keep; }')
        assert model.rules[0].conditions[0].size_value == "5M"
        assert script_to_text(model) == "if size :under 5M {\n    keep;\n}\n"

    def test_required_extensions_for_rules_ignores_raw(self):
        rules = (
            SieveRule(raw_block='if true { fileinto "x"; }'),
            SieveRule(conditions=(Condition(test_type=ConditionTest.size,
                                            match_type=MatchType.regex),)),
        )
        assert required_extensions_for_rules(rules) == ()
