"""JSON interchange form of the rule model.

WHY: The editor, the CLI, and the HTTP API exchange SieveScript models as
JSON documents. Hand-edited or client-produced documents must be checked
before they are turned back into SIEVE text, otherwise a typo in an enum
value would only surface as a KeyError deep in the converter.

HOW: script_to_dict() flattens the frozen dataclasses into plain dicts
and lists with enum values as strings. script_from_dict() validates the
document against the bundled JSON schema with jsonschema, then rebuilds
the dataclasses, filling omitted fields with model defaults.

RULES:
- Enum fields serialize to their .value ("contains", "all_of", ...)
- Tuples serialize to lists
- Every document passes the schema before it is converted
- Invalid documents raise jsonschema.ValidationError
"""

from __future__ import annotations

import json
from dataclasses import asdict
from enum import Enum
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict

import jsonschema

from sieve_converter.core.enums import (
    ActionType,
    AddressPart,
    ConditionTest,
    LogicOperator,
    MatchType,
    SizeComparator,
)
from sieve_converter.core.model import Action, Condition, SieveRule, SieveScript

SCHEMA_PATH = Path(__file__).resolve().parent.parent / "schemas" / "sieve_script.schema.json"


@lru_cache(maxsize=1)
def load_schema() -> Dict[str, Any]:
    """The SieveScript JSON schema, read once."""
    with open(SCHEMA_PATH, encoding="utf-8") as f:
        return json.load(f)


def _plain(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (list, tuple)):
        return [_plain(item) for item in value]
    if isinstance(value, dict):
        return {key: _plain(item) for key, item in value.items()}
    return value


def script_to_dict(script: SieveScript) -> Dict[str, Any]:
    """Convert a SieveScript to a JSON-ready dict."""
    return _plain(asdict(script))


def validate_document(document: Dict[str, Any]) -> None:
    """Raise jsonschema.ValidationError if ``document`` is not a SieveScript."""
    jsonschema.validate(instance=document, schema=load_schema())


def script_from_dict(document: Dict[str, Any]) -> SieveScript:
    """Validate a JSON document and rebuild the SieveScript it describes."""
    validate_document(document)
    return SieveScript(
        name=document["name"],
        rules=tuple(_rule_from_dict(rule) for rule in document["rules"]),
        requires=tuple(document.get("requires", ())),
        active=document.get("active", False),
    )


def _rule_from_dict(data: Dict[str, Any]) -> SieveRule:
    defaults = SieveRule()
    return SieveRule(
        name=data.get("name", defaults.name),
        enabled=data.get("enabled", defaults.enabled),
        logic=LogicOperator(data.get("logic", defaults.logic.value)),
        conditions=tuple(_condition_from_dict(c) for c in data.get("conditions", ())),
        actions=tuple(_action_from_dict(a) for a in data.get("actions", ())),
        raw_block=data.get("raw_block"),
    )


def _condition_from_dict(data: Dict[str, Any]) -> Condition:
    defaults = Condition()
    return Condition(
        test_type=ConditionTest(data["test_type"]),
        header_names=tuple(data.get("header_names", ())),
        keys=tuple(data.get("keys", ())),
        match_type=MatchType(data.get("match_type", defaults.match_type.value)),
        address_part=AddressPart(data.get("address_part", defaults.address_part.value)),
        size_comparator=SizeComparator(data.get("size_comparator", defaults.size_comparator.value)),
        size_value=data.get("size_value", defaults.size_value),
        negate=data.get("negate", defaults.negate),
    )


def _action_from_dict(data: Dict[str, Any]) -> Action:
    return Action(
        action_type=ActionType(data["action_type"]),
        argument=data.get("argument", ""),
    )
