"""Output formatter registry.

WHY: The CLI and the API need a single lookup to find the right
formatter by name. Adding a format means writing the class, importing it
here, and adding one line.

HOW: FORMATTERS maps string keys to formatter *classes* (not instances).
Callers instantiate as needed: ``formatter = FORMATTERS["sieve"]()``.

RULES:
- Keys are snake_case identifiers (used in CLI flags and API responses)
- Values are BaseFormatter subclasses (not instances)
- Every formatter listed here must be importable without side effects
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Dict, Type

from sieve_converter.formatters.rules_json import RulesJsonFormatter
from sieve_converter.formatters.sieve_text import SieveTextFormatter

if TYPE_CHECKING:
    from sieve_converter.formatters.base import BaseFormatter

FORMATTERS: Dict[str, Type[BaseFormatter]] = {
    "sieve": SieveTextFormatter,
    "rules_json": RulesJsonFormatter,
}
