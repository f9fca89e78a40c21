"""SIEVE script text formatter.

WHY: The server-side artifact. Whatever the editor did to the rule
model, this is what gets uploaded.

RULES:
- Content is exactly script_to_text(script)
- Output suffix: ".sieve"
- Media type: "application/sieve"
"""

from __future__ import annotations

from typing import List

from sieve_converter.config import SCRIPT_SUFFIX, SIEVE_MEDIA_TYPE
from sieve_converter.core.converter import script_to_text
from sieve_converter.core.model import SieveScript
from sieve_converter.formatters.base import BaseFormatter, FormatterOutput


class SieveTextFormatter(BaseFormatter):
    """Emit the rule model as canonical SIEVE text."""

    @property
    def name(self) -> str:
        return "SIEVE script"

    def format(self, script: SieveScript) -> List[FormatterOutput]:
        return [
            FormatterOutput(
                suffix=SCRIPT_SUFFIX,
                content=script_to_text(script),
                media_type=SIEVE_MEDIA_TYPE,
            )
        ]
