"""Rule model JSON formatter.

WHY: The rule editor loads and saves the model, not the SIEVE text. A
JSON document it cannot read back is worse than no document, so the
output is checked against the same schema that guards script_from_dict().

HOW: script_to_dict() flattens the model; the result is validated with
jsonschema and pretty-printed.

RULES:
- Validate output against the schema before returning; raise on failure
- Non-ASCII characters are written as-is, not escaped
- Output suffix: ".rules.json"
- Media type: "application/json"
"""

from __future__ import annotations

import json
from typing import List

from sieve_converter.core.model import SieveScript
from sieve_converter.core.serialization import script_to_dict, validate_document
from sieve_converter.formatters.base import BaseFormatter, FormatterOutput


class RulesJsonFormatter(BaseFormatter):
    """Serialize the rule model as a schema-valid JSON document."""

    @property
    def name(self) -> str:
        return "Rule model JSON"

    def format(self, script: SieveScript) -> List[FormatterOutput]:
        """Convert the model into one JSON file.

        Raises:
            jsonschema.ValidationError: If the generated document does not
                conform to the SieveScript schema.
        """
        document = script_to_dict(script)
        validate_document(document)
        return [
            FormatterOutput(
                suffix=".rules.json",
                content=json.dumps(document, indent=2, ensure_ascii=False) + "\n",
                media_type="application/json",
            )
        ]
