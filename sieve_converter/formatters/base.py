"""Abstract base formatter and output container.

WHY: A SieveScript model can be written out in more than one form: SIEVE
text for the mail server, JSON for the rule editor. The CLI and the HTTP
API should not care which; they ask the registry for a formatter by key
and save whatever comes back.

HOW: BaseFormatter is an ABC with a ``name`` property and a ``format()``
method. FormatterOutput bundles a file suffix with its content and MIME
type.

RULES:
- Subclasses MUST implement ``name`` (human-readable) and ``format()``
- ``format()`` returns a list; current formatters return one item
- ``suffix`` includes the leading dot, e.g. ``".sieve"``
- The caller is responsible for prepending the script name or file stem
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List

from sieve_converter.core.model import SieveScript


@dataclass
class FormatterOutput:
    """One output file produced by a formatter.

    Attributes:
        suffix: File suffix appended to the stem,
                e.g. ``".rules.json"`` -> ``"vacation.rules.json"``.
        content: The file content.
        media_type: MIME type for the content, e.g. ``"application/sieve"``.
    """

    suffix: str
    content: str
    media_type: str


class BaseFormatter(ABC):
    """Abstract base for all output formatters.

    To add a new output format:
    1. Create a new file in formatters/
    2. Subclass BaseFormatter
    3. Implement format() and name
    4. Register in FORMATTERS dict in formatters/__init__.py
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Human-readable format name, e.g. 'SIEVE script'."""

    @abstractmethod
    def format(self, script: SieveScript) -> List[FormatterOutput]:
        """Render the rule model into one or more output files."""
