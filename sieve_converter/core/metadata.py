"""Filter name / enabled metadata carried in ``# Filter:`` comments.

WHY: SIEVE has no syntax for naming a rule or switching it off. The
editor stores both in a comment line directly above each ``if``. This is
a private convention, so it lives here and nowhere else; the parser and
emitter only call these two functions.

HOW: read_filter_comment() recognises ``Filter: <name>`` with an optional
trailing ``[DISABLED]``; format_filter_comment() writes the same shape.

RULES:
- Comment text is already stripped of "#" and surrounding whitespace
- Any comment that does not start with "Filter:" carries no metadata
- "[DISABLED]" at the end clears enabled; it is not part of the name
- An empty name after stripping means no name, but the flag still applies
- Line breaks in a name are written as single spaces so the comment
  stays on one line
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional

FILTER_PREFIX = "Filter:"
DISABLED_MARKER = "[DISABLED]"

_LINE_BREAKS = re.compile(r"[\r\n]+")


@dataclass(frozen=True)
class FilterMetadata:
    name: Optional[str]
    enabled: bool = True


def read_filter_comment(comment: Optional[str]) -> Optional[FilterMetadata]:
    """Extract filter metadata from a comment, or None if it carries none."""
    if comment is None:
        return None
    text = comment.strip()
    if not text.startswith(FILTER_PREFIX):
        return None

    name = text[len(FILTER_PREFIX):].strip()
    enabled = True
    if name.endswith(DISABLED_MARKER):
        name = name[: -len(DISABLED_MARKER)].strip()
        enabled = False
    return FilterMetadata(name=name or None, enabled=enabled)


def format_filter_comment(name: str, enabled: bool) -> str:
    """Comment text (without the leading "# ") for a named rule."""
    name = _LINE_BREAKS.sub(" ", name)
    if enabled:
        return "{} {}".format(FILTER_PREFIX, name)
    return "{} {} {}".format(FILTER_PREFIX, name, DISABLED_MARKER)
