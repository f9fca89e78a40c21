"""Shared test fixtures for the sieve_converter test suite.

WHY: Lexer, parser, converter, CLI and API tests all need the same small
set of realistic scripts. Centralizing them here keeps the expected
values in one place.

HOW: Module-level constants hold the script texts; fixtures hand them to
tests and write them to tmp_path where a file is needed.

RULES:
- Every script below is already in canonical emitted form, so
  emit(parse(text)) == text holds for all of them
- MOVE_SPAM_SCRIPT is the reference single-rule script
- CHAIN_SCRIPT holds an elsif/else chain the rule model cannot represent
"""

from pathlib import Path

import pytest

MOVE_SPAM_SCRIPT = (
    'require "fileinto";\n'
    "\n"
    "# Filter: Move spam\n"
    'if header :contains "Subject" "SPAM" {\n'
    '    fileinto "Junk";\n'
    "    stop;\n"
    "}\n"
)

CHAIN_SCRIPT = (
    'require "fileinto";\n'
    "\n"
    "# Filter: Sort by sender\n"
    'if header :is "From" "alice@example.com" {\n'
    '    fileinto "Alice";\n'
    '} elsif header :is "From" "bob@example.com" {\n'
    '    fileinto "Bob";\n'
    "} else {\n"
    "    keep;\n"
    "}\n"
)

MIXED_SCRIPT = (
    'require ["fileinto", "imap4flags"];\n'
    "\n"
    "# Filter: Boss\n"
    'if allof (header :is "From" "boss@example.com", header :contains "Subject" "urgent") {\n'
    '    addflag "\\\\Flagged";\n'
    "    keep;\n"
    "}\n"
    "\n"
    "# Filter: Partner domain [DISABLED]\n"
    'if address :is :domain "From" "hapimag.com" {\n'
    '    fileinto "Partners";\n'
    "}\n"
    "\n"
    "# Filter: Large\n"
    "if size :over 10M {\n"
    "    discard;\n"
    "}\n"
)

BROKEN_SCRIPT = 'if header :is "Subject" "unterminated {\n    keep;\n}\n'


@pytest.fixture
def move_spam_script():
    return MOVE_SPAM_SCRIPT


@pytest.fixture
def chain_script():
    return CHAIN_SCRIPT


@pytest.fixture
def mixed_script():
    return MIXED_SCRIPT


@pytest.fixture
def broken_script():
    return BROKEN_SCRIPT


@pytest.fixture
def script_file(tmp_path: Path) -> Path:
    """MIXED_SCRIPT saved as work.sieve in a temp directory."""
    path = tmp_path / "work.sieve"
    path.write_text(MIXED_SCRIPT, encoding="utf-8")
    return path


@pytest.fixture
def broken_file(tmp_path: Path) -> Path:
    path = tmp_path / "broken.sieve"
    path.write_text(BROKEN_SCRIPT, encoding="utf-8")
    return path
