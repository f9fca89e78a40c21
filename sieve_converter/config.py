"""Configuration constants and .env loading.

WHY: Centralizes the few values that callers may want to tune (file
encoding, log level, request size limit, API bind address) together with
the fixed constants shared by the emitter and converter, so nothing is
buried in logic.

HOW: python-dotenv loads the .env file on import. Tunables are read from
environment variables with defaults; fixed constants are plain module
attributes.

RULES:
- Every environment variable is prefixed with SIEVE_
- Integer settings are validated on import; bad values raise ValueError
- The core conversion functions never read the environment themselves,
  they only use the constants below
"""

from __future__ import annotations

import os

from dotenv import load_dotenv

# Load .env from the working directory (where the tool is run from)
load_dotenv()


def _env_int(name: str, default: int) -> int:
    """Read a positive integer from the environment.

    RULES:
    - Missing or empty variable returns the default
    - Non-integer or non-positive values raise ValueError naming the variable
    """
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ValueError("{} must be an integer, got {!r}".format(name, raw)) from None
    if value <= 0:
        raise ValueError("{} must be positive, got {}".format(name, value))
    return value


# ---------------------------------------------------------------------------
# Script text
# ---------------------------------------------------------------------------

SCRIPT_ENCODING = os.getenv("SIEVE_SCRIPT_ENCODING", "utf-8")
"""Encoding used to read and write script files."""

SCRIPT_SUFFIX = ".sieve"

SIEVE_MEDIA_TYPE = "application/sieve"
"""MIME type registered for SIEVE scripts (RFC 5804)."""

INDENT = "    "
"""Indentation of actions inside an if/elsif/else block."""

PARSE_ERROR_RULE_NAME = "(parse error)"
"""Name of the single rule that holds an unparseable script verbatim."""

# ---------------------------------------------------------------------------
# Logging and HTTP API
# ---------------------------------------------------------------------------

LOG_LEVEL = os.getenv("SIEVE_LOG_LEVEL", "WARNING").upper()

MAX_SCRIPT_BYTES = _env_int("SIEVE_MAX_SCRIPT_BYTES", 1024 * 1024)
"""Largest script text accepted by the HTTP API, in UTF-8 bytes."""

API_HOST = os.getenv("SIEVE_API_HOST", "127.0.0.1")
API_PORT = _env_int("SIEVE_API_PORT", 8000)
