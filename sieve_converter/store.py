"""Load and save script files.

WHY: The CLI and any embedding application read scripts from disk and
write them back after editing. Keeping the file I/O in one place keeps
the encoding choice consistent.

HOW: open() with newline="" so line endings pass through untouched, in
config.SCRIPT_ENCODING unless the caller names another encoding.

RULES:
- Text is returned exactly as stored (no stripping): a trailing newline
  after the last rule is part of the script
- Newlines are not translated on read or write
- Missing files raise FileNotFoundError; decoding failures raise
  UnicodeDecodeError
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional, Union

from sieve_converter.config import SCRIPT_ENCODING


def load_script(path: Union[str, Path], encoding: Optional[str] = None) -> str:
    """Read a script file as text."""
    with open(path, encoding=encoding or SCRIPT_ENCODING, newline="") as f:
        return f.read()


def save_script(path: Union[str, Path], text: str, encoding: Optional[str] = None) -> Path:
    """Write ``text`` to ``path``, replacing any existing file.

    Returns:
        The path written, as a Path.
    """
    target = Path(path)
    with open(target, "w", encoding=encoding or SCRIPT_ENCODING, newline="") as f:
        f.write(text)
    return target
