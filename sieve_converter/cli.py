"""Command-line interface for the SIEVE Converter.

WHY: Administrators keep filter scripts as files. They need to check a
script before uploading it, normalize its layout, and export the rule
model the editor works with, all from the terminal and in scripts.

HOW: argparse with three subcommands:
- ``convert`` loads a script (SIEVE text, or a ``.json`` rule model
  document), runs the selected formatters and saves their output next to
  the input (or to --output-dir).
- ``check`` parses strictly and reports the first syntax error.
- ``format`` re-emits a script in canonical layout.
Status messages go to stderr; results go to stdout or files.

RULES:
- --formats: comma-separated formatter keys (default: all registered)
- Output naming: {stem}{suffix}, numeric suffix for conflicts
  (filters.rules-2.json)
- Status output goes to stderr (not stdout)
- Exit status 1 on any user-facing error (missing file, syntax error,
  invalid model document, unknown format)
- --verbose switches logging to DEBUG; otherwise config.LOG_LEVEL applies
"""

from __future__ import annotations

import argparse
import dataclasses
import json
import logging
import sys
from pathlib import Path
from typing import List, NoReturn, Optional

import jsonschema

from sieve_converter import __version__
from sieve_converter.config import LOG_LEVEL
from sieve_converter.core.converter import text_to_script
from sieve_converter.core.emitter import emit
from sieve_converter.core.errors import SieveSyntaxError
from sieve_converter.core.model import SieveScript
from sieve_converter.core.parser import parse
from sieve_converter.core.serialization import script_from_dict
from sieve_converter.formatters import FORMATTERS
from sieve_converter.formatters.base import FormatterOutput
from sieve_converter.store import load_script, save_script

logger = logging.getLogger(__name__)

_MODEL_SUFFIXES = (".rules.json", ".json")


def _status(msg: str) -> None:
    """Print a status message to stderr.

    WHY: Status output must not pollute stdout so the CLI can be piped.
    """
    print(msg, file=sys.stderr, flush=True)


def _fail(msg: str) -> NoReturn:
    print("Error: {}".format(msg), file=sys.stderr)
    sys.exit(1)


def _script_stem(path: Path) -> str:
    """File name without its script or model suffix.

    "work.sieve" -> "work", "work.rules.json" -> "work".
    """
    name = path.name
    for suffix in _MODEL_SUFFIXES:
        if name.lower().endswith(suffix):
            return name[: -len(suffix)]
    return path.stem


def _resolve_output_path(
    stem: str,
    suffix: str,
    output_dir: Path,
) -> Path:
    """Resolve the output file path, adding numeric suffix on conflict.

    WHY: Converting a script next to itself must not overwrite the input
    or an earlier export.

    RULES:
    - First attempt: {stem}{suffix} (e.g. work.rules.json)
    - Conflict: split suffix at last dot, insert counter before extension
      (e.g. work.rules-2.json, work-2.sieve)
    - Counter starts at 2 and increments
    """
    base_path = output_dir / "{}{}".format(stem, suffix)
    if not base_path.exists():
        return base_path

    dot_idx = suffix.rfind(".")
    if dot_idx >= 0:
        suffix_name = suffix[:dot_idx]
        suffix_ext = suffix[dot_idx:]
    else:
        suffix_name = suffix
        suffix_ext = ""

    counter = 2
    while True:
        candidate = output_dir / "{}{}-{}{}".format(stem, suffix_name, counter, suffix_ext)
        if not candidate.exists():
            return candidate
        counter += 1


def _save_output(
    output: FormatterOutput,
    stem: str,
    output_dir: Path,
) -> Path:
    """Save a single formatter output to a conflict-free path."""
    path = _resolve_output_path(stem, output.suffix, output_dir)
    return save_script(path, output.content)


def _read_input(path_arg: str) -> str:
    path = Path(path_arg)
    if not path.is_file():
        _fail("File not found: {}".format(path))
    try:
        return load_script(path)
    except UnicodeDecodeError as e:
        _fail("Cannot decode {}: {}".format(path, e))


def _load_model(input_path: Path, text: str, name: Optional[str]) -> SieveScript:
    """Build the SieveScript for ``convert`` from either input kind."""
    if input_path.suffix.lower() == ".json":
        try:
            document = json.loads(text)
        except ValueError as e:
            _fail("{} is not valid JSON: {}".format(input_path, e))
        try:
            script = script_from_dict(document)
        except jsonschema.ValidationError as e:
            _fail("{} is not a valid rule model: {}".format(input_path, e.message))
        if name is not None:
            script = dataclasses.replace(script, name=name)
        return script

    return text_to_script(text, name=name if name is not None else _script_stem(input_path))


def _format_keys(formats: Optional[str]) -> List[str]:
    if not formats:
        return list(FORMATTERS.keys())
    keys = [f.strip() for f in formats.split(",") if f.strip()]
    for key in keys:
        if key not in FORMATTERS:
            available = ", ".join(sorted(FORMATTERS.keys()))
            _fail("Unknown format '{}'. Available formats: {}".format(key, available))
    return keys


def _describe_error(exc: SieveSyntaxError) -> str:
    where = "end of input" if exc.offset is None else "offset {}".format(exc.offset)
    return "{} at {}: {}".format(exc.kind.value, where, exc.message)


# ---------------------------------------------------------------------------
# Subcommands
# ---------------------------------------------------------------------------


def _cmd_convert(args: argparse.Namespace) -> int:
    input_path = Path(args.input_file).resolve()
    text = _read_input(str(input_path))

    output_dir = Path(args.output_dir).resolve() if args.output_dir else input_path.parent
    if not output_dir.is_dir():
        _fail("Output directory does not exist: {}".format(output_dir))

    format_keys = _format_keys(args.formats)
    script = _load_model(input_path, text, args.name)

    raw_count = sum(1 for rule in script.rules if rule.is_raw)
    _status("Loaded {}: {} rule(s), {} kept as raw SIEVE".format(
        input_path.name, len(script.rules), raw_count
    ))

    stem = _script_stem(input_path)
    saved_files: List[Path] = []
    for key in format_keys:
        formatter = FORMATTERS[key]()
        _status("  Running {} formatter...".format(formatter.name))
        for output in formatter.format(script):
            saved_path = _save_output(output, stem, output_dir)
            saved_files.append(saved_path)
            _status("  Saved: {}".format(saved_path.name))

    _status("Done! Saved {} file(s) to {}".format(len(saved_files), output_dir))
    return 0


def _cmd_check(args: argparse.Namespace) -> int:
    text = _read_input(args.input_file)
    try:
        parse(text)
    except SieveSyntaxError as e:
        print("{}: {}".format(args.input_file, _describe_error(e)), file=sys.stderr)
        return 1
    print("OK")
    return 0


def _cmd_format(args: argparse.Namespace) -> int:
    text = _read_input(args.input_file)
    try:
        formatted = emit(parse(text))
    except SieveSyntaxError as e:
        print("{}: {}".format(args.input_file, _describe_error(e)), file=sys.stderr)
        return 1

    if args.write:
        save_script(args.input_file, formatted)
        _status("Reformatted {}".format(args.input_file))
    else:
        sys.stdout.write(formatted)
    return 0


def build_parser() -> argparse.ArgumentParser:
    """Build the argparse parser for the CLI.

    WHY: Separating parser construction from main() makes the CLI
    testable; tests can inspect the parser without touching files.
    """
    parser = argparse.ArgumentParser(
        prog="sieve-converter",
        description="Check, reformat and convert SIEVE (RFC 5228) mail filter scripts.",
    )
    parser.add_argument(
        "--version",
        action="version",
        version="%(prog)s {}".format(__version__),
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable debug logging (shows why rules are kept as raw SIEVE).",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    convert = subparsers.add_parser(
        "convert",
        help="Convert a script into the selected output formats.",
    )
    convert.add_argument(
        "input_file",
        help="Path to a SIEVE script, or a .json rule model document.",
    )
    convert.add_argument(
        "--name",
        default=None,
        help="Script name to record in the model (default: input file stem).",
    )
    convert.add_argument(
        "--formats",
        default=None,
        help="Comma-separated list of output formats. "
             "Available: {}. Default: all.".format(", ".join(sorted(FORMATTERS.keys()))),
    )
    convert.add_argument(
        "--output-dir",
        default=None,
        help="Directory to save output files (default: same as input file).",
    )
    convert.set_defaults(handler=_cmd_convert)

    check = subparsers.add_parser(
        "check",
        help="Parse a script strictly and report the first syntax error.",
    )
    check.add_argument("input_file", help="Path to the SIEVE script to check.")
    check.set_defaults(handler=_cmd_check)

    fmt = subparsers.add_parser(
        "format",
        help="Re-emit a script in canonical layout.",
    )
    fmt.add_argument("input_file", help="Path to the SIEVE script to format.")
    fmt.add_argument(
        "--write",
        action="store_true",
        help="Rewrite the file in place instead of printing to stdout.",
    )
    fmt.set_defaults(handler=_cmd_format)

    return parser


def _configure_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else getattr(logging, LOG_LEVEL, logging.WARNING)
    logging.basicConfig(
        level=level,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


def main(argv: Optional[List[str]] = None) -> None:
    """Entry point for the CLI.

    RULES:
    - argv=None means use sys.argv (normal CLI invocation)
    - Explicit argv is for testing
    - Exits with the subcommand's status
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    _configure_logging(args.verbose)
    logger.debug("Running %s on %s", args.command, args.input_file)
    sys.exit(args.handler(args))


if __name__ == "__main__":
    main()
