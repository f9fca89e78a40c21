"""SIEVE Converter: parse, edit and re-emit RFC 5228 mail filter scripts.

WHY: Mail servers store filters as SIEVE text, while people edit them as
named rules of "when these conditions hold, do these actions". This
package bridges the two without losing anything it does not understand.

HOW: Two layers. core/ holds the format layer (tokenizer, parser, AST,
emitter) and the model layer (rule dataclasses and the AST <-> model
converter). formatters/, the CLI and the HTTP server sit on top and only
call the core functions.

RULES:
- The core is pure: no I/O, no global mutable state
- Text the model cannot represent is kept verbatim as a raw block
- Loading never fails; unparseable scripts become a single raw rule
"""

__version__ = "0.1.0"
