"""Format and model layers of the converter.

WHY: Callers embedding the converter need a handful of entry points,
not the module layout.

HOW: lexer.py and parser.py turn text into the ast.py tree, emitter.py
turns it back. model.py and enums.py describe the editable rule model;
converter.py maps between the tree and the model; serialization.py moves
the model in and out of JSON.

RULES:
- Format layer functions raise SieveSyntaxError on malformed text
- Model layer functions never raise on script content
"""

from sieve_converter.core.converter import script_to_text, text_to_script
from sieve_converter.core.emitter import emit
from sieve_converter.core.errors import SieveSyntaxError
from sieve_converter.core.lexer import tokenize
from sieve_converter.core.parser import parse
from sieve_converter.core.serialization import script_from_dict, script_to_dict

__all__ = [
    "SieveSyntaxError",
    "emit",
    "parse",
    "script_from_dict",
    "script_to_dict",
    "script_to_text",
    "text_to_script",
    "tokenize",
]
