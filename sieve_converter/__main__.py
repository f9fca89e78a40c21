"""Package entry point for ``python -m sieve_converter``.

WHY: Users run the converter as ``python -m sieve_converter check
filters.sieve`` without installing the console script.

RULES:
- This file must exist for ``python -m sieve_converter`` to work
- All argument handling lives in cli.main()
"""

from sieve_converter.cli import main

if __name__ == "__main__":
    main()
