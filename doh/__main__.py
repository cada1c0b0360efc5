"""Module entrypoint for ``python -m doh``.

This keeps module-mode execution behavior identical to the CLI script.
All argument parsing and session setup happen in ``doh.cli``.
"""

from .cli import main


if __name__ == "__main__":
    main()
