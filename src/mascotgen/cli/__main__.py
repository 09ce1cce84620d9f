"""CLI entry point for mascotgen.cli module.

Enables execution via: python -m mascotgen.cli "PROMPT"
"""

from mascotgen.cli.generate import main

if __name__ == "__main__":
    raise SystemExit(main())
