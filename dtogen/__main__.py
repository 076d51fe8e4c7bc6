# File: dtogen/__main__.py
"""
dtogen - Module entry point.

Allows running the generator directly via::

    python -m dtogen ./shop
"""

from __future__ import annotations


def main() -> None:
    """Delegate to the CLI main function."""
    from dtogen.cli import cli_main
    cli_main()


if __name__ == "__main__":
    main()
