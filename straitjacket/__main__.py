# File: straitjacket/__main__.py
"""
straitjacket - Module entry point.

Allows running the generator directly via::

    python -m straitjacket resources.py -o resources_gen.py

This module simply delegates to the CLI entry point defined in ``straitjacket.cli``.
"""

from __future__ import annotations


def main() -> None:
    """Delegate to the CLI main function."""
    from straitjacket.cli import cli_main
    cli_main()


if __name__ == "__main__":
    main()
