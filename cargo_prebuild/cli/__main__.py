"""
Main entry point for the cargo-prebuild CLI when run as a module.

This allows the CLI to be executed using:
    python -m cargo_prebuild.cli

or the equivalent console script entry point.
"""

from . import main

if __name__ == '__main__':
    raise SystemExit(main())
