"""
Entry point for running tfproj as a module.

Usage:
    python -m tfproj [COMMAND]
"""

from tfproj.cli.main import cli

if __name__ == "__main__":
    cli()
