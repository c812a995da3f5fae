"""
CLI entry point for cablecast.cli module.

This allows running: python -m cablecast.cli
"""

from .main import cli

if __name__ == "__main__":
    cli()
