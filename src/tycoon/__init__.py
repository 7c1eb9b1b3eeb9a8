"""
Command-line entry point for the therapy practice simulation.
"""

from .cli import app


def main() -> None:
    # Delegate to Typer app so `tycoon ...` works.
    app()
