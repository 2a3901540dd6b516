"""
Plinth CLI - styled output helpers built on Click.

click.echo strips the styling when output is not a terminal.
"""

import click

_CHECK = "\u2713"   # ✓
_CROSS = "\u2717"   # ✗
_ARROW = "\u2192"   # →


def success(message: str) -> None:
    """Print success message in green."""
    click.echo(click.style(message, fg="green"))


def error(message: str) -> None:
    """Print error message in red, to stderr."""
    click.echo(click.style(message, fg="red"), err=True)


def info(message: str) -> None:
    """Print info message in cyan."""
    click.echo(click.style(message, fg="cyan"))


def dim(message: str) -> None:
    """Print dimmed message."""
    click.echo(click.style(message, dim=True))


def bold(message: str) -> str:
    """Return bold-styled text (does not echo)."""
    return click.style(message, bold=True)


def step(n: int, text: str) -> None:
    """
    Print a numbered step.

        1. logger
    """
    click.echo(f"  {click.style(f'{n:>2}.', fg='cyan')} {text}")
