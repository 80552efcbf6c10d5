"""
Console output helpers for nixos-systool.

Messages for the user are styled with rich: informational text in italics,
warnings in yellow, errors in bold red on standard error.
"""

from rich.console import Console
from rich.text import Text

console = Console(highlight=False)
err_console = Console(stderr=True, highlight=False)


def info(message: str) -> None:
    console.print(Text(message, style="italic"))


def warn(message: str) -> None:
    console.print(Text(message, style="yellow"))


def error(message: str) -> None:
    err_console.print(Text(message, style="bold red"))
