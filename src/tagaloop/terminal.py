"""The shell's I/O boundary: printing, line reads, password reads, yes/no."""

from __future__ import annotations

import getpass
from typing import Optional

from rich.console import Console

console = Console()

YES_ANSWERS = ("y", "yes")


def is_yes(answer: str) -> bool:
    return answer.strip().lower() in YES_ANSWERS


class Terminal:
    """Console output and input used by commands and the shell.

    User data (labels, values) is printed with markup disabled so that
    brackets in a secret are shown verbatim.
    """

    def __init__(self, out: Optional[Console] = None) -> None:
        self.console = out or console

    def print(self, text: str = "", style: Optional[str] = None) -> None:
        self.console.print(text, style=style, markup=False, highlight=False)

    def success(self, text: str) -> None:
        self.print(text, style="green")

    def warn(self, text: str) -> None:
        self.print(text, style="yellow")

    def error(self, text: str) -> None:
        self.print(text, style="red")

    def render(self, renderable) -> None:
        """Print a rich renderable such as a Table."""
        self.console.print(renderable)

    def read_line(self, prompt: str) -> str:
        return input(prompt)

    def read_secret(self, prompt: str) -> str:
        """Read a line without echo."""
        return getpass.getpass(prompt)

    def confirm(self, question: str) -> bool:
        return is_yes(input(f"{question} (y/n) "))
