"""
Command descriptors, command outcomes, and the command registry.

A command's ``run(session, args)`` returns an outcome telling the engine
what to do next:

    None / DONE              show the main prompt again
    QUIT                     close the session
    AwaitingInput(...)       ask a nested question; the answer goes to
                             the continuation, which returns an outcome

Only commands registered with ``synchronous=False`` may ask nested
questions.
"""

from __future__ import annotations

import textwrap
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Iterable, Optional, Union

from .errors import UnknownCommand, UsageError

INDENT = "    "


class Flow(Enum):
    """Terminal outcomes of a command."""

    DONE = "done"
    QUIT = "quit"


DONE = Flow.DONE
QUIT = Flow.QUIT


@dataclass(frozen=True)
class AwaitingInput:
    """A request to suspend the command until the user answers ``prompt``.

    Args:
        prompt: Text shown instead of the main prompt.
        continuation: Called with the answer; returns the next outcome.
        secret: Read the answer without echo and keep it out of history.
    """

    prompt: str
    continuation: Callable[[str], "Outcome"]
    secret: bool = False


Outcome = Union[None, Flow, AwaitingInput]


@dataclass(frozen=True)
class Command:
    """Immutable description of a shell command."""

    run: Callable[[Any, str], Outcome]
    args_help: str = ""
    help_text: str = ""
    completion_values: Optional[Callable[[Any], Iterable[str]]] = None
    synchronous: bool = True


class CommandRegistry:
    """Table of named commands.

    The built-ins ``-``, ``#`` and ``help`` are added only for names the
    caller's table does not already define.
    """

    def __init__(self, commands: Optional[dict[str, Command]] = None) -> None:
        self._commands: dict[str, Command] = dict(commands or {})
        for name, command in self._builtins().items():
            self._commands.setdefault(name, command)

    def register(self, name: str, command: Command) -> None:
        self._commands[name] = command

    def lookup(self, name: str) -> Optional[Command]:
        return self._commands.get(name)

    def names(self) -> list[str]:
        """All registered names, sorted."""
        return sorted(self._commands)

    def __contains__(self, name: object) -> bool:
        return name in self._commands

    # ------------------------------------------------------------------
    # Help
    # ------------------------------------------------------------------

    def describe(self, name: str) -> str:
        """Usage line and help text for one command.

        Raises:
            UnknownCommand: If ``name`` is not registered.
        """
        command = self.lookup(name)
        if command is None:
            raise UnknownCommand(name)
        usage = f"{name} {command.args_help}".rstrip()
        if not command.help_text:
            return usage
        return usage + "\n" + textwrap.indent(command.help_text.strip("\n"), INDENT)

    def overview(self) -> str:
        return (
            "Commands: " + " ".join(self.names()) + "\n"
            "Type 'help <command>' for details on one command."
        )

    # ------------------------------------------------------------------
    # Built-ins
    # ------------------------------------------------------------------

    def _builtins(self) -> dict[str, Command]:
        def run_help(session, args: str) -> None:
            name = args.strip()
            if name:
                session.terminal.print(self.describe(name))
            else:
                session.terminal.print(self.overview())

        def run_eval(session, args: str) -> None:
            if not args.strip():
                raise UsageError("Usage: - <expression>")
            namespace = {"session": session, "store": session.store}
            session.terminal.print(repr(eval(args, namespace)))

        return {
            "help": Command(
                run=run_help,
                args_help="[command]",
                help_text="List commands, or describe one command.",
                completion_values=lambda session: self.names(),
            ),
            "-": Command(
                run=run_eval,
                args_help="<expression>",
                help_text=(
                    "Evaluate a Python expression and print the result.\n"
                    "'session' and 'store' are in scope. For debugging."
                ),
            ),
            "#": Command(
                run=lambda session, args: None,
                args_help="[text]",
                help_text="Comment. Does nothing.",
            ),
        }
