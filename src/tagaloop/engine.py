"""
REPLEngine — line dispatch, nested questions, interrupts, completion.

The engine does no I/O of its own beyond reporting through the session's
terminal. A driver (see ``tagaloop.shell``) reads a line using
``engine.prompt`` and hands it to ``engine.feed``; Ctrl+C becomes
``engine.interrupt()`` and end of input becomes ``engine.end_of_input()``.

States:
    IDLE          waiting for a command line
    DISPATCHING   running a command or continuation
    AWAITING      a command asked a nested question; next line answers it
    CLOSED        finished; no more lines are accepted
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Callable, Optional

from .errors import TagaloopError, UnknownCommand
from .registry import QUIT, AwaitingInput, Command, CommandRegistry, Outcome

logger = logging.getLogger("tagaloop.engine")

ArgParser = Callable[[str, str, Command], str]

EXIT_HINT = "(To exit, press Ctrl+C again or type exit)"


class EngineState(str, Enum):
    """Lifecycle of the engine."""

    IDLE = "idle"
    DISPATCHING = "dispatching"
    AWAITING = "awaiting"
    CLOSED = "closed"


def split_line(line: str) -> tuple[str, str]:
    """Split a raw line into the command token and the argument string.

    The token runs up to the first space; everything after it, untrimmed,
    is the argument string.
    """
    name, _, args = line.partition(" ")
    return name, args


class REPLEngine:
    """Dispatches lines to registered commands for one session.

    Args:
        registry: Commands available in this shell.
        session: Context passed to every command.
        parse_args: Optional ``(raw_args, name, command) -> args``
            transform applied before dispatch.
        prompt_name: Name shown in the main prompt.
    """

    def __init__(
        self,
        registry: CommandRegistry,
        session: Any,
        parse_args: Optional[ArgParser] = None,
        prompt_name: str = "tagaloop",
    ) -> None:
        self.registry = registry
        self.session = session
        self.state = EngineState.IDLE
        self.interrupts = 0
        self._parse_args = parse_args
        self._prompt_name = prompt_name
        self._pending: Optional[AwaitingInput] = None
        self._pending_name = ""

    # ------------------------------------------------------------------
    # Prompt
    # ------------------------------------------------------------------

    @property
    def closed(self) -> bool:
        return self.state == EngineState.CLOSED

    @property
    def prompt(self) -> str:
        """The prompt the driver should show before reading the next line."""
        if self._pending is not None:
            return self._pending.prompt
        marker = "*" if self.session.store.dirty else ""
        return f"{self._prompt_name}{marker}> "

    @property
    def awaiting_secret(self) -> bool:
        """Whether the next line answers a question that must not be echoed."""
        return self._pending is not None and self._pending.secret

    # ------------------------------------------------------------------
    # Input
    # ------------------------------------------------------------------

    def feed(self, line: str) -> None:
        """Process one line of input."""
        if self.closed:
            raise RuntimeError("Engine is closed")

        if self._pending is not None:
            pending, name = self._pending, self._pending_name
            self._pending = None
            self._run(name, lambda: pending.continuation(line), synchronous=False)
            return

        name, args = split_line(line)
        if not name.strip():
            return

        command = self.registry.lookup(name)
        if command is None:
            self.session.terminal.error(str(UnknownCommand(name)))
            return

        self.interrupts = 0
        if self._parse_args is not None:
            args = self._parse_args(args, name, command)
        self._run(name, lambda: command.run(self.session, args), command.synchronous)

    def _run(self, name: str, step: Callable[[], Outcome], synchronous: bool) -> None:
        self.state = EngineState.DISPATCHING
        try:
            outcome = step()
        except TagaloopError as exc:
            self.session.terminal.error(str(exc))
            outcome = None
        except KeyboardInterrupt:
            logger.info("Command '%s' interrupted", name)
            self.session.terminal.warn("Interrupted.")
            outcome = None
        except Exception as exc:
            logger.exception("Command '%s' failed", name)
            self.session.terminal.error(f"Error: {exc}")
            outcome = None

        if isinstance(outcome, AwaitingInput):
            if synchronous:
                self.state = EngineState.IDLE
                raise TypeError(f"Synchronous command '{name}' asked for input")
            self._pending = outcome
            self._pending_name = name
            self.state = EngineState.AWAITING
        elif outcome is QUIT:
            self.close()
        else:
            self.state = EngineState.IDLE

    def interrupt(self) -> None:
        """Handle Ctrl+C.

        While a nested question is pending, cancel it. While idle, the
        first interrupt prints a hint and the second in a row closes.
        """
        if self.closed:
            return
        if self._pending is not None:
            self._pending = None
            self.state = EngineState.IDLE
            self.session.terminal.warn("Cancelled.")
            return
        if self.interrupts > 0:
            self._shutdown()
            return
        self.interrupts += 1
        self.session.terminal.warn(EXIT_HINT)

    def end_of_input(self) -> None:
        """Handle EOF on the input stream."""
        if not self.closed:
            self._shutdown()

    def close(self) -> None:
        self._pending = None
        self.state = EngineState.CLOSED

    def _shutdown(self) -> None:
        if self.session.store.dirty:
            self.session.terminal.warn("Unsaved changes discarded.")
        self.close()

    # ------------------------------------------------------------------
    # Completion
    # ------------------------------------------------------------------

    def _values(self, command: Command) -> list[str]:
        if command.completion_values is None:
            return []
        return sorted(str(v) for v in command.completion_values(self.session))

    def complete(self, line: str) -> list[str]:
        """Suggestions for the current input line. Never raises."""
        try:
            if " " not in line:
                command = self.registry.lookup(line)
                if command is not None:
                    return self._values(command)
                return [n for n in self.registry.names() if n.startswith(line)]

            name, rest = split_line(line)
            command = self.registry.lookup(name)
            if command is None:
                return []
            return [v for v in self._values(command) if v.startswith(rest)]
        except Exception as exc:
            logger.debug("Completion failed for %r: %s", line, exc)
            return []
