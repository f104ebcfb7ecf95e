"""
Interactive driver for the REPL engine.

Reads lines with readline (history and tab completion), answers nested
secret questions through getpass, and turns Ctrl+C / Ctrl+D into engine
interrupts and end of input.
"""

from __future__ import annotations

import logging
import readline
from pathlib import Path
from typing import Callable, Optional

from .engine import REPLEngine

logger = logging.getLogger("tagaloop.shell")


def candidates(engine: REPLEngine, buffer: str) -> list[str]:
    """Readline replacements for the word under the cursor.

    With no space typed yet the word is the whole buffer, so values for
    an exact command name are offered as ``"<name> <value>"``.
    """
    options = engine.complete(buffer)
    if " " not in buffer and buffer in engine.registry:
        return [f"{buffer} {v}" for v in options]
    return options


def make_completer(engine: REPLEngine) -> Callable[[str, int], Optional[str]]:
    """Build a readline completer bound to ``engine``."""
    cache: list[str] = []

    def completer(text: str, state: int) -> Optional[str]:
        if state == 0:
            buffer = readline.get_line_buffer()[: readline.get_endidx()]
            cache[:] = candidates(engine, buffer)
        return cache[state] if state < len(cache) else None

    return completer


def _load_history(history_file: Optional[Path]) -> None:
    if history_file is None:
        return
    try:
        readline.read_history_file(str(history_file))
    except FileNotFoundError:
        pass
    except OSError as exc:
        logger.warning("Could not read history %s: %s", history_file, exc)


def _save_history(history_file: Optional[Path]) -> None:
    if history_file is None:
        return
    try:
        history_file.parent.mkdir(parents=True, exist_ok=True)
        readline.write_history_file(str(history_file))
    except OSError as exc:
        logger.warning("Could not write history %s: %s", history_file, exc)


def run_shell(engine: REPLEngine, history_file: Optional[Path] = None) -> None:
    """Run the prompt loop until the engine closes.

    Sets up tab completion, loads command history, and feeds every line
    to the engine.
    """
    terminal = engine.session.terminal
    readline.set_completer(make_completer(engine))
    readline.set_completer_delims(" ")
    readline.parse_and_bind("tab: complete")
    _load_history(history_file)

    while not engine.closed:
        try:
            if engine.awaiting_secret:
                line = terminal.read_secret(engine.prompt)
            else:
                line = terminal.read_line(engine.prompt)
        except KeyboardInterrupt:
            terminal.print()
            engine.interrupt()
            continue
        except EOFError:
            terminal.print()
            engine.end_of_input()
            break

        engine.feed(line)

    _save_history(history_file)
