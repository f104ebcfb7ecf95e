"""
Secret-store commands.

Commands:
    add <label>              Prompt for a value and store it under <label>
    relabel <id> <label>     Give an entry a new label
    alter <id>               Show the old value, prompt for a new one
    remove <id>              Delete an entry
    show <id>                Print an entry's label and value
    list [pattern]           Entries whose label matches, oldest first
    save [exit]              Write the file; optionally leave afterwards
    exit                     Leave the shell
"""

from __future__ import annotations

import re

from rich.table import Table
from rich.text import Text

from .errors import UsageError
from .models import SaveResult, SaveStatus
from .registry import QUIT, AwaitingInput, Command, CommandRegistry, Outcome
from .session import Session
from .terminal import Terminal, is_yes


def _entry_ids(session: Session) -> list[str]:
    return session.store.ids()


def _single_id(args: str, usage: str) -> str:
    entry_id = args.strip()
    if not entry_id or " " in entry_id:
        raise UsageError(f"Usage: {usage}")
    return entry_id


def report_save(terminal: Terminal, result: SaveResult) -> None:
    """Tell the user what a save did and what needs attention."""
    path, backup = result.path, result.backup_path
    if result.status == SaveStatus.SAVED:
        terminal.success(f"Saved {path}.")
        return

    terminal.error(f"Save failed: {result.error}")
    if result.status == SaveStatus.ABORTED:
        terminal.warn(f"{path} was not modified.")
    elif result.status == SaveStatus.RECOVERED:
        terminal.warn(f"Previous contents restored to {path}.")
    elif result.status == SaveStatus.CONFLICT:
        terminal.error(
            f"Both {path} and {backup} now exist. "
            "Compare them and keep the right one manually."
        )
    elif result.status == SaveStatus.UNRECOVERED:
        terminal.error(
            f"Could not move {backup} back to {path}: {result.recovery_error}. "
            f"The previous contents are in {backup}."
        )


# ═══════════════════════════════════════════════════════════════════════════
# Command handlers
# ═══════════════════════════════════════════════════════════════════════════


def _add(session: Session, args: str) -> Outcome:
    label = args.strip()
    if not label:
        raise UsageError("Usage: add <label>")

    def finish(value: str) -> None:
        if not value:
            session.terminal.warn("Nothing added.")
            return
        entry_id = session.store.add(label, value)
        session.terminal.success(f"Added {entry_id}")

    return AwaitingInput("Value: ", finish, secret=True)


def _relabel(session: Session, args: str) -> None:
    entry_id, _, new_label = args.strip().partition(" ")
    new_label = new_label.strip()
    if not entry_id or not new_label:
        raise UsageError("Usage: relabel <id> <new label>")
    session.store.relabel(entry_id, new_label)
    session.terminal.success(f"Relabeled {entry_id}")


def _alter(session: Session, args: str) -> Outcome:
    entry_id = _single_id(args, "alter <id>")
    entry = session.store.require(entry_id)
    session.terminal.print(f"Old value: {entry.value}")

    def finish(value: str) -> None:
        if not value:
            session.terminal.warn("Unchanged.")
            return
        session.store.alter(entry_id, value)
        session.terminal.success(f"Altered {entry_id}")

    return AwaitingInput("New value: ", finish, secret=True)


def _remove(session: Session, args: str) -> None:
    entry_id = _single_id(args, "remove <id>")
    entry = session.store.remove(entry_id)
    session.terminal.success(f"Removed {entry_id} ({entry.label})")


def _show(session: Session, args: str) -> None:
    entry = session.store.require(_single_id(args, "show <id>"))
    terminal = session.terminal
    terminal.print(f"Id:      {entry.id}")
    terminal.print(f"Label:   {entry.label}")
    terminal.print(f"Value:   {entry.value}")
    terminal.print(f"Updated: {entry.updated.isoformat(timespec='seconds')}")


def _list(session: Session, args: str) -> None:
    pattern = args.strip()
    predicate = None
    if pattern:
        try:
            regex = re.compile(pattern, re.IGNORECASE)
        except re.error as exc:
            raise UsageError(f"Bad pattern '{pattern}': {exc}") from exc
        predicate = lambda label: regex.search(label) is not None  # noqa: E731

    entries = session.store.list(predicate)
    if not entries:
        session.terminal.print("No entries.")
        return

    table = Table(show_edge=False, pad_edge=False)
    table.add_column("Id", style="cyan", no_wrap=True)
    table.add_column("Updated", style="dim")
    table.add_column("Label")
    for e in entries:
        table.add_row(e.id, e.updated.strftime("%Y-%m-%d %H:%M"), Text(e.label))
    session.terminal.render(table)


def _save(session: Session, args: str) -> Outcome:
    then = args.strip()
    if then not in ("", "exit"):
        raise UsageError("Usage: save [exit]")
    result = session.save()
    report_save(session.terminal, result)
    if result.ok and then == "exit":
        return QUIT
    return None


def _exit(session: Session, args: str) -> Outcome:
    if not session.store.dirty:
        return QUIT

    def finish(answer: str) -> Outcome:
        return QUIT if is_yes(answer) else None

    return AwaitingInput("Discard unsaved changes? (y/n) ", finish)


COMMANDS: dict[str, Command] = {
    "add": Command(
        run=_add,
        args_help="<label>",
        help_text="Prompt for a secret value and store it under <label>.\nAn empty value cancels.",
        synchronous=False,
    ),
    "relabel": Command(
        run=_relabel,
        args_help="<id> <new label>",
        help_text="Give an entry a new label.",
        completion_values=_entry_ids,
    ),
    "alter": Command(
        run=_alter,
        args_help="<id>",
        help_text="Show an entry's value, then prompt for a new one.\nAn empty value leaves it unchanged.",
        completion_values=_entry_ids,
        synchronous=False,
    ),
    "remove": Command(
        run=_remove,
        args_help="<id>",
        help_text="Delete an entry.",
        completion_values=_entry_ids,
    ),
    "show": Command(
        run=_show,
        args_help="<id>",
        help_text="Print an entry's label and value.",
        completion_values=_entry_ids,
    ),
    "list": Command(
        run=_list,
        args_help="[pattern]",
        help_text=(
            "List entries whose label matches <pattern>, oldest change first.\n"
            "The pattern is a case-insensitive regular expression; values are never searched."
        ),
    ),
    "save": Command(
        run=_save,
        args_help="[exit]",
        help_text="Encrypt and write the file. With 'exit', leave after a successful save.",
        completion_values=lambda session: ["exit"],
    ),
    "exit": Command(
        run=_exit,
        help_text="Leave the shell. Asks first if there are unsaved changes.",
        synchronous=False,
    ),
}


def build_registry() -> CommandRegistry:
    """Registry with the secret-store commands and the built-ins."""
    return CommandRegistry(COMMANDS)
