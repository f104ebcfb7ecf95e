"""
Tagaloop CLI — open (or create) one encrypted file and run the shell.

Exit codes:
    0   normal exit
    1   usage error, declined file creation, unreadable or undecryptable file
    2   password could not be read, or the confirmation did not match

Entry point: tagaloop.cli:main
"""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Optional

import click

from . import __version__
from .commands import build_registry
from .config import load_config, setup_logging
from .crypto import CryptoProvider
from .engine import REPLEngine
from .errors import DecryptionFailure, ReadFailure
from .persistence import LoadedStore, PersistenceManager
from .session import Session
from .shell import run_shell
from .terminal import Terminal


def _read_password(terminal: Terminal, prompt: str) -> str:
    try:
        return terminal.read_secret(prompt)
    except (EOFError, KeyboardInterrupt, OSError):
        terminal.error("\nCould not read password.")
        sys.exit(2)


def _open_existing(terminal: Terminal, persistence: PersistenceManager, path: Path) -> LoadedStore:
    password = _read_password(terminal, "Password: ")
    try:
        loaded = persistence.load(path, password)
    except (ReadFailure, DecryptionFailure) as exc:
        terminal.error(str(exc))
        sys.exit(1)
    if loaded.format_warning:
        terminal.warn(f"Warning: {loaded.format_warning}")
    return loaded


def _create_new(terminal: Terminal, persistence: PersistenceManager, path: Path) -> LoadedStore:
    try:
        create = terminal.confirm(f"Create new file {path}?")
    except (EOFError, KeyboardInterrupt):
        create = False
    if not create:
        sys.exit(1)

    password = _read_password(terminal, "New password: ")
    confirmation = _read_password(terminal, "Confirm password: ")
    if password != confirmation:
        terminal.error("Passwords do not match.")
        sys.exit(2)
    return persistence.create(password)


class TagaloopCommand(click.Command):
    """Command that exits with status 1 on bad arguments; 2 is kept for password failures."""

    def parse_args(self, ctx: click.Context, args: list[str]) -> list[str]:
        try:
            return super().parse_args(ctx, args)
        except click.UsageError as exc:
            exc.exit_code = 1
            raise


@click.command(cls=TagaloopCommand)
@click.argument("paths", nargs=-1, metavar="PATH", type=click.Path(dir_okay=False, path_type=Path))
@click.option(
    "--config", "config_file", default=None,
    type=click.Path(dir_okay=False, path_type=Path),
    help="Config file (default: $TAGALOOP_HOME/config.yaml).",
)
@click.version_option(version=__version__, prog_name="tagaloop")
@click.pass_context
def main(ctx: click.Context, paths: tuple[Path, ...], config_file: Optional[Path]):
    """Tagaloop — labeled secrets in one encrypted file.

    Opens PATH, or offers to create it, and starts an interactive shell.
    """
    if len(paths) != 1:
        click.echo(ctx.get_usage(), err=True)
        sys.exit(1)
    path = paths[0]

    config = load_config(config_file)
    setup_logging(config)

    terminal = Terminal()
    persistence = PersistenceManager(CryptoProvider(config.kdf_params()))

    if path.exists():
        loaded = _open_existing(terminal, persistence, path)
    else:
        loaded = _create_new(terminal, persistence, path)

    session = Session(
        path=path,
        store=loaded.store,
        key=loaded.key,
        persistence=persistence,
        terminal=terminal,
    )
    engine = REPLEngine(build_registry(), session, prompt_name=config.prompt_name)

    terminal.print(
        f"{len(loaded.store)} entries in {path}. "
        "Type 'help' for commands, 'exit' to leave."
    )
    run_shell(engine, config.history_file)
