"""Shared test fixtures for tagaloop."""

from __future__ import annotations

import io
import logging
from pathlib import Path

import pytest
from rich.console import Console

from tagaloop.commands import build_registry
from tagaloop.crypto import CryptoProvider
from tagaloop.engine import REPLEngine
from tagaloop.models import KdfParams
from tagaloop.persistence import PersistenceManager
from tagaloop.session import Session
from tagaloop.terminal import Terminal

# scrypt at a cost that keeps the suite fast
FAST_PARAMS = KdfParams(n=2**4, r=8, p=1)


@pytest.fixture(autouse=True)
def _reset_logging():
    """Drop handlers installed by setup_logging between tests."""
    yield
    root = logging.getLogger("tagaloop")
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()
    root.setLevel(logging.NOTSET)


@pytest.fixture
def crypto() -> CryptoProvider:
    return CryptoProvider(FAST_PARAMS)


@pytest.fixture
def persistence(crypto: CryptoProvider) -> PersistenceManager:
    return PersistenceManager(crypto)


@pytest.fixture
def terminal() -> Terminal:
    """A terminal whose output is captured in a StringIO."""
    return Terminal(Console(file=io.StringIO(), width=120))


@pytest.fixture
def read_output(terminal: Terminal):
    """Callable returning everything printed to the terminal so far."""
    return lambda: terminal.console.file.getvalue()


@pytest.fixture
def store_path(tmp_path: Path) -> Path:
    return tmp_path / "secrets.tgl"


@pytest.fixture
def session(store_path: Path, persistence: PersistenceManager, terminal: Terminal) -> Session:
    """A session on a brand-new, unsaved store."""
    loaded = persistence.create("correct horse")
    return Session(
        path=store_path,
        store=loaded.store,
        key=loaded.key,
        persistence=persistence,
        terminal=terminal,
    )


@pytest.fixture
def engine(session: Session) -> REPLEngine:
    return REPLEngine(build_registry(), session)
