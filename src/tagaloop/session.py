"""The per-process session context shared by the engine and commands."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from .crypto import DerivedKey
from .models import SaveResult
from .persistence import PersistenceManager
from .store import SecretStore
from .terminal import Terminal


@dataclass
class Session:
    """Everything one shell session owns.

    Attributes:
        path: The store file.
        store: The in-memory entries and dirty flag.
        key: Key derived from the password when the file was opened.
        persistence: Reader/writer for ``path``.
        terminal: Where output goes and nested answers come from.
    """

    path: Path
    store: SecretStore
    key: DerivedKey = field(repr=False)
    persistence: PersistenceManager
    terminal: Terminal

    @property
    def dirty(self) -> bool:
        return self.store.dirty

    def save(self) -> SaveResult:
        return self.persistence.save(self.path, self.store, self.key)
