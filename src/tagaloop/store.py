"""
SecretStore — the in-memory mapping of entry id to labeled secret.

The store owns id generation and the dirty flag. Only ``add``,
``relabel``, ``alter`` and ``remove`` set the flag; only
``mark_saved`` (called after a successful save) clears it.

Usage:
    store = SecretStore.new()
    entry_id = store.add("bank", "hunter2")
    store.relabel(entry_id, "bank pin")
    for entry in store.list(lambda label: "bank" in label):
        print(entry.id, entry.label)
"""

from __future__ import annotations

import base64
import json
import logging
import secrets
from typing import Callable, Iterable, Optional

from .errors import UnknownId
from .models import Entry, now_ms

logger = logging.getLogger("tagaloop.store")

ID_BYTES = 6


def encode_id(raw: bytes) -> str:
    """Base64-encode raw id bytes, remapping ``+`` to ``-`` and ``/`` to ``.``."""
    return base64.b64encode(raw).decode("ascii").replace("+", "-").replace("/", ".")


class SecretStore:
    """Mapping of entry id to :class:`Entry` plus the unsaved-changes flag.

    Args:
        entries: Initial entries. Each is keyed by its own ``id``.
        dirty: Initial value of the dirty flag.
        token_bytes: Source of random bytes for id generation.
        clock: Source of epoch-millisecond timestamps.
    """

    def __init__(
        self,
        entries: Optional[Iterable[Entry]] = None,
        dirty: bool = False,
        token_bytes: Callable[[int], bytes] = secrets.token_bytes,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        self._entries: dict[str, Entry] = {}
        for entry in entries or ():
            self._entries[entry.id] = entry
        self._dirty = dirty
        self._token_bytes = token_bytes
        self._clock = clock

    @classmethod
    def new(cls, **kwargs) -> "SecretStore":
        """An empty store for a file that does not exist yet (starts dirty)."""
        return cls(dirty=True, **kwargs)

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def dirty(self) -> bool:
        return self._dirty

    def mark_saved(self) -> None:
        """Clear the dirty flag after a successful save."""
        self._dirty = False

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, entry_id: object) -> bool:
        return entry_id in self._entries

    def ids(self) -> list[str]:
        return sorted(self._entries)

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def generate_id(self) -> str:
        """Produce an id not already present in the store."""
        while True:
            entry_id = encode_id(self._token_bytes(ID_BYTES))
            if entry_id not in self._entries:
                return entry_id
            logger.debug("Id collision on %s, retrying", entry_id)

    def add(self, label: str, value: str) -> str:
        """Insert a new entry and return its id."""
        entry_id = self.generate_id()
        self._entries[entry_id] = Entry(
            id=entry_id, updated_at=self._clock(), label=label, value=value,
        )
        self._dirty = True
        logger.debug("Added entry %s", entry_id)
        return entry_id

    def get(self, entry_id: str) -> Optional[Entry]:
        return self._entries.get(entry_id)

    def require(self, entry_id: str) -> Entry:
        """Look up an entry or raise :class:`UnknownId`."""
        entry = self._entries.get(entry_id)
        if entry is None:
            raise UnknownId(entry_id)
        return entry

    def relabel(self, entry_id: str, new_label: str) -> Entry:
        """Replace the label of an existing entry."""
        entry = self.require(entry_id).model_copy(
            update={"label": new_label, "updated_at": self._clock()},
        )
        self._entries[entry_id] = entry
        self._dirty = True
        logger.debug("Relabeled entry %s", entry_id)
        return entry

    def alter(self, entry_id: str, new_value: str) -> Entry:
        """Replace the secret value of an existing entry."""
        entry = self.require(entry_id).model_copy(
            update={"value": new_value, "updated_at": self._clock()},
        )
        self._entries[entry_id] = entry
        self._dirty = True
        logger.debug("Altered entry %s", entry_id)
        return entry

    def remove(self, entry_id: str) -> Entry:
        """Delete an entry and return it."""
        entry = self.require(entry_id)
        del self._entries[entry_id]
        self._dirty = True
        logger.debug("Removed entry %s", entry_id)
        return entry

    def list(self, predicate: Optional[Callable[[str], bool]] = None) -> list[Entry]:
        """Entries whose label satisfies ``predicate``, oldest update first."""
        matches = [
            e for e in self._entries.values()
            if predicate is None or predicate(e.label)
        ]
        return sorted(matches, key=lambda e: (e.updated_at, e.id))

    # ------------------------------------------------------------------
    # Wire format
    # ------------------------------------------------------------------

    def to_json(self) -> str:
        """Serialize as ``{id: [updated_at_ms, label, value]}``."""
        return json.dumps(
            {entry_id: e.to_wire() for entry_id, e in self._entries.items()},
            ensure_ascii=False,
        )

    @classmethod
    def from_json(cls, text: str, **kwargs) -> "SecretStore":
        """Parse the wire mapping into a clean (not dirty) store.

        Raises:
            ValueError: If the payload is not a mapping of id to triple.
        """
        data = json.loads(text)
        if not isinstance(data, dict):
            raise ValueError("Store payload is not a mapping")
        entries = [Entry.from_wire(entry_id, item) for entry_id, item in data.items()]
        return cls(entries=entries, dirty=False, **kwargs)
