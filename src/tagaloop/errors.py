"""Exceptions raised across the tagaloop shell.

Interactive mistakes (bad syntax, bad id, unknown command) are reported
and the session continues. Load failures end the process. Save failures
are reported together with whatever recovery was possible.
"""

from __future__ import annotations


class TagaloopError(Exception):
    """Base class for every error the shell reports to the user."""


class UsageError(TagaloopError):
    """Raised when a command receives malformed arguments."""


class UnknownCommand(TagaloopError):
    """Raised when a command name is not registered."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Command '{name}' not recognized")
        self.name = name


class UnknownId(TagaloopError):
    """Raised when an entry id is not present in the store."""

    def __init__(self, entry_id: str) -> None:
        super().__init__(f"No entry with id '{entry_id}'")
        self.entry_id = entry_id


class DecryptionFailure(TagaloopError):
    """Raised when a file cannot be decrypted (wrong password or corrupt data)."""


class ReadFailure(TagaloopError):
    """Raised when a store file cannot be read from disk."""


class PersistenceFailure(TagaloopError):
    """Raised when the save protocol cannot proceed."""
