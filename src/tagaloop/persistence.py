"""
Loading and crash-safe saving of encrypted store files.

Save protocol for ``path`` (backup is ``path~``):
    1. Delete a stale ``path~`` if one exists. If ``path`` is missing, or
       an earlier failed save left both files, abort instead.
    2. Rename an existing ``path`` to ``path~``.
    3. Serialize, encrypt with the session key, write ``path`` (mode 0600).
    4. On success clear the dirty flag.
    5. On failure in step 3, put ``path~`` back if ``path`` was never
       created; if both files exist, leave them for the user.

At no point are both the old and the new content missing. A failure in
step 1 or 2 aborts the save before ``path`` is touched.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .crypto import CryptoProvider, DerivedKey
from .errors import DecryptionFailure, PersistenceFailure, ReadFailure
from .models import SaveResult, SaveStatus
from .store import SecretStore

logger = logging.getLogger("tagaloop.persistence")

FILE_MODE = 0o600


def backup_path(path: Path) -> Path:
    """The backup location used while a save is in flight."""
    return path.with_name(path.name + "~")


def _write_private(path: Path, text: str) -> None:
    """Create ``path`` readable and writable by the owner only, then write ``text``."""
    fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, FILE_MODE)
    with os.fdopen(fd, "w", encoding="utf-8") as fh:
        fh.write(text)
        fh.flush()
        os.fsync(fh.fileno())


@dataclass
class LoadedStore:
    """A decrypted store together with the key that opened it."""

    store: SecretStore
    key: DerivedKey
    format_warning: Optional[str] = None


class PersistenceManager:
    """Reads and writes store files through a :class:`CryptoProvider`."""

    def __init__(self, crypto: CryptoProvider) -> None:
        self.crypto = crypto
        self._conflicts: set[Path] = set()

    # ------------------------------------------------------------------
    # Creation / load
    # ------------------------------------------------------------------

    def create(self, password: str) -> LoadedStore:
        """Start a brand-new, unsaved store protected by ``password``."""
        key = self.crypto.derive_key(password)
        return LoadedStore(store=SecretStore.new(), key=key)

    def load(self, path: Path, password: str) -> LoadedStore:
        """Read, decrypt and parse a store file.

        A missing or mismatched format tag is only warned about.

        Raises:
            ReadFailure: If the file cannot be read.
            DecryptionFailure: On a wrong password or corrupt file.
        """
        try:
            text = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            raise ReadFailure(f"Cannot read {path}: {exc}") from exc

        warning = None
        if not self.crypto.has_format_tag(text):
            warning = f"{path} does not start with a recognized format tag; trying anyway"
            logger.warning(warning)

        envelope = self.crypto.parse(text)
        try:
            key = self.crypto.derive_key(password, envelope.params)
        except ValueError as exc:
            raise DecryptionFailure(f"Bad key derivation parameters ({exc})") from exc
        plaintext = self.crypto.decrypt(envelope, key)

        try:
            store = SecretStore.from_json(plaintext.decode("utf-8"))
        except (UnicodeDecodeError, ValueError, TypeError) as exc:
            raise DecryptionFailure(f"Decrypted payload is not a valid store ({exc})") from exc

        logger.info("Loaded %d entries from %s", len(store), path)
        return LoadedStore(store=store, key=key, format_warning=warning)

    # ------------------------------------------------------------------
    # Save
    # ------------------------------------------------------------------

    def _rotate_backup(self, path: Path, backup: Path) -> None:
        """Steps 1 and 2: clear a stale backup and move the current file aside.

        A backup is only stale while ``path`` exists and no earlier failed
        save left the pair for manual resolution.
        """
        if backup.exists():
            if not path.exists():
                raise PersistenceFailure(
                    f"{backup} holds the only copy and {path} is missing; "
                    f"move it back to {path} before saving"
                )
            if path in self._conflicts:
                raise PersistenceFailure(
                    f"{path} and {backup} both exist after a failed save; "
                    f"remove the one you do not want before saving"
                )
        self._conflicts.discard(path)
        try:
            if backup.exists():
                backup.unlink()
            if path.exists():
                path.rename(backup)
        except OSError as exc:
            raise PersistenceFailure(f"Could not move {path} to {backup}: {exc}") from exc

    def _recover(self, path: Path, backup: Path, error: str) -> SaveResult:
        """Step 5: try to restore the previous file after a failed write."""
        if not backup.exists():
            logger.error("Save to %s failed with no previous file: %s", path, error)
            return SaveResult(status=SaveStatus.FAILED, path=path, backup_path=backup, error=error)

        if path.exists():
            logger.error(
                "Save to %s failed after creating it; %s and %s both exist: %s",
                path, path, backup, error,
            )
            self._conflicts.add(path)
            return SaveResult(status=SaveStatus.CONFLICT, path=path, backup_path=backup, error=error)

        try:
            backup.rename(path)
        except OSError as exc:
            logger.error("Recovery of %s from %s failed: %s", path, backup, exc)
            return SaveResult(
                status=SaveStatus.UNRECOVERED, path=path, backup_path=backup,
                error=error, recovery_error=str(exc),
            )

        logger.warning("Save to %s failed, previous file restored: %s", path, error)
        return SaveResult(status=SaveStatus.RECOVERED, path=path, backup_path=backup, error=error)

    def save(self, path: Path, store: SecretStore, key: DerivedKey) -> SaveResult:
        """Encrypt ``store`` with ``key`` and write it to ``path``.

        Never raises for I/O problems; the returned result says what
        happened and what, if anything, needs manual attention.
        """
        backup = backup_path(path)

        try:
            self._rotate_backup(path, backup)
        except PersistenceFailure as exc:
            logger.error("Save aborted: %s", exc)
            return SaveResult(status=SaveStatus.ABORTED, path=path, backup_path=backup, error=str(exc))

        try:
            text = self.crypto.encrypt(store.to_json().encode("utf-8"), key)
            _write_private(path, text)
        except (OSError, ValueError) as exc:
            return self._recover(path, backup, str(exc))

        store.mark_saved()
        logger.info("Saved %d entries to %s", len(store), path)
        return SaveResult(status=SaveStatus.SAVED, path=path, backup_path=backup)
