"""
Pydantic models for the secret store, its on-disk parameters, and
runtime configuration.
"""

from __future__ import annotations

import time
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


def now_ms() -> int:
    """Current wall-clock time as integer epoch milliseconds."""
    return time.time_ns() // 1_000_000


class Entry(BaseModel):
    """One labeled secret string. Immutable; the store replaces it on change."""

    model_config = ConfigDict(frozen=True)

    id: str
    updated_at: int = Field(default_factory=now_ms, description="Epoch milliseconds")
    label: str
    value: str

    @property
    def updated(self) -> datetime:
        """The ``updated_at`` timestamp as an aware UTC datetime."""
        return datetime.fromtimestamp(self.updated_at / 1000, tz=timezone.utc)

    def to_wire(self) -> list:
        """Serialize to the ``[updated_at_ms, label, value]`` triple."""
        return [self.updated_at, self.label, self.value]

    @classmethod
    def from_wire(cls, entry_id: str, item: list) -> "Entry":
        """Build an entry from its id and wire triple.

        Raises:
            ValueError: If the triple is malformed.
        """
        if not isinstance(item, list) or len(item) != 3:
            raise ValueError(f"Entry {entry_id!r} is not a 3-element array")
        updated_at, label, value = item
        return cls(id=entry_id, updated_at=int(updated_at), label=label, value=value)


class KdfParams(BaseModel):
    """scrypt parameters embedded in the file header."""

    n: int = 2**15
    r: int = 8
    p: int = 1
    salt: bytes = b""


class SaveStatus(str, Enum):
    """Outcome of the backup-rotate-write protocol."""

    SAVED = "saved"
    ABORTED = "aborted"
    RECOVERED = "recovered"
    CONFLICT = "conflict"
    UNRECOVERED = "unrecovered"
    FAILED = "failed"


class SaveResult(BaseModel):
    """Result of a save attempt."""

    status: SaveStatus
    path: Path
    backup_path: Path
    error: Optional[str] = None
    recovery_error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status == SaveStatus.SAVED


class TagaloopConfig(BaseModel):
    """Persistent configuration, read from ``config.yaml``."""

    scrypt_n: int = 2**15
    scrypt_r: int = 8
    scrypt_p: int = 1
    prompt_name: str = "tagaloop"
    history_file: Optional[Path] = None
    log_file: Optional[Path] = None
    log_level: str = "WARNING"

    def kdf_params(self) -> KdfParams:
        """Fresh KDF parameters (without salt) for a new store."""
        return KdfParams(n=self.scrypt_n, r=self.scrypt_r, p=self.scrypt_p)
