"""
Password-derived keys and authenticated encryption for store files.

Built on scrypt for key derivation and AES-256-GCM for encryption,
both from ``cryptography``.

File layout (UTF-8 text):
    tagaloop 2.0
    scrypt n=32768 r=8 p=1 salt=<base64>
    aes-256-gcm nonce=<base64>
    <base64 ciphertext>

The key is derived once, when the file is opened or created, and is
kept in the session so that saving never asks for the password again.
"""

from __future__ import annotations

import base64
import binascii
import logging
import secrets
from dataclasses import dataclass
from typing import Optional

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.scrypt import Scrypt

from .errors import DecryptionFailure
from .models import KdfParams

logger = logging.getLogger("tagaloop.crypto")

FORMAT_TAG = "tagaloop 2."
FORMAT_VERSION = "tagaloop 2.0"
KDF_NAME = "scrypt"
CIPHER_NAME = "aes-256-gcm"

KEY_SIZE = 32
SALT_SIZE = 16
NONCE_SIZE = 12


@dataclass(frozen=True)
class DerivedKey:
    """Raw key material together with the parameters that produced it."""

    key: bytes
    params: KdfParams

    def __repr__(self) -> str:
        return f"DerivedKey(params=n={self.params.n},r={self.params.r},p={self.params.p})"


@dataclass(frozen=True)
class Envelope:
    """The parsed, still-encrypted contents of a store file."""

    version: str
    params: KdfParams
    nonce: bytes
    ciphertext: bytes


def _b64decode(value: str) -> bytes:
    return base64.b64decode(value.encode("ascii"), validate=True)


def _b64encode(value: bytes) -> str:
    return base64.b64encode(value).decode("ascii")


def _fields(line: str, expected: str) -> dict[str, str]:
    """Split ``name k=v k=v`` into a dict, checking the leading name."""
    parts = line.split()
    if not parts or parts[0] != expected:
        raise DecryptionFailure(f"Expected '{expected}' header, file is corrupt")
    result = {}
    for part in parts[1:]:
        key, sep, value = part.partition("=")
        if not sep:
            raise DecryptionFailure(f"Malformed '{expected}' header, file is corrupt")
        result[key] = value
    return result


class CryptoProvider:
    """Key derivation, encryption and decryption of store files."""

    def __init__(self, default_params: Optional[KdfParams] = None) -> None:
        self._default_params = default_params or KdfParams()

    # ------------------------------------------------------------------
    # Keys
    # ------------------------------------------------------------------

    def derive_key(self, password: str, params: Optional[KdfParams] = None) -> DerivedKey:
        """Derive a key from a password.

        Args:
            password: The user's password.
            params: Parameters read from an existing file. When omitted,
                the default parameters are used with a fresh random salt.

        Returns:
            DerivedKey usable for both decryption and later encryption.
        """
        if params is None:
            params = self._default_params.model_copy(
                update={"salt": secrets.token_bytes(SALT_SIZE)},
            )
        kdf = Scrypt(salt=params.salt, length=KEY_SIZE, n=params.n, r=params.r, p=params.p)
        return DerivedKey(key=kdf.derive(password.encode("utf-8")), params=params)

    # ------------------------------------------------------------------
    # Envelope
    # ------------------------------------------------------------------

    @staticmethod
    def has_format_tag(text: str) -> bool:
        """Whether the file starts with the expected version tag."""
        return text.startswith(FORMAT_TAG)

    def parse(self, text: str) -> Envelope:
        """Parse the text of a store file without decrypting it.

        Raises:
            DecryptionFailure: If the layout is not recognizable.
        """
        lines = text.strip().splitlines()
        if len(lines) != 4:
            raise DecryptionFailure("Unrecognized file layout, file is corrupt")

        version, kdf_line, cipher_line, payload = lines
        kdf = _fields(kdf_line, KDF_NAME)
        cipher = _fields(cipher_line, CIPHER_NAME)
        try:
            params = KdfParams(
                n=int(kdf["n"]), r=int(kdf["r"]), p=int(kdf["p"]),
                salt=_b64decode(kdf["salt"]),
            )
            nonce = _b64decode(cipher["nonce"])
            ciphertext = _b64decode(payload.strip())
        except (KeyError, ValueError, binascii.Error) as exc:
            raise DecryptionFailure(f"Bad encryption parameters, file is corrupt ({exc})") from exc
        return Envelope(version=version.strip(), params=params, nonce=nonce, ciphertext=ciphertext)

    # ------------------------------------------------------------------
    # Encryption
    # ------------------------------------------------------------------

    def encrypt(self, plaintext: bytes, key: DerivedKey) -> str:
        """Encrypt ``plaintext`` and return the full file text."""
        nonce = secrets.token_bytes(NONCE_SIZE)
        ciphertext = AESGCM(key.key).encrypt(nonce, plaintext, None)
        p = key.params
        return (
            f"{FORMAT_VERSION}\n"
            f"{KDF_NAME} n={p.n} r={p.r} p={p.p} salt={_b64encode(p.salt)}\n"
            f"{CIPHER_NAME} nonce={_b64encode(nonce)}\n"
            f"{_b64encode(ciphertext)}\n"
        )

    def decrypt(self, envelope: Envelope, key: DerivedKey) -> bytes:
        """Decrypt a parsed envelope.

        Raises:
            DecryptionFailure: On a wrong password or tampered data.
        """
        try:
            return AESGCM(key.key).decrypt(envelope.nonce, envelope.ciphertext, None)
        except (InvalidTag, ValueError) as exc:
            raise DecryptionFailure("Wrong password or corrupt file") from exc
