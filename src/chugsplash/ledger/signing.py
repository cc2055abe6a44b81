"""
Ed25519 keys for the ledger journal.

The deployer signs the entry_hash of every journal entry it appends. Anyone
holding the public key can re-check the history offline; a key is looked up
by its id, the first 16 hex chars of SHA-256 over the raw public key.
"""

from __future__ import annotations

import hashlib
from typing import Dict, Optional

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.ed25519 import (
    Ed25519PrivateKey,
    Ed25519PublicKey,
)

from chugsplash.protocol.errors import ValidationError


def key_id_for(public_key: Ed25519PublicKey) -> str:
    raw = public_key.public_bytes(
        encoding=serialization.Encoding.Raw,
        format=serialization.PublicFormat.Raw,
    )
    return hashlib.sha256(raw).hexdigest()[:16]


class Ed25519LedgerSigner:
    """Signs journal entries (LedgerSigner)."""

    def __init__(self, private_key: Ed25519PrivateKey):
        self._private_key = private_key
        self._key_id = key_id_for(private_key.public_key())

    @property
    def key_id(self) -> str:
        return self._key_id

    @property
    def public_key(self) -> Ed25519PublicKey:
        return self._private_key.public_key()

    def sign(self, data: bytes) -> bytes:
        return self._private_key.sign(data)

    @classmethod
    def generate(cls) -> "Ed25519LedgerSigner":
        return cls(Ed25519PrivateKey.generate())

    @classmethod
    def from_pem_file(cls, path: str, password: Optional[bytes] = None) -> "Ed25519LedgerSigner":
        """
        Load the deployer key from a PKCS8 PEM file.

        Raises:
            OSError: If the file cannot be read
            ValidationError: If the file does not hold an Ed25519 private key
        """
        with open(path, "rb") as f:
            pem = f.read()
        try:
            private_key = serialization.load_pem_private_key(pem, password=password)
        except (ValueError, TypeError) as e:
            raise ValidationError(f"Cannot load signing key {path}: {e}")
        if not isinstance(private_key, Ed25519PrivateKey):
            raise ValidationError(f"Signing key {path} is not an Ed25519 key")
        return cls(private_key)

    def export_private_pem(self) -> bytes:
        return self._private_key.private_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PrivateFormat.PKCS8,
            encryption_algorithm=serialization.NoEncryption(),
        )


class Ed25519LedgerVerifier:
    """
    Checks journal signatures against a set of trusted public keys
    (LedgerVerifier). Unknown key ids never verify.
    """

    def __init__(self) -> None:
        self._trusted: Dict[str, Ed25519PublicKey] = {}

    @classmethod
    def for_signer(cls, signer: Ed25519LedgerSigner) -> "Ed25519LedgerVerifier":
        verifier = cls()
        verifier.trust(signer.public_key)
        return verifier

    def trust(self, public_key: Ed25519PublicKey) -> str:
        key_id = key_id_for(public_key)
        self._trusted[key_id] = public_key
        return key_id

    def verify(self, data: bytes, signature: bytes, key_id: str) -> bool:
        public_key = self._trusted.get(key_id)
        if public_key is None:
            return False
        try:
            public_key.verify(signature, data)
        except InvalidSignature:
            return False
        return True
