"""
Provider Key Management

Ed25519 keys that a provider uses to sign attestations. The hex-encoded
public key is what a provider publishes as its registry pubkey.
"""

import hashlib
import json
from pathlib import Path
from typing import Optional

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.ed25519 import (
    Ed25519PrivateKey,
    Ed25519PublicKey,
)

PRIVATE_KEY_FILE = "private_key.pem"
IDENTITY_FILE = "identity.json"


class KeyManager:
    """Holds a provider's Ed25519 key pair."""

    def __init__(self, private_key: Optional[Ed25519PrivateKey] = None):
        """
        Initialize key manager.

        Args:
            private_key: Existing private key, or None to generate new
        """
        self._private_key = private_key or Ed25519PrivateKey.generate()
        self._public_key = self._private_key.public_key()

    @property
    def public_key(self) -> Ed25519PublicKey:
        return self._public_key

    @property
    def public_key_bytes(self) -> bytes:
        """Raw 32-byte public key."""
        return self._public_key.public_bytes(
            encoding=serialization.Encoding.Raw,
            format=serialization.PublicFormat.Raw,
        )

    @property
    def pubkey_hex(self) -> str:
        """Public key as published in the provider registry."""
        return self.public_key_bytes.hex()

    @property
    def key_id(self) -> str:
        """First 16 hex chars of SHA-256 over the raw public key."""
        return hashlib.sha256(self.public_key_bytes).hexdigest()[:16]

    def sign(self, data: bytes) -> bytes:
        """Return a 64-byte Ed25519 signature."""
        return self._private_key.sign(data)

    def save(self, path: Path) -> None:
        """
        Save keys to a directory.

        Creates:
        - private_key.pem: PKCS8 PEM private key
        - identity.json: key id and public key hex
        """
        path = Path(path)
        path.mkdir(parents=True, exist_ok=True)

        private_pem = self._private_key.private_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PrivateFormat.PKCS8,
            encryption_algorithm=serialization.NoEncryption(),
        )
        (path / PRIVATE_KEY_FILE).write_bytes(private_pem)

        identity = {"keyId": self.key_id, "pubkey": self.pubkey_hex}
        (path / IDENTITY_FILE).write_text(json.dumps(identity, indent=2))

    @classmethod
    def load(cls, path: Path) -> "KeyManager":
        """Load keys from a directory containing private_key.pem."""
        private_pem = (Path(path) / PRIVATE_KEY_FILE).read_bytes()
        private_key = serialization.load_pem_private_key(private_pem, password=None)

        if not isinstance(private_key, Ed25519PrivateKey):
            raise ValueError("Expected Ed25519 private key")

        return cls(private_key=private_key)


def verify_signature(pubkey_hex: str, signature: bytes, data: bytes) -> bool:
    """
    Verify an Ed25519 signature against a hex-encoded public key.

    Returns False for malformed keys as well as bad signatures.
    """
    try:
        public_key = Ed25519PublicKey.from_public_bytes(bytes.fromhex(pubkey_hex))
        public_key.verify(signature, data)
        return True
    except (InvalidSignature, ValueError):
        return False
