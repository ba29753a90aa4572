"""Identity: provider keys and attestation signing."""

from duckmesh.identity.attestation import (
    AttestationPayload,
    AttestationSigner,
    hash_result,
    verify_attestation,
)
from duckmesh.identity.keys import KeyManager, verify_signature

__all__ = [
    "AttestationPayload",
    "AttestationSigner",
    "KeyManager",
    "hash_result",
    "verify_attestation",
    "verify_signature",
]
