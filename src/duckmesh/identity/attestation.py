"""
Attestation Signing

Provider-side production of the attestation proof attached to an
inference result. The payload binds the result to the job spec:

    {"result_hash", "spec_hash", "timestamp", "model_version", "execution_time"}

The payload is serialized as sorted-key compact JSON and signed with the
provider's Ed25519 key. The hex signature is 128 characters, so it passes
the coordinator's attestation format check.
"""

import hashlib
import json
import time
from dataclasses import asdict, dataclass, replace
from typing import Optional

from duckmesh.core.models import InferenceResult, JobSpec
from duckmesh.identity.keys import KeyManager, verify_signature


@dataclass(frozen=True)
class AttestationPayload:
    """Fields covered by an attestation signature."""

    result_hash: str
    spec_hash: str
    timestamp: int  # Unix milliseconds
    model_version: str
    execution_time: int

    def canonical_bytes(self) -> bytes:
        """Deterministic byte encoding for signing."""
        return json.dumps(asdict(self), sort_keys=True, separators=(",", ":")).encode(
            "utf-8"
        )


def hash_result(result: InferenceResult) -> str:
    """SHA-256 over the output and token count."""
    data = json.dumps(
        {"output": result.output, "tokensUsed": result.metadata.tokens_used},
        sort_keys=True,
        separators=(",", ":"),
    )
    return hashlib.sha256(data.encode("utf-8")).hexdigest()


class AttestationSigner:
    """Signs inference results with a provider key."""

    def __init__(self, key_manager: KeyManager):
        self.key_manager = key_manager

    def build_payload(
        self,
        result: InferenceResult,
        spec: JobSpec,
        timestamp_ms: Optional[int] = None,
    ) -> AttestationPayload:
        return AttestationPayload(
            result_hash=hash_result(result),
            spec_hash=spec.content_hash(),
            timestamp=timestamp_ms if timestamp_ms is not None else int(time.time() * 1000),
            model_version=result.metadata.model_version,
            execution_time=result.metadata.execution_time,
        )

    def sign(self, payload: AttestationPayload) -> str:
        """Return the hex-encoded signature over the payload."""
        return self.key_manager.sign(payload.canonical_bytes()).hex()

    def attest(
        self,
        result: InferenceResult,
        spec: JobSpec,
        timestamp_ms: Optional[int] = None,
    ) -> InferenceResult:
        """Return a copy of result carrying an attestation signature."""
        payload = self.build_payload(result, spec, timestamp_ms)
        return replace(result, signature=self.sign(payload))


def verify_attestation(pubkey_hex: str, payload: AttestationPayload, signature: str) -> bool:
    """Check a hex attestation signature against a provider's pubkey."""
    try:
        signature_bytes = bytes.fromhex(signature)
    except ValueError:
        return False
    return verify_signature(pubkey_hex, signature_bytes, payload.canonical_bytes())
