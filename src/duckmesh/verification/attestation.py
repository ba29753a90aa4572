"""
TEE Attestation Check

Validates the format of the attestation proof attached to a result:
non-empty, at least 64 characters, hexadecimal only.

This does NOT verify an attestation document, a signature chain, enclave
measurements or a trust root. Production attestation semantics are not
defined yet; see DESIGN.md.
"""

import logging
import re
from typing import Sequence

from duckmesh.core.models import InferenceResult, Job, VerificationOutcome
from duckmesh.verification.base import Verifier

logger = logging.getLogger(__name__)

DEFAULT_MIN_LENGTH = 64

INVALID_ATTESTATION = "Invalid TEE attestation"
ATTESTATION_ERROR = "Attestation verification failed"

_HEX_PATTERN = re.compile(r"[0-9a-fA-F]+")


def is_well_formed_attestation(signature: str, min_length: int = DEFAULT_MIN_LENGTH) -> bool:
    """Check the attestation signature format only."""
    if not signature or len(signature) < min_length:
        return False
    return _HEX_PATTERN.fullmatch(signature) is not None


class AttestationChecker(Verifier):
    """Format-only attestation validation of the first result."""

    def __init__(self, min_length: int = DEFAULT_MIN_LENGTH):
        self.min_length = min_length

    async def verify(
        self,
        job: Job,
        results: Sequence[InferenceResult],
    ) -> VerificationOutcome:
        try:
            valid = is_well_formed_attestation(results[0].signature, self.min_length)
        except Exception as e:
            logger.error(f"Attestation check errored for job {job.id}: {e}")
            return VerificationOutcome.fail(ATTESTATION_ERROR)

        if valid:
            return VerificationOutcome.ok()
        return VerificationOutcome.fail(INVALID_ATTESTATION)
