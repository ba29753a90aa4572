"""
Majority-Consensus Verification

Redundant jobs run on several providers. Each output is reduced to a
SHA-256 commitment and the commitments are tallied; the job passes only
if one commitment is held by a strict majority of results.

A 2-2 split among four results fails; 2 of 3 or 3 of 4 passes.
"""

import hashlib
import logging
from collections import Counter
from typing import Optional, Sequence

from duckmesh.core.models import InferenceResult, Job, VerificationOutcome
from duckmesh.verification.base import Verifier

logger = logging.getLogger(__name__)

DEFAULT_MIN_RESULTS = 2

INSUFFICIENT_RESULTS = "Insufficient redundant results"
NO_MAJORITY = "No majority consensus on results"


def output_hash(output: str) -> str:
    """
    Compute the commitment for a result output.

    Args:
        output: Raw output text

    Returns:
        64-char SHA-256 hex digest of the UTF-8 bytes
    """
    return hashlib.sha256(output.encode("utf-8")).hexdigest()


def tally_outputs(results: Sequence[InferenceResult]) -> Counter:
    """Count results per output commitment."""
    return Counter(output_hash(r.output) for r in results)


def has_strict_majority(results: Sequence[InferenceResult]) -> bool:
    """True if the most common output is held by more than half the results."""
    if not results:
        return False
    max_count = max(tally_outputs(results).values())
    return max_count > len(results) / 2


def consensus_output(results: Sequence[InferenceResult]) -> Optional[str]:
    """Return the majority output, or None without a strict majority."""
    if not has_strict_majority(results):
        return None
    winning_hash, _ = tally_outputs(results).most_common(1)[0]
    for result in results:
        if output_hash(result.output) == winning_hash:
            return result.output
    return None


class RedundancyScorer(Verifier):
    """Majority vote over duplicate results."""

    def __init__(self, min_results: int = DEFAULT_MIN_RESULTS):
        self.min_results = min_results

    async def verify(
        self,
        job: Job,
        results: Sequence[InferenceResult],
    ) -> VerificationOutcome:
        if len(results) < self.min_results:
            return VerificationOutcome.fail(INSUFFICIENT_RESULTS)

        counts = tally_outputs(results)
        max_count = max(counts.values())

        logger.debug(
            f"Job {job.id}: {len(counts)} distinct outputs, "
            f"top count {max_count}/{len(results)}"
        )

        if max_count > len(results) / 2:
            return VerificationOutcome.ok()
        return VerificationOutcome.fail(NO_MAJORITY)
