"""
Reference-Similarity Verification

A provider's output is compared with a reference inference for the same
model and prompt. Similarity is one minus the Levenshtein distance
normalized by the longer string:

    similarity = 1 - distance(a, b) / max(len(a), len(b))

Two empty strings have similarity 1.0. The metric feeds a hard pass/fail
threshold, so the distance is the exact unit-cost edit distance.

Lengths and edits count Unicode code points (Python str indexing), not
UTF-16 code units: a character outside the Basic Multilingual Plane, such
as most emoji, is one edit rather than two.
"""

import logging
from typing import List, Sequence

from duckmesh.core.models import InferenceResult, Job, VerificationOutcome
from duckmesh.verification.base import Verifier

logger = logging.getLogger(__name__)

DEFAULT_THRESHOLD = 0.8

REFERENCE_ERROR = "Reference verification error"


def levenshtein_distance(a: str, b: str) -> int:
    """
    Classic dynamic-programming edit distance.

    Insertions, deletions and substitutions each cost 1. Only two rows of
    the matrix are kept.
    """
    if a == b:
        return 0
    if not a:
        return len(b)
    if not b:
        return len(a)

    previous: List[int] = list(range(len(a) + 1))
    for j, cb in enumerate(b, start=1):
        current = [j] + [0] * len(a)
        for i, ca in enumerate(a, start=1):
            substitution_cost = 0 if ca == cb else 1
            current[i] = min(
                current[i - 1] + 1,  # insertion
                previous[i] + 1,  # deletion
                previous[i - 1] + substitution_cost,  # substitution
            )
        previous = current

    return previous[len(a)]


def similarity(a: str, b: str) -> float:
    """Normalized similarity in [0, 1]; symmetric and reflexive."""
    max_length = max(len(a), len(b))
    if max_length == 0:
        return 1.0
    return 1 - (levenshtein_distance(a, b) / max_length)


def low_similarity_reason(score: float) -> str:
    return f"Low similarity: {score:.2f}"


class SimilarityScorer(Verifier):
    """
    Compares the first result against a reference inference.

    The spec is fetched from the store by the job's spec hash and sent to
    the reference inference API together with the job's model id.
    """

    def __init__(self, store, reference, threshold: float = DEFAULT_THRESHOLD):
        """
        Initialize the scorer.

        Args:
            store: JobStore used to fetch the spec by hash
            reference: ReferenceInference producing the reference output
            threshold: Minimum similarity to pass
        """
        self.store = store
        self.reference = reference
        self.threshold = threshold

    async def verify(
        self,
        job: Job,
        results: Sequence[InferenceResult],
    ) -> VerificationOutcome:
        result = results[0]

        try:
            spec = await self.store.get_spec_by_hash(job.spec_hash)
            reference_output = await self.reference.infer(job.model_id, spec)
        except Exception as e:
            logger.error(f"Reference verification failed for job {job.id}: {e}")
            return VerificationOutcome.fail(REFERENCE_ERROR)

        score = similarity(result.output, reference_output)
        logger.info(f"Job {job.id} reference similarity {score:.4f}")

        if score >= self.threshold:
            return VerificationOutcome.ok()
        return VerificationOutcome.fail(low_similarity_reason(score))
