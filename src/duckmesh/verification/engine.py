"""
Verification Engine

Dispatches result verification to one Verifier per VerificationMode:

- REDUNDANT        majority consensus over duplicate results
- REFERENCE_CHECK  edit-distance similarity against a reference inference
- ATTESTATION      format check of the TEE attestation proof
- ZKML             placeholder governed by the configured policy

The engine holds no state between calls. It refuses to start with a
verifier mapping that leaves any mode uncovered.
"""

import logging
from typing import Dict, Mapping, Optional, Sequence

from duckmesh.config import VerificationConfig
from duckmesh.core.models import (
    InferenceResult,
    Job,
    VerificationMode,
    VerificationOutcome,
)
from duckmesh.verification.attestation import AttestationChecker
from duckmesh.verification.base import Verifier
from duckmesh.verification.redundancy import RedundancyScorer
from duckmesh.verification.similarity import SimilarityScorer

logger = logging.getLogger(__name__)

NO_RESULTS = "No results to verify"
ZKML_UNSUPPORTED = "ZkML verification not supported"


class ZkmlVerifier(Verifier):
    """
    Placeholder for zero-knowledge proof verification.

    With policy "accept" every result passes, matching the marketplace's
    current behavior; "reject" fails every ZkML job instead.
    """

    def __init__(self, policy: str = "accept"):
        self.policy = policy

    async def verify(
        self,
        job: Job,
        results: Sequence[InferenceResult],
    ) -> VerificationOutcome:
        if self.policy == "reject":
            return VerificationOutcome.fail(ZKML_UNSUPPORTED)

        logger.warning(f"Job {job.id}: ZkML proof not checked, accepting by policy")
        return VerificationOutcome.ok()


def build_verifiers(
    store,
    reference,
    config: Optional[VerificationConfig] = None,
) -> Dict[VerificationMode, Verifier]:
    """
    Build the default verifier for every mode.

    Args:
        store: JobStore used by reference checks to fetch specs
        reference: ReferenceInference used by reference checks
        config: Verification tuning (uses defaults if None)
    """
    config = config or VerificationConfig()
    return {
        VerificationMode.REDUNDANT: RedundancyScorer(
            min_results=config.min_redundant_results
        ),
        VerificationMode.REFERENCE_CHECK: SimilarityScorer(
            store, reference, threshold=config.similarity_threshold
        ),
        VerificationMode.ATTESTATION: AttestationChecker(
            min_length=config.min_attestation_length
        ),
        VerificationMode.ZKML: ZkmlVerifier(policy=config.zkml_policy),
    }


class VerificationEngine:
    """Strategy dispatcher keyed by verification mode."""

    def __init__(self, verifiers: Mapping[VerificationMode, Verifier]):
        missing = [mode.name for mode in VerificationMode if mode not in verifiers]
        if missing:
            raise ValueError(f"No verifier registered for modes: {', '.join(missing)}")
        self._verifiers = dict(verifiers)

    @classmethod
    def create(
        cls,
        store,
        reference,
        config: Optional[VerificationConfig] = None,
    ) -> "VerificationEngine":
        """Create an engine with the default verifier for every mode."""
        return cls(build_verifiers(store, reference, config))

    def verifier_for(self, mode: VerificationMode) -> Verifier:
        return self._verifiers[VerificationMode(mode)]

    async def verify(
        self,
        job: Job,
        results: Sequence[InferenceResult],
        mode: VerificationMode,
    ) -> VerificationOutcome:
        """
        Verify a job's results under a verification mode.

        Args:
            job: Job the results belong to
            results: Stored results for the job
            mode: Mode to verify under (normally job.verification_mode)

        Returns:
            VerificationOutcome
        """
        mode = VerificationMode(mode)

        # Redundant mode reports its own minimum-results reason
        if not results and mode != VerificationMode.REDUNDANT:
            return VerificationOutcome.fail(NO_RESULTS)

        outcome = await self._verifiers[mode].verify(job, results)

        if outcome.is_valid:
            logger.info(f"Job {job.id} passed {mode.name} verification")
        else:
            logger.warning(
                f"Job {job.id} failed {mode.name} verification: {outcome.reason}"
            )

        return outcome
