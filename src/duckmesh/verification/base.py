"""
Base Verifier

One Verifier subclass exists per verification mode. The engine owns the
mapping from mode to verifier.
"""

from abc import ABC, abstractmethod
from typing import Sequence

from duckmesh.core.models import InferenceResult, Job, VerificationOutcome


class Verifier(ABC):
    """Judges whether a job's submitted results are acceptable."""

    @abstractmethod
    async def verify(
        self,
        job: Job,
        results: Sequence[InferenceResult],
    ) -> VerificationOutcome:
        """
        Verify results for a job.

        Args:
            job: Job the results belong to
            results: Stored results, at least one

        Returns:
            VerificationOutcome with a reason on failure
        """
