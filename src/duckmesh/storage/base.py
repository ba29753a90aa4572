"""
Spec/Result Store Interface

Job specs are content addressed by hash and immutable once stored; a
per-job record points at each job's spec. Results are stored per job and
provider.
"""

from abc import ABC, abstractmethod
from typing import List, Optional

from duckmesh.core.models import InferenceResult, JobSpec


class JobStore(ABC):
    """Object/metadata storage for job specs and inference results."""

    @abstractmethod
    async def store_job_spec(self, job_id: int, spec: JobSpec) -> str:
        """Store a spec for a job and return its content hash."""

    @abstractmethod
    async def get_spec_by_hash(self, spec_hash: str) -> JobSpec:
        """
        Fetch a spec by content hash.

        Raises:
            SpecLookupError: If no spec is stored under the hash
        """

    @abstractmethod
    async def get_spec_by_job_id(self, job_id: int) -> Optional[JobSpec]:
        """Fetch the spec recorded for a job, or None."""

    @abstractmethod
    async def store_result(
        self,
        job_id: int,
        provider: str,
        result: InferenceResult,
    ) -> None:
        """Store one provider's result for a job."""

    @abstractmethod
    async def list_results(self, job_id: int) -> List[InferenceResult]:
        """All stored results for a job, possibly empty."""
