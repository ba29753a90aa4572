"""In-memory JobStore for tests and single-process use."""

from dataclasses import replace
from typing import Dict, List, Optional

from duckmesh.core.errors import SpecLookupError
from duckmesh.core.models import InferenceResult, JobSpec
from duckmesh.storage.base import JobStore


class InMemoryJobStore(JobStore):
    """
    Dictionary-backed store.

    Like the filesystem store, a provider holds one result slot per job:
    a later submission replaces the earlier one.
    """

    def __init__(self):
        self._specs: Dict[str, JobSpec] = {}
        self._job_specs: Dict[int, JobSpec] = {}
        self._results: Dict[int, Dict[str, InferenceResult]] = {}

    async def store_job_spec(self, job_id: int, spec: JobSpec) -> str:
        spec_hash = spec.content_hash()
        self._specs[spec_hash] = spec
        self._job_specs[job_id] = spec
        return spec_hash

    async def get_spec_by_hash(self, spec_hash: str) -> JobSpec:
        if spec_hash not in self._specs:
            raise SpecLookupError(f"Failed to retrieve job spec for hash: {spec_hash}")
        return self._specs[spec_hash]

    async def get_spec_by_job_id(self, job_id: int) -> Optional[JobSpec]:
        return self._job_specs.get(job_id)

    async def store_result(
        self,
        job_id: int,
        provider: str,
        result: InferenceResult,
    ) -> None:
        self._results.setdefault(job_id, {})[provider] = replace(result, provider=provider)

    async def list_results(self, job_id: int) -> List[InferenceResult]:
        by_provider = self._results.get(job_id, {})
        return [by_provider[p] for p in sorted(by_provider)]
