"""
In-Memory Ledger

A process-local ledger used by tests and the CLI. It enforces the job
status order and can be persisted as a YAML snapshot:

    jobs:
      - {id: 1, client: "0xabc", specHash: "...", modelId: "j2-mid", ...}
    providers:
      - {address: "0xdef", endpoint: "http://...", stakedAmount: 10000, ...}
"""

import asyncio
import logging
import time
from dataclasses import replace
from pathlib import Path
from typing import Dict, List, Optional

import yaml

from duckmesh.core.errors import LedgerError
from duckmesh.core.models import Job, JobStatus, Provider, VerificationMode
from duckmesh.ledger.base import Ledger

logger = logging.getLogger(__name__)


class InMemoryLedger(Ledger):
    """Ledger backed by dictionaries, guarded by one asyncio lock."""

    def __init__(
        self,
        jobs: Optional[List[Job]] = None,
        providers: Optional[List[Provider]] = None,
    ):
        self._jobs: Dict[int, Job] = {job.id: job for job in jobs or []}
        self._providers: Dict[str, Provider] = {p.address: p for p in providers or []}
        self._lock = asyncio.Lock()
        self.finalize_calls: List[int] = []

    # Reads

    async def get_job(self, job_id: int) -> Optional[Job]:
        return self._jobs.get(job_id)

    async def get_active_providers(self) -> List[Provider]:
        return list(self._providers.values())

    async def get_provider(self, address: str) -> Optional[Provider]:
        return self._providers.get(address)

    # Writes

    async def finalize_job(self, job_id: int) -> None:
        async with self._lock:
            self.finalize_calls.append(job_id)
            self._transition(job_id, JobStatus.FINALIZED)
        logger.info(f"Job {job_id} finalized")

    async def post_job(
        self,
        client: str,
        spec_hash: str,
        model_id: str,
        max_price: int,
        verification_mode: VerificationMode,
        timeout: int,
    ) -> Job:
        """Create a pending job with the next free id."""
        async with self._lock:
            job_id = max(self._jobs, default=0) + 1
            job = Job(
                id=job_id,
                client=client,
                spec_hash=spec_hash,
                model_id=model_id,
                max_price=max_price,
                verification_mode=VerificationMode(verification_mode),
                timeout=timeout,
            )
            self._jobs[job_id] = job
        logger.info(f"Posted job {job_id} ({model_id}, mode {job.verification_mode.name})")
        return job

    async def register_provider(self, provider: Provider) -> None:
        async with self._lock:
            self._providers[provider.address] = provider

    async def heartbeat(self, address: str, timestamp: Optional[int] = None) -> None:
        async with self._lock:
            provider = self._require_provider(address)
            self._providers[address] = replace(
                provider,
                last_heartbeat=int(time.time() if timestamp is None else timestamp),
            )

    async def accept_job(self, job_id: int, provider: str) -> None:
        """Provider accepts a pending job."""
        async with self._lock:
            self._require_provider(provider)
            job = self._transition(job_id, JobStatus.ASSIGNED)
            self._jobs[job_id] = replace(job, assigned_provider=provider)

    async def submit_result(self, job_id: int, result_hash: str) -> None:
        async with self._lock:
            job = self._transition(job_id, JobStatus.COMPLETED)
            self._jobs[job_id] = replace(job, result_hash=result_hash)

    async def dispute_job(self, job_id: int, reason: str) -> None:
        async with self._lock:
            self._transition(job_id, JobStatus.DISPUTED)
        logger.warning(f"Job {job_id} disputed: {reason}")

    def _require_provider(self, address: str) -> Provider:
        if address not in self._providers:
            raise LedgerError(f"Unknown provider: {address}")
        return self._providers[address]

    def _transition(self, job_id: int, target: JobStatus) -> Job:
        """Move a job to target status; caller holds the lock."""
        job = self._jobs.get(job_id)
        if job is None:
            raise LedgerError(f"Unknown job: {job_id}")
        if not job.status.can_transition_to(target):
            raise LedgerError(
                f"Job {job_id}: cannot move from {job.status.name} to {target.name}"
            )
        updated = replace(job, status=target)
        self._jobs[job_id] = updated
        return updated

    # Snapshots

    def to_dict(self) -> dict:
        return {
            "jobs": [job.to_dict() for job in self._jobs.values()],
            "providers": [p.to_dict() for p in self._providers.values()],
        }

    @classmethod
    def from_dict(cls, data: dict) -> "InMemoryLedger":
        return cls(
            jobs=[Job.from_dict(j) for j in data.get("jobs") or []],
            providers=[Provider.from_dict(p) for p in data.get("providers") or []],
        )

    @classmethod
    def load(cls, path: Path) -> "InMemoryLedger":
        """Load a ledger snapshot; a missing file yields an empty ledger."""
        path = Path(path)
        if not path.exists():
            return cls()

        with open(path) as f:
            data = yaml.safe_load(f)

        return cls.from_dict(data or {})

    def save(self, path: Path) -> None:
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)

        with open(path, "w") as f:
            yaml.safe_dump(self.to_dict(), f, default_flow_style=False, sort_keys=False)
