"""
Job Lifecycle Orchestration

The two externally invoked operations of the coordinator:

- assign(job_id): select providers for a job and dispatch it to all of
  them concurrently. Succeeds only if every provider accepts.
- collect(job_id): verify the stored results of a job and, if they pass,
  finalize the job on the ledger.

Both return a LifecycleOutcome with a status code (200/202/400/404/500/503)
and a short body. Collaborator failures are not retried; re-invoking the
operation is the retry mechanism.
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import List, Optional, Sequence

from duckmesh.config import DuckmeshConfig
from duckmesh.coordinator.registry import JobRegistry
from duckmesh.coordinator.selector import ProviderSelector
from duckmesh.core.errors import (
    STATUS_OK,
    STATUS_PENDING,
    CoordinatorError,
    InternalError,
    JobNotFoundError,
    NoEligibleProvidersError,
    SpecNotFoundError,
    TransportFailureError,
    VerificationFailedError,
)
from duckmesh.core.models import Job, JobSpec, JobStatus, Provider, VerificationMode
from duckmesh.core.outcomes import DispatchResult, LifecycleOutcome
from duckmesh.ledger.base import Ledger
from duckmesh.storage.base import JobStore
from duckmesh.transport.provider_client import ProviderClient, ProviderTransport
from duckmesh.verification.engine import VerificationEngine
from duckmesh.verification.reference import ReferenceInference, ReferenceInferenceClient

logger = logging.getLogger(__name__)

SERVICE_NAME = "duckmesh-coordinator"


class JobLifecycle:
    """
    Binds provider selection and verification to the ledger, the store
    and the provider transport.

    Instances hold no job state of their own beyond the JobRegistry, so one
    instance can serve many concurrent calls.
    """

    def __init__(
        self,
        ledger: Ledger,
        store: JobStore,
        transport: ProviderTransport,
        engine: VerificationEngine,
        selector: Optional[ProviderSelector] = None,
        registry: Optional[JobRegistry] = None,
    ):
        self.ledger = ledger
        self.store = store
        self.transport = transport
        self.engine = engine
        self.selector = selector or ProviderSelector()
        self.registry = registry or JobRegistry()

    @classmethod
    def from_config(
        cls,
        config: DuckmeshConfig,
        ledger: Ledger,
        store: JobStore,
        transport: Optional[ProviderTransport] = None,
        reference: Optional[ReferenceInference] = None,
    ) -> "JobLifecycle":
        """Wire a lifecycle from configuration, creating HTTP clients as needed."""
        transport = transport or ProviderClient(config.transport)
        reference = reference or ReferenceInferenceClient(config.reference)
        engine = VerificationEngine.create(store, reference, config.verification)
        selector = ProviderSelector(config.selection)
        return cls(ledger, store, transport, engine, selector=selector)

    # Assignment

    async def assign(self, job_id: int) -> LifecycleOutcome:
        """
        Assign a job to provider(s).

        Returns:
            200 assigned, 404 unknown job, 503 no eligible providers,
            500 spec lookup or dispatch failure
        """
        try:
            job = await self._require_job(job_id)

            async with self.registry.job_lock(job_id):
                if self.registry.is_assigned(job_id):
                    return self._deduplicated(job_id)
                return await self._assign_locked(job)

        except CoordinatorError as e:
            logger.warning(f"Assignment of job {job_id} failed: {e}")
            return LifecycleOutcome.from_error(e, "Assignment")
        except Exception:
            logger.exception(f"Job assignment failed for job {job_id}")
            return LifecycleOutcome.from_error(InternalError(), "Assignment")

    async def _assign_locked(self, job: Job) -> LifecycleOutcome:
        providers = await self.ledger.get_active_providers()
        selected = self.select_providers(providers, job)

        if not selected:
            raise NoEligibleProvidersError(f"No eligible providers for job {job.id}")

        spec = await self._load_spec(job)

        addresses = [p.address for p in selected]
        await self.registry.begin_assignment(job.id, addresses)

        dispatches = await self._dispatch_all(selected, job, spec)
        failed = [d for d in dispatches if not d.accepted]

        if failed:
            accepted = [d.provider for d in dispatches if d.accepted]
            error = TransportFailureError(failed[0].provider, failed[0].error or "")
            await self.registry.fail_assignment(job.id, dispatches, str(error))

            # Accepted providers are not told about the abort
            if accepted:
                logger.warning(
                    f"Job {job.id}: {len(failed)} dispatch(es) failed, "
                    f"already accepted by {', '.join(accepted)}"
                )
            logger.error(f"Assignment of job {job.id} failed: {error}")
            return LifecycleOutcome.from_error(error, "Assignment", dispatches)

        await self.registry.complete_assignment(job.id, dispatches)
        logger.info(f"Job {job.id} assigned to {', '.join(addresses)}")

        return LifecycleOutcome(
            status_code=STATUS_OK,
            body={
                "jobId": job.id,
                "assignedProviders": addresses,
                "status": "assigned",
            },
            dispatches=dispatches,
        )

    def select_providers(self, providers: Sequence[Provider], job: Job) -> List[Provider]:
        """Redundant jobs get several providers; all other modes get one."""
        if job.verification_mode == VerificationMode.REDUNDANT:
            return self.selector.select_for_redundancy(providers)

        best = self.selector.select_best_provider(providers, job)
        return [best] if best is not None else []

    async def _load_spec(self, job: Job) -> JobSpec:
        """Fetch the spec by hash, falling back to the per-job record."""
        try:
            return await self.store.get_spec_by_hash(job.spec_hash)
        except Exception as e:
            logger.warning(
                f"Could not get spec for job {job.id} by hash ({e}), trying by job id"
            )

        try:
            spec = await self.store.get_spec_by_job_id(job.id)
        except Exception as e:
            logger.error(f"Spec lookup by job id failed for job {job.id}: {e}")
            spec = None

        if spec is None:
            raise SpecNotFoundError(job.id, job.spec_hash)
        return spec

    async def _dispatch_one(
        self,
        provider: Provider,
        job: Job,
        spec: JobSpec,
    ) -> DispatchResult:
        try:
            await self.transport.assign_job(provider, job, spec)
        except Exception as e:
            return DispatchResult(provider=provider.address, accepted=False, error=str(e))
        return DispatchResult(provider=provider.address, accepted=True)

    async def _dispatch_all(
        self,
        providers: Sequence[Provider],
        job: Job,
        spec: JobSpec,
    ) -> List[DispatchResult]:
        """Fan out to every provider and wait for all calls to settle."""
        return list(
            await asyncio.gather(*(self._dispatch_one(p, job, spec) for p in providers))
        )

    def _deduplicated(self, job_id: int) -> LifecycleOutcome:
        record = self.registry.get(job_id)
        logger.info(f"Job {job_id} already assigned, not dispatching again")
        return LifecycleOutcome(
            status_code=STATUS_OK,
            body={
                "jobId": job_id,
                "assignedProviders": list(record.providers),
                "status": "assigned",
                "deduplicated": True,
            },
            dispatches=list(record.dispatches),
        )

    # Collection

    async def collect(self, job_id: int) -> LifecycleOutcome:
        """
        Verify stored results for a job and finalize it if they pass.

        Returns:
            200 finalized, 202 no results yet, 400 verification failed,
            404 unknown job, 500 unexpected failure
        """
        try:
            job = await self._require_job(job_id)

            async with self.registry.job_lock(job_id):
                return await self._collect_locked(job)

        except CoordinatorError as e:
            logger.warning(f"Collection for job {job_id} failed: {e}")
            return LifecycleOutcome.from_error(e, "Collection")
        except Exception:
            logger.exception(f"Result collection failed for job {job_id}")
            return LifecycleOutcome.from_error(InternalError(), "Collection")

    async def _collect_locked(self, job: Job) -> LifecycleOutcome:
        results = await self.store.list_results(job.id)

        if not results:
            return LifecycleOutcome(
                status_code=STATUS_PENDING,
                body={"message": "Results not ready yet"},
            )

        verification = await self.engine.verify(job, results, job.verification_mode)

        if not verification.is_valid:
            error = VerificationFailedError(job.id, verification.reason)
            logger.info(f"Verification failed: {error}")
            return LifecycleOutcome.from_verification_failure(error, verification)

        await self._finalize_once(job)

        return LifecycleOutcome(
            status_code=STATUS_OK,
            body={
                "jobId": job.id,
                "status": "finalized",
                "result": results[0].output,
                "verification": "passed",
            },
            verification=verification,
        )

    async def _finalize_once(self, job: Job) -> None:
        """Issue the ledger finalize at most once per job in this process."""
        if self.registry.is_finalized(job.id):
            logger.info(f"Job {job.id} already finalized by this coordinator")
            return
        if job.status == JobStatus.FINALIZED:
            logger.info(f"Job {job.id} already finalized on ledger")
            await self.registry.mark_finalized(job.id)
            return

        await self.ledger.finalize_job(job.id)
        await self.registry.mark_finalized(job.id)
        logger.info(f"Job {job.id} finalized")

    # Helpers

    async def _require_job(self, job_id: int) -> Job:
        job = await self.ledger.get_job(job_id)
        if job is None:
            raise JobNotFoundError(job_id)
        return job

    def health(self) -> dict:
        """Liveness report with registry counts."""
        return {
            "status": "healthy",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "service": SERVICE_NAME,
            "registry": self.registry.get_stats(),
        }
