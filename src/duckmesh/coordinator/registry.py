"""
Job Registry

The coordinator's only in-process state: one record per job id covering
assignment attempts and finalization.

- All record mutation happens under a single asyncio lock (one writer).
- Each job id also has its own lock so that assign/collect calls for the
  same job run one at a time within this process. A job lock is dropped
  as soon as no caller holds or waits on it.
- Only the most recent FINALIZED records are kept (max_finalized_records).
  An evicted job is still recognised as finalized through the ledger's
  job status.

Across processes nothing is coordinated here; the ledger is assumed to
reject duplicate acceptance of the same job.
"""

import asyncio
import logging
import time
from collections import OrderedDict
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from enum import Enum
from typing import AsyncIterator, Dict, List, Optional

from duckmesh.core.outcomes import DispatchResult

logger = logging.getLogger(__name__)

DEFAULT_MAX_FINALIZED = 10000


class AssignmentState(Enum):
    """State of a job as seen by this coordinator."""

    IN_FLIGHT = "in_flight"
    ASSIGNED = "assigned"
    FAILED = "failed"
    FINALIZED = "finalized"


@dataclass
class AssignmentRecord:
    """Record of a job's assignment and finalization."""

    job_id: int
    state: AssignmentState
    providers: List[str] = field(default_factory=list)
    dispatches: List[DispatchResult] = field(default_factory=list)
    attempts: int = 0
    started_at_ms: int = 0
    completed_at_ms: int = 0
    finalized_at_ms: int = 0
    error: Optional[str] = None

    @property
    def accepted_providers(self) -> List[str]:
        return [d.provider for d in self.dispatches if d.accepted]


def _now_ms() -> int:
    return int(time.time() * 1000)


class JobRegistry:
    """Owned, lock-guarded registry of per-job records."""

    def __init__(self, max_finalized_records: int = DEFAULT_MAX_FINALIZED):
        self._records: Dict[int, AssignmentRecord] = {}
        self._job_locks: Dict[int, asyncio.Lock] = {}
        self._lock_users: Dict[int, int] = {}
        self._finalized: "OrderedDict[int, None]" = OrderedDict()
        self._lock = asyncio.Lock()
        self.max_finalized_records = max_finalized_records

    @asynccontextmanager
    async def job_lock(self, job_id: int) -> AsyncIterator[None]:
        """Serialize work on one job id."""
        async with self._lock:
            lock = self._job_locks.setdefault(job_id, asyncio.Lock())
            self._lock_users[job_id] = self._lock_users.get(job_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            async with self._lock:
                self._lock_users[job_id] -= 1
                if self._lock_users[job_id] == 0:
                    del self._lock_users[job_id]
                    del self._job_locks[job_id]

    @property
    def active_locks(self) -> int:
        """Job locks currently held or awaited."""
        return len(self._job_locks)

    def get(self, job_id: int) -> Optional[AssignmentRecord]:
        return self._records.get(job_id)

    def is_assigned(self, job_id: int) -> bool:
        record = self._records.get(job_id)
        return record is not None and record.state in (
            AssignmentState.ASSIGNED,
            AssignmentState.FINALIZED,
        )

    def is_finalized(self, job_id: int) -> bool:
        record = self._records.get(job_id)
        return record is not None and record.state == AssignmentState.FINALIZED

    async def begin_assignment(self, job_id: int, providers: List[str]) -> AssignmentRecord:
        """Record that dispatch to providers is starting."""
        async with self._lock:
            record = self._records.get(job_id)
            if record is None:
                record = AssignmentRecord(job_id=job_id, state=AssignmentState.IN_FLIGHT)
                self._records[job_id] = record

            record.state = AssignmentState.IN_FLIGHT
            record.providers = list(providers)
            record.dispatches = []
            record.error = None
            record.attempts += 1
            record.started_at_ms = _now_ms()

        logger.debug(
            f"Job {job_id}: assignment attempt {record.attempts} to {len(providers)} provider(s)"
        )
        return record

    async def complete_assignment(
        self,
        job_id: int,
        dispatches: List[DispatchResult],
    ) -> None:
        async with self._lock:
            record = self._require(job_id)
            record.state = AssignmentState.ASSIGNED
            record.dispatches = list(dispatches)
            record.completed_at_ms = _now_ms()

    async def fail_assignment(
        self,
        job_id: int,
        dispatches: List[DispatchResult],
        error: str,
    ) -> None:
        """Record a failed attempt; accepted dispatches stay visible."""
        async with self._lock:
            record = self._require(job_id)
            record.state = AssignmentState.FAILED
            record.dispatches = list(dispatches)
            record.error = error
            record.completed_at_ms = _now_ms()

    async def mark_finalized(self, job_id: int) -> None:
        async with self._lock:
            record = self._records.get(job_id)
            if record is None:
                # Assigned by another coordinator process
                record = AssignmentRecord(job_id=job_id, state=AssignmentState.FINALIZED)
                self._records[job_id] = record
            record.state = AssignmentState.FINALIZED
            record.finalized_at_ms = _now_ms()

            self._finalized[job_id] = None
            self._finalized.move_to_end(job_id)
            while len(self._finalized) > self.max_finalized_records:
                evicted, _ = self._finalized.popitem(last=False)
                self._records.pop(evicted, None)

        logger.debug(f"Job {job_id} recorded as finalized")

    def _require(self, job_id: int) -> AssignmentRecord:
        if job_id not in self._records:
            raise KeyError(f"No assignment record for job {job_id}")
        return self._records[job_id]

    def get_stats(self) -> dict:
        """Count records per state."""
        counts = {state.value: 0 for state in AssignmentState}
        for record in self._records.values():
            counts[record.state.value] += 1
        counts["total"] = len(self._records)
        return counts
