"""
Ledger Interface

The ledger owns jobs, the provider registry, escrow and finality. The
coordinator only reads jobs and providers and requests finalization.
"""

from abc import ABC, abstractmethod
from typing import List, Optional

from duckmesh.core.models import Job, Provider


class Ledger(ABC):
    """Read/finalize view of the job market and provider registry."""

    @abstractmethod
    async def get_job(self, job_id: int) -> Optional[Job]:
        """Return the job, or None if it does not exist."""

    @abstractmethod
    async def get_active_providers(self) -> List[Provider]:
        """Return a snapshot of registered providers."""

    @abstractmethod
    async def finalize_job(self, job_id: int) -> None:
        """
        Request job finalization (releases escrow to the provider).

        Raises:
            LedgerError: If the transition is rejected or the call fails
        """
