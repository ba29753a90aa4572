"""
Pytest configuration and shared fixtures.
"""

import tempfile
from pathlib import Path
from typing import List, Optional

import numpy as np
import pytest

from duckmesh.config import SelectionConfig
from duckmesh.coordinator.selector import ProviderSelector
from duckmesh.core.errors import TransportFailureError
from duckmesh.core.models import (
    InferenceResult,
    Job,
    JobSpec,
    JobStatus,
    Provider,
    VerificationMode,
)
from duckmesh.ledger.memory import InMemoryLedger
from duckmesh.storage.memory import InMemoryJobStore

NOW = 1_700_000_000


def make_provider(
    address: str,
    staked_amount: int = 10000,
    reputation: int = 80,
    heartbeat_age: int = 60,
    is_active: bool = True,
) -> Provider:
    """Provider whose last heartbeat was heartbeat_age seconds before NOW."""
    return Provider(
        address=address,
        endpoint=f"http://{address}.example",
        staked_amount=staked_amount,
        reputation=reputation,
        last_heartbeat=NOW - heartbeat_age,
        is_active=is_active,
    )


def make_job(
    job_id: int = 1,
    mode: VerificationMode = VerificationMode.REDUNDANT,
    spec_hash: str = "0" * 64,
    status: JobStatus = JobStatus.PENDING,
    model_id: str = "j2-mid",
) -> Job:
    return Job(
        id=job_id,
        client="0xclient",
        spec_hash=spec_hash,
        model_id=model_id,
        max_price=100,
        verification_mode=mode,
        timeout=300,
        status=status,
    )


def make_result(output: str, signature: str = "", provider: Optional[str] = None) -> InferenceResult:
    return InferenceResult(output=output, signature=signature, provider=provider)


class FakeTransport:
    """Records dispatches; addresses in `failing` raise TransportFailureError."""

    def __init__(self, failing=()):
        self.failing = set(failing)
        self.calls: List[tuple] = []

    async def assign_job(self, provider: Provider, job: Job, spec: JobSpec) -> None:
        self.calls.append((provider.address, job.id, spec))
        if provider.address in self.failing:
            raise TransportFailureError(provider.address, "connection refused")


class FakeReference:
    """Returns a fixed reference output, or raises if `error` is set."""

    def __init__(self, output: str = "", error: Optional[Exception] = None):
        self.output = output
        self.error = error
        self.calls: List[tuple] = []

    async def infer(self, model_id: str, spec: JobSpec) -> str:
        self.calls.append((model_id, spec))
        if self.error is not None:
            raise self.error
        return self.output


@pytest.fixture
def temp_dir():
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def sample_spec():
    return JobSpec(prompt="Summarize the plot of Hamlet.", max_tokens=128, temperature=0.2)


@pytest.fixture
def providers():
    """Three eligible providers with distinct reputation * stake."""
    return [
        make_provider("0xaaa", staked_amount=10000, reputation=90),
        make_provider("0xbbb", staked_amount=20000, reputation=60),
        make_provider("0xccc", staked_amount=5000, reputation=95),
    ]


@pytest.fixture
def selector():
    """Selector with a fixed clock and seeded jitter."""
    return ProviderSelector(
        SelectionConfig(),
        rng=np.random.default_rng(42),
        clock=lambda: NOW,
    )


@pytest.fixture
def store():
    return InMemoryJobStore()


@pytest.fixture
def ledger(providers):
    return InMemoryLedger(providers=providers)


@pytest.fixture
def transport():
    return FakeTransport()
