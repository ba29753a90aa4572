"""
Coordinator Error Taxonomy

Every failure of an assign or collect call maps to one of these
exceptions. Each carries the outcome status code and a short
machine-readable reason; collaborator detail stays in the logs.
"""

from typing import Optional

STATUS_OK = 200
STATUS_PENDING = 202
STATUS_VERIFICATION_FAILED = 400
STATUS_NOT_FOUND = 404
STATUS_INTERNAL_ERROR = 500
STATUS_UNAVAILABLE = 503


class CoordinatorError(Exception):
    """Base class for failures surfaced to the coordinator's caller."""

    status_code = STATUS_INTERNAL_ERROR
    reason = "internal_error"

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.reason)


class JobNotFoundError(CoordinatorError):
    """Raised when the ledger has no job with the requested id."""

    status_code = STATUS_NOT_FOUND
    reason = "job_not_found"

    def __init__(self, job_id: int):
        self.job_id = job_id
        super().__init__(f"Job {job_id} not found")


class NoEligibleProvidersError(CoordinatorError):
    """Raised when provider selection comes back empty."""

    status_code = STATUS_UNAVAILABLE
    reason = "no_eligible_providers"


class SpecNotFoundError(CoordinatorError):
    """Raised when neither the spec hash nor the job id resolves a spec."""

    status_code = STATUS_INTERNAL_ERROR
    reason = "spec_not_found"

    def __init__(self, job_id: int, spec_hash: str):
        self.job_id = job_id
        self.spec_hash = spec_hash
        super().__init__(f"No spec for job {job_id} (hash {spec_hash[:16]})")


class TransportFailureError(CoordinatorError):
    """Raised when a provider call fails or times out."""

    status_code = STATUS_INTERNAL_ERROR
    reason = "transport_failure"

    def __init__(self, provider: str, message: str = "transport failure"):
        self.provider = provider
        super().__init__(f"{provider}: {message}")


class VerificationFailedError(CoordinatorError):
    """Raised when submitted results do not pass verification."""

    status_code = STATUS_VERIFICATION_FAILED

    def __init__(self, job_id: int, reason: Optional[str]):
        self.job_id = job_id
        self.reason = reason or "verification_failed"
        super().__init__(f"Job {job_id}: {self.reason}")


class InternalError(CoordinatorError):
    """Unexpected failure not otherwise classified."""


class LedgerError(Exception):
    """Raised by a ledger when a read or transition fails."""


class SpecLookupError(Exception):
    """Raised by a store when a spec cannot be retrieved by hash."""


class ReferenceInferenceError(Exception):
    """Raised when the reference inference API cannot produce an output."""


class SerializationError(Exception):
    """Raised when a wire payload cannot be encoded or decoded."""
