"""Core data model, error taxonomy and lifecycle outcomes."""

from duckmesh.core.errors import (
    CoordinatorError,
    InternalError,
    JobNotFoundError,
    LedgerError,
    NoEligibleProvidersError,
    ReferenceInferenceError,
    SerializationError,
    SpecLookupError,
    SpecNotFoundError,
    TransportFailureError,
    VerificationFailedError,
)
from duckmesh.core.models import (
    InferenceResult,
    Job,
    JobSpec,
    JobStatus,
    Provider,
    ResultMetadata,
    VerificationMode,
    VerificationOutcome,
)
from duckmesh.core.outcomes import DispatchResult, LifecycleOutcome

__all__ = [
    # Models
    "InferenceResult",
    "Job",
    "JobSpec",
    "JobStatus",
    "Provider",
    "ResultMetadata",
    "VerificationMode",
    "VerificationOutcome",
    # Outcomes
    "DispatchResult",
    "LifecycleOutcome",
    # Errors
    "CoordinatorError",
    "InternalError",
    "JobNotFoundError",
    "LedgerError",
    "NoEligibleProvidersError",
    "ReferenceInferenceError",
    "SerializationError",
    "SpecLookupError",
    "SpecNotFoundError",
    "TransportFailureError",
    "VerificationFailedError",
]
