"""
Lifecycle Outcomes

Status-code-like results returned by JobLifecycle.assign and
JobLifecycle.collect. The body is what a request handler would render;
dispatches and verification stay in-process for callers that want to
inspect partial success.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from duckmesh.core.errors import (
    STATUS_INTERNAL_ERROR,
    STATUS_NOT_FOUND,
    STATUS_UNAVAILABLE,
    CoordinatorError,
    VerificationFailedError,
)
from duckmesh.core.models import VerificationOutcome

# Public messages for each failure status; never collaborator detail
_ERROR_MESSAGES = {
    STATUS_NOT_FOUND: "Job not found",
    STATUS_UNAVAILABLE: "No available providers",
}


@dataclass
class DispatchResult:
    """Outcome of sending a job to one provider."""

    provider: str
    accepted: bool
    error: Optional[str] = None


@dataclass
class LifecycleOutcome:
    """Result of one assign or collect call."""

    status_code: int
    body: Dict[str, Any]
    dispatches: List[DispatchResult] = field(default_factory=list)
    verification: Optional[VerificationOutcome] = None

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300

    @property
    def accepted_providers(self) -> List[str]:
        return [d.provider for d in self.dispatches if d.accepted]

    @classmethod
    def from_error(
        cls,
        error: CoordinatorError,
        operation: str,
        dispatches: Optional[List[DispatchResult]] = None,
    ) -> "LifecycleOutcome":
        """
        Render a coordinator error as an outcome.

        Args:
            error: The classified failure
            operation: "Assignment" or "Collection", used for 500 messages
            dispatches: Per-provider results gathered before the failure
        """
        if error.status_code == STATUS_INTERNAL_ERROR:
            message = f"{operation} failed"
        else:
            message = _ERROR_MESSAGES.get(error.status_code, error.reason)
        return cls(
            status_code=error.status_code,
            body={"error": message, "reason": error.reason},
            dispatches=list(dispatches or []),
        )

    @classmethod
    def from_verification_failure(
        cls,
        error: VerificationFailedError,
        verification: Optional[VerificationOutcome] = None,
    ) -> "LifecycleOutcome":
        """Render a rejected result set; the reason is the verifier's."""
        return cls(
            status_code=error.status_code,
            body={
                "jobId": error.job_id,
                "status": "verification_failed",
                "reason": error.reason,
            },
            verification=verification,
        )
