"""
Marketplace Data Model

This module defines the records the coordinator reads from its
collaborators:
- Jobs and providers (owned by the ledger)
- Job specifications and inference results (owned by the store)
- Verification outcomes (computed per call)

All records serialize to the camelCase wire format used by the ledger,
the store and provider nodes.
"""

import hashlib
import json
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any, Dict, Optional


class VerificationMode(IntEnum):
    """How a submitted result is accepted. Fixed at job creation."""

    REDUNDANT = 0
    REFERENCE_CHECK = 1
    ATTESTATION = 2
    ZKML = 3


class JobStatus(IntEnum):
    """Job lifecycle states as recorded on the ledger."""

    PENDING = 0
    ASSIGNED = 1
    COMPLETED = 2
    DISPUTED = 3
    FINALIZED = 4

    def can_transition_to(self, target: "JobStatus") -> bool:
        """
        Check whether a ledger transition is allowed.

        Status only moves forward: Pending -> Assigned -> Completed ->
        {Disputed | Finalized}. The coordinator's direct finalize may skip
        ahead from Pending or Assigned; it presumes results exist.
        """
        return target in _TRANSITIONS[self]


_TRANSITIONS = {
    JobStatus.PENDING: {JobStatus.ASSIGNED, JobStatus.FINALIZED},
    JobStatus.ASSIGNED: {JobStatus.COMPLETED, JobStatus.FINALIZED},
    JobStatus.COMPLETED: {JobStatus.DISPUTED, JobStatus.FINALIZED},
    JobStatus.DISPUTED: set(),
    JobStatus.FINALIZED: set(),
}


@dataclass(frozen=True)
class Job:
    """A unit of inference work posted by a client."""

    id: int
    client: str
    spec_hash: str
    model_id: str
    max_price: int
    verification_mode: VerificationMode
    timeout: int  # Seconds
    status: JobStatus = JobStatus.PENDING
    assigned_provider: Optional[str] = None
    result_hash: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "client": self.client,
            "specHash": self.spec_hash,
            "modelId": self.model_id,
            "maxPrice": self.max_price,
            "verificationMode": int(self.verification_mode),
            "timeout": self.timeout,
            "status": int(self.status),
            "assignedProvider": self.assigned_provider,
            "resultHash": self.result_hash,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Job":
        return cls(
            id=int(data["id"]),
            client=data["client"],
            spec_hash=data["specHash"],
            model_id=data["modelId"],
            max_price=int(data.get("maxPrice", 0)),
            verification_mode=VerificationMode(int(data["verificationMode"])),
            timeout=int(data.get("timeout", 0)),
            status=JobStatus(int(data.get("status", JobStatus.PENDING))),
            assigned_provider=data.get("assignedProvider") or None,
            result_hash=data.get("resultHash") or None,
        )


@dataclass(frozen=True)
class Provider:
    """Snapshot of a registered compute provider."""

    address: str
    endpoint: str
    staked_amount: int
    reputation: int  # 0-100
    last_heartbeat: int  # Unix seconds
    is_active: bool = True
    pubkey: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "address": self.address,
            "endpoint": self.endpoint,
            "stakedAmount": self.staked_amount,
            "reputation": self.reputation,
            "lastHeartbeat": self.last_heartbeat,
            "isActive": self.is_active,
            "pubkey": self.pubkey,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Provider":
        return cls(
            address=data["address"],
            endpoint=data["endpoint"].rstrip("/"),
            staked_amount=int(data.get("stakedAmount", 0)),
            reputation=int(data.get("reputation", 0)),
            last_heartbeat=int(data.get("lastHeartbeat", 0)),
            is_active=bool(data.get("isActive", True)),
            pubkey=data.get("pubkey"),
        )


@dataclass(frozen=True)
class JobSpec:
    """Input specification of a job, addressed by content hash."""

    prompt: str
    max_tokens: int
    temperature: float
    model_parameters: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "prompt": self.prompt,
            "maxTokens": self.max_tokens,
            "temperature": self.temperature,
            "modelParameters": dict(self.model_parameters),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "JobSpec":
        return cls(
            prompt=data["prompt"],
            max_tokens=int(data.get("maxTokens", 0)),
            temperature=float(data.get("temperature", 0.0)),
            model_parameters=dict(data.get("modelParameters") or {}),
        )

    def canonical_bytes(self) -> bytes:
        """Deterministic JSON encoding used for content addressing."""
        return json.dumps(
            self.to_dict(), sort_keys=True, separators=(",", ":")
        ).encode("utf-8")

    def content_hash(self) -> str:
        """SHA-256 hex digest of the canonical encoding."""
        return hashlib.sha256(self.canonical_bytes()).hexdigest()


@dataclass(frozen=True)
class ResultMetadata:
    """Execution details reported by a provider."""

    tokens_used: int = 0
    execution_time: int = 0  # Milliseconds
    model_version: str = ""


@dataclass(frozen=True)
class InferenceResult:
    """Output of one provider for one job."""

    output: str
    metadata: ResultMetadata = field(default_factory=ResultMetadata)
    signature: str = ""  # Attestation proof, may be empty
    provider: Optional[str] = None

    def to_dict(self) -> dict:
        data = {
            "output": self.output,
            "metadata": {
                "tokensUsed": self.metadata.tokens_used,
                "executionTime": self.metadata.execution_time,
                "modelVersion": self.metadata.model_version,
            },
            "signature": self.signature,
        }
        if self.provider is not None:
            data["provider"] = self.provider
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "InferenceResult":
        meta = data.get("metadata") or {}
        return cls(
            output=data["output"],
            metadata=ResultMetadata(
                tokens_used=int(meta.get("tokensUsed", 0)),
                execution_time=int(meta.get("executionTime", 0)),
                model_version=str(meta.get("modelVersion", "")),
            ),
            signature=data.get("signature") or "",
            provider=data.get("provider"),
        )


@dataclass(frozen=True)
class VerificationOutcome:
    """Pass/fail judgment with an optional reason."""

    is_valid: bool
    reason: Optional[str] = None

    @classmethod
    def ok(cls) -> "VerificationOutcome":
        return cls(is_valid=True)

    @classmethod
    def fail(cls, reason: str) -> "VerificationOutcome":
        return cls(is_valid=False, reason=reason)
