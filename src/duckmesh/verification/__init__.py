"""Verification: majority consensus, reference similarity, attestation."""

from duckmesh.verification.attestation import (
    AttestationChecker,
    is_well_formed_attestation,
)
from duckmesh.verification.base import Verifier
from duckmesh.verification.engine import (
    VerificationEngine,
    ZkmlVerifier,
    build_verifiers,
)
from duckmesh.verification.redundancy import (
    RedundancyScorer,
    consensus_output,
    has_strict_majority,
    output_hash,
)
from duckmesh.verification.reference import (
    ReferenceInference,
    ReferenceInferenceClient,
    build_request_body,
    resolve_model_id,
)
from duckmesh.verification.similarity import (
    SimilarityScorer,
    levenshtein_distance,
    similarity,
)

__all__ = [
    "Verifier",
    "VerificationEngine",
    "build_verifiers",
    # Redundant
    "RedundancyScorer",
    "consensus_output",
    "has_strict_majority",
    "output_hash",
    # Reference check
    "SimilarityScorer",
    "levenshtein_distance",
    "similarity",
    "ReferenceInference",
    "ReferenceInferenceClient",
    "build_request_body",
    "resolve_model_id",
    # Attestation
    "AttestationChecker",
    "is_well_formed_attestation",
    # ZkML
    "ZkmlVerifier",
]
