"""
Wire Payload Serialization

JSON encoding of the payloads exchanged with provider nodes and the
spec/result store.

Formats:
- Job assignment: {"jobId": int, "spec": JobSpec, "timeout": int, "client": str}
- Job spec: {"prompt", "maxTokens", "temperature", "modelParameters"}
- Inference result: {"output", "metadata": {...}, "signature"}
"""

import json
from typing import Any, Dict, Union

from duckmesh.core.errors import SerializationError
from duckmesh.core.models import InferenceResult, Job, JobSpec


def encode_assignment(job: Job, spec: JobSpec) -> Dict[str, Any]:
    """Build the POST /jobs body for a provider."""
    return {
        "jobId": job.id,
        "spec": spec.to_dict(),
        "timeout": job.timeout,
        "client": job.client,
    }


def _load(data: Union[str, bytes, dict]) -> dict:
    if isinstance(data, dict):
        return data
    try:
        decoded = json.loads(data)
    except (TypeError, ValueError) as e:
        raise SerializationError(f"Invalid JSON payload: {e}") from e
    if not isinstance(decoded, dict):
        raise SerializationError(
            f"Expected JSON object, got {type(decoded).__name__}"
        )
    return decoded


def decode_job_spec(data: Union[str, bytes, dict]) -> JobSpec:
    """
    Decode a job spec payload.

    Raises:
        SerializationError: If the payload is not a valid spec
    """
    try:
        return JobSpec.from_dict(_load(data))
    except (KeyError, TypeError, ValueError) as e:
        raise SerializationError(f"Invalid job spec: {e}") from e


def decode_result(data: Union[str, bytes, dict]) -> InferenceResult:
    """
    Decode an inference result payload.

    Raises:
        SerializationError: If the payload is not a valid result
    """
    try:
        return InferenceResult.from_dict(_load(data))
    except (KeyError, TypeError, ValueError) as e:
        raise SerializationError(f"Invalid inference result: {e}") from e


def encode_json(payload: Dict[str, Any]) -> str:
    """Stable, human-readable JSON for stored objects."""
    return json.dumps(payload, indent=2, sort_keys=True)
