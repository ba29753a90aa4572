"""Transport: provider node HTTP client and wire payloads."""

from duckmesh.transport.provider_client import ProviderClient, ProviderTransport
from duckmesh.transport.serialization import (
    decode_job_spec,
    decode_result,
    encode_assignment,
    encode_json,
)

__all__ = [
    "ProviderClient",
    "ProviderTransport",
    "decode_job_spec",
    "decode_result",
    "encode_assignment",
    "encode_json",
]
