"""
Tests for wire payload encoding and decoding.
"""

import json

import pytest

from duckmesh.core.errors import SerializationError
from duckmesh.core.models import Job, JobSpec, Provider, VerificationMode
from duckmesh.transport.serialization import (
    decode_job_spec,
    decode_result,
    encode_assignment,
    encode_json,
)

from conftest import make_job


class TestAssignmentPayload:
    """Tests for the POST /jobs body."""

    def test_fields(self, sample_spec):
        payload = encode_assignment(make_job(job_id=3), sample_spec)
        assert payload == {
            "jobId": 3,
            "spec": {
                "prompt": sample_spec.prompt,
                "maxTokens": 128,
                "temperature": 0.2,
                "modelParameters": {},
            },
            "timeout": 300,
            "client": "0xclient",
        }


class TestDecoding:
    """Tests for decode failures and defaults."""

    def test_spec_from_bytes(self):
        spec = decode_job_spec(b'{"prompt": "hi", "maxTokens": 4, "temperature": 0.5}')
        assert spec == JobSpec(prompt="hi", max_tokens=4, temperature=0.5)

    def test_spec_missing_prompt(self):
        with pytest.raises(SerializationError, match="Invalid job spec"):
            decode_job_spec({"maxTokens": 4})

    def test_invalid_json(self):
        with pytest.raises(SerializationError, match="Invalid JSON"):
            decode_result("{not json")

    def test_non_object(self):
        with pytest.raises(SerializationError, match="Expected JSON object"):
            decode_result("[1, 2, 3]")

    def test_result_metadata_defaults(self):
        result = decode_result({"output": "x"})
        assert result.metadata.tokens_used == 0
        assert result.signature == ""
        assert result.provider is None

    def test_encode_json_is_stable(self):
        assert encode_json({"b": 1, "a": 2}) == encode_json({"a": 2, "b": 1})


class TestModelWireFormat:
    """Tests for camelCase ledger records."""

    def test_job_wire_keys(self):
        data = make_job(mode=VerificationMode.ZKML).to_dict()
        assert data["verificationMode"] == 3
        assert data["specHash"] == "0" * 64
        assert Job.from_dict(json.loads(json.dumps(data))) == make_job(mode=VerificationMode.ZKML)

    def test_provider_endpoint_trailing_slash(self):
        provider = Provider.from_dict(
            {"address": "0xa", "endpoint": "http://node.example/", "stakedAmount": 5}
        )
        assert provider.endpoint == "http://node.example"
        assert provider.reputation == 0
        assert provider.is_active

    def test_spec_hash_ignores_key_order(self):
        a = JobSpec(prompt="p", max_tokens=1, temperature=0.1, model_parameters={"x": 1, "y": 2})
        b = JobSpec(prompt="p", max_tokens=1, temperature=0.1, model_parameters={"y": 2, "x": 1})
        assert a.content_hash() == b.content_hash()
        assert len(a.content_hash()) == 64
