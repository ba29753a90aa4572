"""
Tests for the reference inference client.
"""

import json

import httpx
import pytest

from duckmesh.config import ReferenceConfig
from duckmesh.core.errors import ReferenceInferenceError
from duckmesh.core.models import JobSpec
from duckmesh.verification.reference import (
    ReferenceInferenceClient,
    build_request_body,
    extract_completion,
    resolve_model_id,
)


class TestModelMapping:
    """Tests for marketplace -> reference model ids."""

    def test_known_model(self):
        assert resolve_model_id("j2-mid") == "ai21.j2-mid-v1"
        assert resolve_model_id("claude-2") == "anthropic.claude-v2"

    def test_unknown_model_passes_through(self):
        assert resolve_model_id("amazon.titan-custom") == "amazon.titan-custom"

    def test_override_wins(self):
        overrides = {"j2-mid": "ai21.j2-mid-v2"}
        assert resolve_model_id("j2-mid", overrides) == "ai21.j2-mid-v2"


class TestRequestBody:
    """Tests for per-family body shaping."""

    def test_anthropic(self):
        spec = JobSpec(prompt="Hi", max_tokens=50, temperature=0.3, model_parameters={"top_p": 0.9})
        body = build_request_body("anthropic.claude-v2", spec)
        assert body == {
            "prompt": "\n\nHuman: Hi\n\nAssistant:",
            "max_tokens_to_sample": 50,
            "temperature": 0.3,
            "top_p": 0.9,
        }

    def test_ai21(self):
        spec = JobSpec(prompt="Hi", max_tokens=50, temperature=0.3)
        body = build_request_body("ai21.j2-mid-v1", spec)
        assert body == {"prompt": "Hi", "maxTokens": 50, "temperature": 0.3}

    def test_amazon(self):
        spec = JobSpec(prompt="Hi", max_tokens=50, temperature=0.3)
        body = build_request_body("amazon.titan-text-lite-v1", spec)
        assert body == {
            "inputText": "Hi",
            "textGenerationConfig": {"maxTokenCount": 50, "temperature": 0.3},
        }

    def test_zero_values_use_defaults(self):
        spec = JobSpec(prompt="Hi", max_tokens=0, temperature=0.0)
        body = build_request_body("ai21.j2-mid-v1", spec)
        assert body["maxTokens"] == 1000
        assert body["temperature"] == 0.7

    def test_unsupported_family(self):
        spec = JobSpec(prompt="Hi", max_tokens=5, temperature=0.1)
        with pytest.raises(ReferenceInferenceError, match="Unsupported model type"):
            build_request_body("meta.llama2", spec)

    def test_extract_completion(self):
        assert extract_completion("anthropic.claude-v2", {"completion": "x"}) == "x"
        assert extract_completion(
            "amazon.titan-text-lite-v1", {"results": [{"outputText": "y"}]}
        ) == "y"
        with pytest.raises(ReferenceInferenceError):
            extract_completion("ai21.j2-mid-v1", {"completions": []})


class TestReferenceInferenceClient:
    """Tests for the HTTP call."""

    @pytest.mark.asyncio
    async def test_invoke(self, sample_spec):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json={"completions": [{"data": {"text": "Denmark"}}]})

        http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        config = ReferenceConfig(endpoint="https://reference.example/", api_key="k")
        client = ReferenceInferenceClient(config, client=http)

        output = await client.infer("j2-mid", sample_spec)

        assert output == "Denmark"
        request = seen[0]
        assert str(request.url) == "https://reference.example/model/ai21.j2-mid-v1/invoke"
        assert request.headers["Authorization"] == "Bearer k"
        assert json.loads(request.content)["prompt"] == sample_spec.prompt

    @pytest.mark.asyncio
    async def test_http_error(self, sample_spec):
        http = httpx.AsyncClient(transport=httpx.MockTransport(lambda r: httpx.Response(500)))
        client = ReferenceInferenceClient(ReferenceConfig(), client=http)

        with pytest.raises(ReferenceInferenceError):
            await client.infer("j2-mid", sample_spec)

    @pytest.mark.asyncio
    async def test_invalid_json(self, sample_spec):
        http = httpx.AsyncClient(
            transport=httpx.MockTransport(lambda r: httpx.Response(200, content=b"<html>"))
        )
        client = ReferenceInferenceClient(ReferenceConfig(), client=http)

        with pytest.raises(ReferenceInferenceError, match="Invalid JSON"):
            await client.infer("j2-mid", sample_spec)
