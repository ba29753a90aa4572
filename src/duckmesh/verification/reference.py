"""
Reference Inference Client

Produces the reference output used by reference-similarity verification.
Marketplace model ids are mapped to Bedrock model identifiers and the
request body is shaped per model family:

- anthropic.*  prompt / max_tokens_to_sample / temperature -> completion
- ai21.*       prompt / maxTokens / temperature -> completions[0].data.text
- amazon.*     inputText / textGenerationConfig -> results[0].outputText

Requests go to POST {endpoint}/model/{modelId}/invoke with a bearer key.
"""

import logging
from typing import Any, Dict, Optional, Protocol

import httpx

from duckmesh.config import ReferenceConfig
from duckmesh.core.errors import ReferenceInferenceError
from duckmesh.core.models import JobSpec

logger = logging.getLogger(__name__)

MODEL_MAP: Dict[str, str] = {
    "claude-3-haiku": "anthropic.claude-3-haiku-20240307-v1:0",
    "claude-3-sonnet": "anthropic.claude-3-sonnet-20240229-v1:0",
    "claude-3-opus": "anthropic.claude-3-opus-20240229-v1:0",
    "claude-2.1": "anthropic.claude-v2:1",
    "claude-2": "anthropic.claude-v2",
    "claude-instant": "anthropic.claude-instant-v1",
    "titan-text-express": "amazon.titan-text-express-v1",
    "titan-text-lite": "amazon.titan-text-lite-v1",
    "j2-ultra": "ai21.j2-ultra-v1",
    "j2-mid": "ai21.j2-mid-v1",
}


class ReferenceInference(Protocol):
    """Anything that can produce a reference output for a spec."""

    async def infer(self, model_id: str, spec: JobSpec) -> str:
        ...


def resolve_model_id(model_id: str, overrides: Optional[Dict[str, str]] = None) -> str:
    """Map a marketplace model id to a Bedrock identifier (identity if unknown)."""
    if overrides and model_id in overrides:
        return overrides[model_id]
    return MODEL_MAP.get(model_id, model_id)


def build_request_body(
    bedrock_model_id: str,
    spec: JobSpec,
    default_max_tokens: int = 1000,
    default_temperature: float = 0.7,
) -> Dict[str, Any]:
    """
    Shape the invoke body for a model family.

    Zero max_tokens and temperature fall back to the defaults.

    Raises:
        ReferenceInferenceError: For an unsupported model family
    """
    max_tokens = spec.max_tokens or default_max_tokens
    temperature = spec.temperature or default_temperature

    if bedrock_model_id.startswith("anthropic."):
        return {
            "prompt": f"\n\nHuman: {spec.prompt}\n\nAssistant:",
            "max_tokens_to_sample": max_tokens,
            "temperature": temperature,
            **spec.model_parameters,
        }
    if bedrock_model_id.startswith("ai21."):
        return {
            "prompt": spec.prompt,
            "maxTokens": max_tokens,
            "temperature": temperature,
            **spec.model_parameters,
        }
    if bedrock_model_id.startswith("amazon."):
        return {
            "inputText": spec.prompt,
            "textGenerationConfig": {
                "maxTokenCount": max_tokens,
                "temperature": temperature,
                **spec.model_parameters,
            },
        }
    raise ReferenceInferenceError(f"Unsupported model type: {bedrock_model_id}")


def extract_completion(bedrock_model_id: str, response_body: Dict[str, Any]) -> str:
    """Pull the completion text out of a family-specific response."""
    try:
        if bedrock_model_id.startswith("anthropic."):
            return response_body["completion"]
        if bedrock_model_id.startswith("ai21."):
            return response_body["completions"][0]["data"]["text"]
        if bedrock_model_id.startswith("amazon."):
            return response_body["results"][0]["outputText"]
    except (KeyError, IndexError, TypeError) as e:
        raise ReferenceInferenceError(
            f"Malformed response for {bedrock_model_id}: {e}"
        ) from e
    raise ReferenceInferenceError("Unable to extract completion from response")


class ReferenceInferenceClient:
    """HTTP client for the reference inference API."""

    def __init__(
        self,
        config: Optional[ReferenceConfig] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        """
        Initialize the client.

        Args:
            config: Endpoint, key and defaults (uses defaults if None)
            client: Shared AsyncClient; one is created lazily if None
        """
        self.config = config or ReferenceConfig()
        self._client = client
        self._owns_client = client is None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.config.timeout_s)
        return self._client

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    def _headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json", "Accept": "application/json"}
        if self.config.api_key:
            headers["Authorization"] = f"Bearer {self.config.api_key}"
        return headers

    async def infer(self, model_id: str, spec: JobSpec) -> str:
        """
        Run the reference inference.

        Raises:
            ReferenceInferenceError: On unsupported models, HTTP errors or
                unparseable responses
        """
        bedrock_model_id = resolve_model_id(model_id, self.config.model_map)
        body = build_request_body(
            bedrock_model_id,
            spec,
            default_max_tokens=self.config.default_max_tokens,
            default_temperature=self.config.default_temperature,
        )
        url = f"{self.config.endpoint.rstrip('/')}/model/{bedrock_model_id}/invoke"

        try:
            response = await self._get_client().post(
                url,
                json=body,
                headers=self._headers(),
                timeout=self.config.timeout_s,
            )
            response.raise_for_status()
            payload = response.json()
        except httpx.HTTPError as e:
            logger.error(f"Reference inference failed for {bedrock_model_id}: {e}")
            raise ReferenceInferenceError(str(e)) from e
        except ValueError as e:
            raise ReferenceInferenceError(f"Invalid JSON from reference API: {e}") from e

        return extract_completion(bedrock_model_id, payload)
