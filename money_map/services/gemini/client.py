import logging
from typing import Any, Dict, Optional, Sequence

import httpx

from money_map.core.config import DEFAULT_GEMINI_MODELS, ApiSettings
from money_map.services.gemini.schemas import GenerateContentRequest, GenerationResult

logger = logging.getLogger(__name__)


def _first_text(data: Dict[str, Any]) -> Optional[str]:
    """Return ``candidates[0].content.parts[0].text`` or ``None``."""

    candidates = data.get("candidates") or []
    if not candidates or not isinstance(candidates[0], dict):
        return None
    parts = (candidates[0].get("content") or {}).get("parts") or []
    if not parts or not isinstance(parts[0], dict):
        return None
    text = parts[0].get("text")
    if not isinstance(text, str) or not text.strip():
        return None
    return text.strip()


def _error_message(response: httpx.Response) -> str:
    try:
        data = response.json()
    except ValueError:
        return response.text.strip() or f"HTTP {response.status_code}"
    error = data.get("error") if isinstance(data, dict) else None
    if isinstance(error, dict) and error.get("message"):
        return str(error["message"])
    return f"HTTP {response.status_code}"


class GeminiClient:
    """Async wrapper around the Gemini ``generateContent`` REST endpoint."""

    def __init__(
        self,
        api_key: Optional[str],
        *,
        models: Sequence[str] = DEFAULT_GEMINI_MODELS,
        base_url: str = "https://generativelanguage.googleapis.com/v1",
        timeout_s: float = 30.0,
    ) -> None:
        self.api_key = api_key
        self.models = tuple(models)
        self._client = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            headers={"Content-Type": "application/json"},
            timeout=httpx.Timeout(timeout_s, connect=10.0),
        )

    @property
    def enabled(self) -> bool:
        return bool(self.api_key)

    async def aclose(self) -> None:
        """Close the underlying HTTPX client."""

        await self._client.aclose()

    async def __aenter__(self) -> "GeminiClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self._client.aclose()

    async def generate(self, model_id: str, prompt: str) -> GenerationResult:
        """Send ``prompt`` to ``model_id``.

        HTTP error statuses are returned in the result rather than raised, so
        callers can move on to the next model. Transport failures (timeouts,
        DNS, refused connections) still raise ``httpx.HTTPError``.
        """
        body = GenerateContentRequest.from_prompt(prompt)
        response = await self._client.post(
            f"/models/{model_id}:generateContent",
            params={"key": self.api_key},
            json=body.model_dump(),
        )

        if response.status_code != 200:
            return GenerationResult(
                model=model_id,
                status_code=response.status_code,
                error_message=_error_message(response),
            )

        try:
            data = response.json()
        except ValueError:
            return GenerationResult(
                model=model_id,
                status_code=response.status_code,
                error_message="Response body is not JSON",
            )

        text = _first_text(data) if isinstance(data, dict) else None
        return GenerationResult(
            model=model_id,
            status_code=response.status_code,
            text=text,
            error_message=None if text else "No content in response",
        )


def create_gemini_client(settings: ApiSettings) -> GeminiClient:
    """Instantiate the Gemini client using project settings."""

    return GeminiClient(settings.ai_api_key, models=settings.gemini_models)
