from __future__ import annotations
import logging
from typing import Any, AsyncIterator, Dict

import httpx

from chatrelay.core.errors import ProviderError
from chatrelay.providers.base import HTTPProvider, single_fragment
from chatrelay.schemas.chat import CompletionOptions

logger = logging.getLogger(__name__)


class GoogleProvider(HTTPProvider):
    """Generative Language ``generateText``; non-streaming only."""

    id = "google"
    key_env = "GOOGLE_API_KEY"

    def _payload(self, prompt: str, options: CompletionOptions) -> Dict[str, Any]:
        return {
            "prompt": {"text": prompt},
            "temperature": options.temperature,
            "candidateCount": 1,
            "maxOutputTokens": options.max_tokens,
        }

    @staticmethod
    def _candidate_text(obj: Any) -> str:
        candidates = obj.get("candidates") if isinstance(obj, dict) else None
        if not isinstance(candidates, list) or not candidates or not isinstance(candidates[0], dict):
            return ""
        text = candidates[0].get("output")
        if text is None:
            text = candidates[0].get("content")
        return text if isinstance(text, str) else ""

    async def complete(self, prompt: str, options: CompletionOptions) -> str:
        api_key = self.require_api_key()
        url = f"{self.config.endpoint_url}/{self.config.model_name}:generateText"
        async with self.client() as client:
            try:
                resp = await client.post(
                    url,
                    params={"key": api_key},
                    headers={"Content-Type": "application/json"},
                    json=self._payload(prompt, options),
                )
            except httpx.HTTPError as e:
                raise ProviderError(self.id, None, str(e)) from e
            await self.raise_for_status(resp)
            try:
                obj = resp.json()
            except ValueError as e:
                raise ProviderError(self.id, resp.status_code, "response was not JSON") from e

        text = self._candidate_text(obj)
        logger.info("google completion model=%s chars=%d", self.config.model_name, len(text))
        return text

    async def stream_complete(self, prompt: str, options: CompletionOptions) -> AsyncIterator[str]:
        # Fetched up front so upstream errors surface before the response is committed
        text = await self.complete(prompt, options)
        return single_fragment(text)
