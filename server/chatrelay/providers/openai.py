from __future__ import annotations
import logging
from typing import Any, AsyncIterator, Dict

import httpx

from chatrelay.core.errors import ProviderError
from chatrelay.providers.base import HTTPProvider
from chatrelay.relay.sse import StreamState, relay_text
from chatrelay.schemas.chat import CompletionOptions

logger = logging.getLogger(__name__)


class OpenAIProvider(HTTPProvider):
    """Chat completions API; streams ``choices[0].delta.content`` events."""

    id = "openai"
    key_env = "OPENAI_API_KEY"

    def _payload(self, prompt: str, options: CompletionOptions, stream: bool) -> Dict[str, Any]:
        return {
            "model": self.config.model_name,
            "messages": [{"role": "user", "content": prompt}],
            "temperature": options.temperature,
            "max_tokens": options.max_tokens,
            "stream": stream,
        }

    def _headers(self, api_key: str) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {api_key}",
            "Content-Type": "application/json",
        }

    @property
    def url(self) -> str:
        return f"{self.config.endpoint_url}/chat/completions"

    async def stream_complete(self, prompt: str, options: CompletionOptions) -> AsyncIterator[str]:
        api_key = self.require_api_key()
        client = self.client()
        request = client.build_request(
            "POST",
            self.url,
            headers={**self._headers(api_key), "Accept": "text/event-stream"},
            json=self._payload(prompt, options, stream=True),
        )
        try:
            resp = await client.send(request, stream=True)
        except httpx.HTTPError as e:
            await client.aclose()
            raise ProviderError(self.id, None, str(e)) from e

        try:
            await self.raise_for_status(resp)
        except ProviderError:
            await resp.aclose()
            await client.aclose()
            raise

        logger.info("openai stream opened model=%s status=%d", self.config.model_name, resp.status_code)
        return self._relay(client, resp)

    async def _relay(self, client: httpx.AsyncClient, resp: httpx.Response) -> AsyncIterator[str]:
        state = StreamState()
        count = 0
        try:
            async for text in relay_text(resp.aiter_bytes(), state):
                count += 1
                yield text
        except httpx.HTTPError as e:
            raise ProviderError(self.id, None, f"stream interrupted: {e}") from e
        finally:
            await resp.aclose()
            await client.aclose()
            logger.info("openai stream closed fragments=%d finished=%s", count, state.finished)

    async def complete(self, prompt: str, options: CompletionOptions) -> str:
        api_key = self.require_api_key()
        async with self.client() as client:
            try:
                resp = await client.post(
                    self.url,
                    headers=self._headers(api_key),
                    json=self._payload(prompt, options, stream=False),
                )
            except httpx.HTTPError as e:
                raise ProviderError(self.id, None, str(e)) from e
            await self.raise_for_status(resp)
            try:
                obj = resp.json()
            except ValueError as e:
                raise ProviderError(self.id, resp.status_code, "response was not JSON") from e

        choices = obj.get("choices") if isinstance(obj, dict) else None
        if not isinstance(choices, list) or not choices or not isinstance(choices[0], dict):
            return ""
        message = choices[0].get("message") or {}
        content = message.get("content") if isinstance(message, dict) else None
        return content if isinstance(content, str) else ""
