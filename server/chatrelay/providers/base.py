from __future__ import annotations
from typing import AsyncIterator, Optional, Protocol

import httpx

from chatrelay.config import ProviderConfig
from chatrelay.core.errors import ConfigurationError, ProviderError
from chatrelay.schemas.chat import CompletionOptions

NO_BODY = "<no body>"


class ChatProvider(Protocol):
    id: str

    @property
    def configured(self) -> bool:
        ...

    async def stream_complete(self, prompt: str, options: CompletionOptions) -> AsyncIterator[str]:
        """Open the upstream call and return an iterator of text fragments.

        Errors detected before any text is available (credentials, upstream
        status) are raised from this coroutine itself.
        """
        ...

    async def complete(self, prompt: str, options: CompletionOptions) -> str:
        ...


class HTTPProvider:
    """Shared plumbing for providers reached over HTTP with httpx."""

    id = "http"
    key_env = "API_KEY"

    def __init__(
        self,
        config: ProviderConfig,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.config = config
        self.timeout = timeout
        self.transport = transport

    @property
    def configured(self) -> bool:
        return bool(self.config.api_key)

    def require_api_key(self) -> str:
        if not self.config.api_key:
            raise ConfigurationError(f"Missing {self.key_env}")
        return self.config.api_key

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=httpx.Timeout(self.timeout),
            transport=self.transport,
            trust_env=True,
        )

    async def raise_for_status(self, resp: httpx.Response) -> None:
        if resp.is_success:
            return
        try:
            body = (await resp.aread()).decode("utf-8", errors="replace")
        except httpx.HTTPError:
            body = NO_BODY
        raise ProviderError(self.id, resp.status_code, body or NO_BODY)


async def single_fragment(text: str) -> AsyncIterator[str]:
    """Fragment stream for providers that only return a finished answer."""
    if text:
        yield text
