from __future__ import annotations
import logging
from typing import Dict, List, Optional

import httpx

from chatrelay.config import Settings
from chatrelay.providers.base import ChatProvider
from chatrelay.providers.google import GoogleProvider
from chatrelay.providers.openai import OpenAIProvider
from chatrelay.providers.simulated import SimulatedProvider
from chatrelay.schemas.chat import ModelInfo

logger = logging.getLogger(__name__)


class ProviderRegistry:
    """Maps client-facing model ids to provider adapters."""

    def __init__(self, providers: Optional[Dict[str, ChatProvider]] = None) -> None:
        self.providers: Dict[str, ChatProvider] = dict(providers or {})

    @classmethod
    def from_settings(
        cls, settings: Settings, transport: Optional[httpx.AsyncBaseTransport] = None
    ) -> "ProviderRegistry":
        timeout = settings.provider_timeout_seconds
        registry = cls()
        registry.register("chatgpt", OpenAIProvider(settings.openai(), timeout=timeout, transport=transport))
        registry.register("googleai", GoogleProvider(settings.google(), timeout=timeout, transport=transport))
        for model, provider in registry.providers.items():
            if not provider.configured:
                logger.warning("Provider %s for model %s has no API key configured", provider.id, model)
        return registry

    def register(self, model: str, provider: ChatProvider) -> None:
        self.providers[model] = provider

    def get_provider(self, model: str) -> ChatProvider:
        provider = self.providers.get(model)
        if provider is None:
            logger.info("No provider registered for model=%s, using simulated reply", model)
            return SimulatedProvider(model)
        return provider

    def list_models(self) -> List[ModelInfo]:
        return [
            ModelInfo(id=model, provider=provider.id, configured=provider.configured)
            for model, provider in self.providers.items()
        ]
