from __future__ import annotations
from typing import AsyncIterator

from chatrelay.providers.base import single_fragment
from chatrelay.schemas.chat import CompletionOptions

MAX_SIMULATED_CHARS = 800


class SimulatedProvider:
    """Stand-in for model ids without a real provider: echoes the prompt reversed."""

    id = "simulated"
    configured = True

    def __init__(self, model: str) -> None:
        self.model = model

    def reply(self, prompt: str) -> str:
        return f'Simulated reply for model "{self.model}":\n\n{prompt[::-1][:MAX_SIMULATED_CHARS]}'

    async def stream_complete(self, prompt: str, options: CompletionOptions) -> AsyncIterator[str]:
        return single_fragment(self.reply(prompt))

    async def complete(self, prompt: str, options: CompletionOptions) -> str:
        return self.reply(prompt)
