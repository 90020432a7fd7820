from fastapi import APIRouter, Depends, Request
import logging
from typing import AsyncIterator, Tuple
from fastapi.responses import StreamingResponse

from chatrelay.core.errors import ChatRelayError, ValidationError
from chatrelay.providers.router import ProviderRegistry
from chatrelay.relay.channel import buffered
from chatrelay.schemas.chat import ChatRequest, ChatSyncResponse, CompletionOptions

router = APIRouter()
logger = logging.getLogger(__name__)


def get_registry(request: Request) -> ProviderRegistry:
    return request.app.state.registry


def _validate(request: ChatRequest) -> Tuple[str, str, CompletionOptions]:
    if not request.model or not request.prompt:
        raise ValidationError("model and prompt are required")
    options = CompletionOptions()
    if request.temperature is not None:
        options = CompletionOptions(temperature=request.temperature)
    return request.model, request.prompt, options


async def _to_client(model: str, fragments: AsyncIterator[str]) -> AsyncIterator[str]:
    # Headers are committed by now, so failures can only end the body
    sent = 0
    try:
        async for fragment in buffered(fragments):
            sent += 1
            yield fragment
    except ChatRelayError as e:
        logger.error("/chat stream failed model=%s after %d fragments: %s", model, sent, e.message)
        yield f"\n[error] {e.public_message()}"
    except Exception:
        logger.exception("/chat stream aborted model=%s after %d fragments", model, sent)
    else:
        logger.info("/chat done model=%s fragments=%d", model, sent)


@router.post("/chat")
async def chat(request: ChatRequest, registry: ProviderRegistry = Depends(get_registry)):
    """Stream the answer as plain text chunks while the provider produces it."""
    model, prompt, options = _validate(request)
    provider = registry.get_provider(model)
    logger.info("/chat start model=%s provider=%s", model, provider.id)
    try:
        fragments = await provider.stream_complete(prompt, options)
    except ChatRelayError:
        raise
    except Exception as e:
        logger.exception("/chat error model=%s: %s", model, e)
        raise ChatRelayError(str(e)) from e

    return StreamingResponse(
        _to_client(model, fragments),
        media_type="text/plain",
        headers={"Cache-Control": "no-cache"},
    )


@router.post("/chat-sync", response_model=ChatSyncResponse)
async def chat_sync(request: ChatRequest, registry: ProviderRegistry = Depends(get_registry)):
    """Return the whole answer as one JSON value."""
    model, prompt, options = _validate(request)
    provider = registry.get_provider(model)
    logger.info("/chat-sync start model=%s provider=%s", model, provider.id)
    try:
        text = await provider.complete(prompt, options)
    except ChatRelayError:
        raise
    except Exception as e:
        logger.exception("/chat-sync error model=%s: %s", model, e)
        raise ChatRelayError(str(e)) from e
    return ChatSyncResponse(text=text)
