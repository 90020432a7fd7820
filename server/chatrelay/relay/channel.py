from __future__ import annotations
import asyncio
import logging
from typing import AsyncIterator, Union

logger = logging.getLogger(__name__)

_END = object()


class _Failure:
    def __init__(self, exc: Exception) -> None:
        self.exc = exc


async def _aclose(iterator: AsyncIterator[str]) -> None:
    close = getattr(iterator, "aclose", None)
    if close is not None:
        await close()


async def buffered(fragments: AsyncIterator[str], maxsize: int = 64) -> AsyncIterator[str]:
    """Pump ``fragments`` through a bounded queue filled by a producer task.

    The producer blocks when the consumer falls behind. Closing the returned
    iterator (client went away) cancels the producer, which releases the upstream
    response. Producer errors are re-raised on the consumer side in order.
    """
    queue: "asyncio.Queue[Union[str, _Failure, object]]" = asyncio.Queue(maxsize=maxsize)

    async def produce() -> None:
        try:
            async for fragment in fragments:
                await queue.put(fragment)
            await queue.put(_END)
        except Exception as exc:
            await queue.put(_Failure(exc))
        finally:
            await _aclose(fragments)

    producer = asyncio.create_task(produce())
    try:
        while True:
            item = await queue.get()
            if item is _END:
                return
            if isinstance(item, _Failure):
                raise item.exc
            yield item  # type: ignore[misc]
    finally:
        if not producer.done():
            logger.debug("Consumer closed early, cancelling upstream reader")
            producer.cancel()
        await asyncio.wait({producer})
