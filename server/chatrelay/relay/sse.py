"""Incremental decoding of provider event streams into text fragments.

Providers stream ``text/event-stream`` bodies made of frames separated by a blank
line. Inside a frame, ``data:`` lines carry either a JSON payload or the ``[DONE]``
sentinel. Network reads split frames, JSON payloads and even UTF-8 characters at
arbitrary positions, so everything not yet delimited stays in a per-stream buffer.
"""
from __future__ import annotations
import codecs
import json
import logging
import re
from dataclasses import dataclass, field
from typing import Any, AsyncIterable, AsyncIterator, Iterator, List, Optional

from chatrelay.core.errors import FrameDecodeError

logger = logging.getLogger(__name__)

DATA_PREFIX = "data:"
DONE_SENTINEL = "[DONE]"
FRAME_DELIMITER = re.compile(r"\r?\n\r?\n")
LINE_BREAK = re.compile(r"\r?\n")


def _utf8_decoder() -> codecs.IncrementalDecoder:
    return codecs.getincrementaldecoder("utf-8")(errors="replace")


@dataclass
class StreamState:
    # Undelimited text, kept as pieces so long frames are not re-joined per read
    pending: List[str] = field(default_factory=list)
    finished: bool = False
    decoder: codecs.IncrementalDecoder = field(default_factory=_utf8_decoder)

    @property
    def buffer(self) -> str:
        return "".join(self.pending)

    def tail(self, size: int) -> str:
        out = ""
        for piece in reversed(self.pending):
            out = piece + out
            if len(out) >= size:
                break
        return out[-size:] if size else ""


def frame_payloads(frame: str) -> Iterator[str]:
    for line in LINE_BREAK.split(frame):
        if line.startswith(DATA_PREFIX):
            yield line[len(DATA_PREFIX):].strip()


class FrameDecoder:
    """Turns raw body reads into complete ``data:`` payloads, in order."""

    def __init__(self, state: Optional[StreamState] = None) -> None:
        self.state = state if state is not None else StreamState()

    @property
    def finished(self) -> bool:
        return self.state.finished

    def feed(self, chunk: bytes) -> List[str]:
        """Consume one read and return the payloads of every frame it completed.

        Once the sentinel is seen the state is marked finished, the rest of the
        buffer is discarded and later reads are ignored. The sentinel itself is
        not returned.
        """
        state = self.state
        if state.finished:
            return []
        text = state.decoder.decode(chunk)
        if not text:
            return []
        # A delimiter is at most 4 characters, so 3 from earlier reads are enough
        boundary = state.tail(3) + text
        state.pending.append(text)
        if FRAME_DELIMITER.search(boundary) is None:
            return []

        frames = FRAME_DELIMITER.split(state.buffer)
        rest = frames.pop()
        state.pending = [rest] if rest else []

        payloads: List[str] = []
        for frame in frames:
            for payload in frame_payloads(frame):
                if payload == DONE_SENTINEL:
                    state.finished = True
                    state.pending = []
                    return payloads
                payloads.append(payload)
        return payloads

    def close(self) -> None:
        """Upstream ended; an undelimited trailing segment is dropped."""
        state = self.state
        if not state.finished:
            rest = state.buffer + state.decoder.decode(b"", final=True)
            if rest.strip():
                logger.debug("Dropping %d undelimited characters at end of stream", len(rest))
        state.pending = []
        state.finished = True


def _first_choice(obj: Any) -> Optional[dict]:
    if not isinstance(obj, dict):
        return None
    choices = obj.get("choices")
    if not isinstance(choices, list) or not choices:
        return None
    choice = choices[0]
    return choice if isinstance(choice, dict) else None


def extract_text(payload: str) -> Optional[str]:
    """Text carried by one payload: ``delta.content``, else ``message.content``."""
    try:
        obj = json.loads(payload)
    except (ValueError, RecursionError) as exc:
        raise FrameDecodeError(payload) from exc

    choice = _first_choice(obj)
    if choice is None:
        return None
    text = None
    delta = choice.get("delta")
    if isinstance(delta, dict):
        text = delta.get("content")
    if text is None:
        message = choice.get("message")
        if isinstance(message, dict):
            text = message.get("content")
    if isinstance(text, str) and text:
        return text
    return None


async def relay_text(
    chunks: AsyncIterable[bytes], state: Optional[StreamState] = None
) -> AsyncIterator[str]:
    """Yield text fragments from a raw event-stream body as soon as each decodes.

    Stops at the ``[DONE]`` sentinel without reading further; an upstream that just
    closes is treated as an implicit end.
    """
    decoder = FrameDecoder(state)
    async for chunk in chunks:
        for payload in decoder.feed(chunk):
            try:
                text = extract_text(payload)
            except FrameDecodeError as exc:
                logger.debug("Skipping frame: %s", exc)
                continue
            if text:
                yield text
        if decoder.finished:
            logger.debug("Sentinel received, stopped reading upstream")
            return
    decoder.close()
