from __future__ import annotations
from typing import Optional

# Client-visible error messages are trimmed to this many characters
MAX_ERROR_MESSAGE = 500


class ChatRelayError(Exception):
    """Base error for a single chat request. Never shared across requests."""

    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def public_message(self) -> str:
        text = self.message.strip()
        if len(text) > MAX_ERROR_MESSAGE:
            text = text[: MAX_ERROR_MESSAGE - 3] + "..."
        return text


class ValidationError(ChatRelayError):
    status_code = 400


class ConfigurationError(ChatRelayError):
    status_code = 500


class ProviderError(ChatRelayError):
    """Upstream provider answered with a non-success status or the transport failed."""

    status_code = 502

    def __init__(self, provider: str, upstream_status: Optional[int], body: str = "") -> None:
        if upstream_status is None:
            message = f"[{provider}] request failed: {body}"
        else:
            message = f"[{provider}] error {upstream_status}: {body}"
        super().__init__(message)
        self.provider = provider
        self.upstream_status = upstream_status
        self.body = body


class FrameDecodeError(ChatRelayError):
    """A single event payload could not be decoded. Handled inside the relay."""

    def __init__(self, payload: str) -> None:
        super().__init__(f"undecodable event payload: {payload[:80]!r}")
        self.payload = payload
