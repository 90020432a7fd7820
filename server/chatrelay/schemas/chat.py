from __future__ import annotations
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field


class ChatRequest(BaseModel):
    # Presence is checked by the router so missing fields map to a 400, not a 422
    model: Optional[str] = None
    prompt: Optional[str] = None
    temperature: Optional[float] = Field(default=None, allow_inf_nan=False)

    model_config = ConfigDict(extra="ignore")


class CompletionOptions(BaseModel):
    temperature: float = 0.2
    max_tokens: int = Field(default=800, ge=1)


class ChatSyncResponse(BaseModel):
    text: str


class ErrorResponse(BaseModel):
    error: str


class ModelInfo(BaseModel):
    id: str
    provider: str
    configured: bool = True
