from fastapi import APIRouter, Depends
from typing import Dict, Any

from chatrelay.api.chat import get_registry
from chatrelay.providers.router import ProviderRegistry

router = APIRouter()


@router.get("/models")
async def get_models(registry: ProviderRegistry = Depends(get_registry)) -> Dict[str, Any]:
    """Model ids with a dedicated provider. Any other id gets a simulated reply."""
    return {"models": [m.model_dump() for m in registry.list_models()]}
