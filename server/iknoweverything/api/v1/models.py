from fastapi import APIRouter, Depends
from typing import Dict, Any

from iknoweverything.api.deps import get_provider
from iknoweverything.providers.base import ChatProvider

router = APIRouter()


@router.get("/models")
async def get_models(provider: ChatProvider = Depends(get_provider)) -> Dict[str, Any]:
    """Models available to the relay, grouped by provider."""
    models = await provider.list_models()
    return {
        "providers": {
            provider.id: {
                "name": provider.id.capitalize(),
                "models": [m.model_dump() for m in models],
            }
        }
    }
