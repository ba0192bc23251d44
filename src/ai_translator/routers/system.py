"""System endpoints: health checks and models."""

from fastapi import APIRouter
from ..schemas.system import HealthResponse
from ..models.model_router import get_model_router
from ..config import get_settings

router = APIRouter(prefix="", tags=["System"])


@router.get("/health", response_model=HealthResponse)
async def health_check():
    """Check API status and available translation models."""
    model_router = get_model_router()

    return HealthResponse(
        status="healthy",
        version="1.0.0",
        default_model=get_settings().default_model,
        available_models=model_router.get_available_models()
    )


@router.get("/models", summary="Get All Supported Models")
async def get_models():
    """
    Get the models usable with the configured API keys.

    Example response:
    ```json
    {
        "claude-sonnet-4-5-20250929": {
            "provider": "Anthropic",
            "description": "Claude Sonnet 4.5 (2025-09-29)",
            "context_window": 200000
        }
    }
    ```
    """
    return get_model_router().get_available_models()
