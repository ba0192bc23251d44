"""Translation endpoints."""

import logging

from fastapi import APIRouter, HTTPException, Depends
from sse_starlette.sse import EventSourceResponse

from graph import run_translation_workflow

from ..schemas.translation import TranslationAPIRequest, TranslationAPIResponse
from ..workflows.translation_state import TranslationJobRequest
from ..workflows.streaming import stream_translation_progress
from ..models.model_router import get_model_router
from ..config import get_settings
from ..api.dependencies import router_limiter

logger = logging.getLogger("ai_translator.routers.translation")

router = APIRouter(prefix="/translate", tags=["Translation"])
settings = get_settings()


def _validated_job(request: TranslationAPIRequest) -> TranslationJobRequest:
    model_name = request.model_name or settings.default_model
    model_router = get_model_router()
    if not model_router.validate_model_availability(model_name):
        available_models = list(model_router.get_available_models().keys())
        raise HTTPException(
            status_code=400,
            detail=f"Model '{model_name}' is not available. Available models: {available_models}"
        )

    if request.batch_size and request.batch_size > settings.max_batch_size:
        raise HTTPException(
            status_code=400,
            detail=f"Batch size {request.batch_size} exceeds maximum allowed {settings.max_batch_size}"
        )

    return request.to_job()


@router.post(
    "",
    response_model=TranslationAPIResponse,
    dependencies=[Depends(router_limiter)],
    responses={
        200: {
            "description": "Translation finished; failed batches are listed in `errors`.",
            "content": {
                "application/json": {
                    "example": {
                        "success": True,
                        "results": [
                            {
                                "file": "auth.php",
                                "key": "failed",
                                "translated_text": "Ces identifiants ne correspondent pas à nos enregistrements.",
                                "comment": None
                            }
                        ],
                        "metadata": {
                            "total_batches": 1,
                            "successful_batches": 1,
                            "failed_batches": 0,
                            "processing_time_seconds": 4.2
                        },
                        "errors": []
                    }
                }
            }
        },
        400: {"description": "Bad Request, e.g., unavailable model or batch size too large."},
        500: {"description": "Internal Server Error."}
    }
)
async def translate_strings(request: TranslationAPIRequest):
    """
    Translate localization strings, batch by batch.

    Each batch is retried as a whole until every key is translated or the
    attempt limit is reached.
    """
    job = _validated_job(request)
    try:
        final_state = await run_translation_workflow(job)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.exception("Translation workflow failed")
        raise HTTPException(
            status_code=500,
            detail=f"Internal server error: {str(e)}"
        )

    return TranslationAPIResponse(
        success=final_state["workflow_status"] == "completed",
        results=final_state["final_results"],
        metadata=final_state["metadata"],
        errors=final_state["errors"]
    )


@router.post(
    "/stream",
    dependencies=[Depends(router_limiter)],
    responses={
        200: {
            "description": """
A stream of Server-Sent Events (SSE) for the translation process.

**Event Type: `item_completed`** (sent as soon as a key is parsed from the model output)
```json
{
  "timestamp": "...",
  "type": "item_completed",
  "batch_id": "auth.php",
  "file": "auth.php",
  "key": "failed",
  "translated_text": "...",
  "ordinal": 1,
  "attempt": 1
}
```

**Event Type: `completion`** (the final event)
```json
{
  "timestamp": "...",
  "type": "completion",
  "status": "completed",
  "results": [...]
}
```
            """,
            "content": {
                "text/event-stream": {
                    "schema": {
                        "type": "string"
                    }
                }
            }
        }
    }
)
async def stream_translate_strings(request: TranslationAPIRequest):
    """Stream translation progress item by item (RECOMMENDED)."""
    job = _validated_job(request)
    return EventSourceResponse(
        stream_translation_progress(job),
        media_type="text/event-stream"
    )
