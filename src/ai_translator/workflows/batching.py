"""Splitting jobs into batches and running one batch end to end."""

import logging
import time
from typing import Any, Dict, List, Optional

from ..config import get_settings
from ..exceptions import TransportError, VerificationError
from ..models.model_router import get_model_router
from ..utils.helpers import batch_label, chunk_items, missing_keys_of, sanitize_model_params
from .orchestrator import Callback, TranslationOrchestrator
from .translation_state import BatchRequest, BatchResult, TranslatedString, TranslationJobRequest

logger = logging.getLogger("ai_translator.workflows.batching")


def resolve_model_name(request: TranslationJobRequest) -> str:
    return request.model_name or get_settings().default_model


def effective_batch_size(request: TranslationJobRequest) -> int:
    settings = get_settings()
    return min(request.batch_size or settings.default_batch_size, settings.max_batch_size)


def plan_batches(request: TranslationJobRequest) -> List[BatchRequest]:
    """
    Split every file of the job into batches of at most the effective batch size.

    A file that fits in one batch is identified by its own name; otherwise its
    batches are numbered ``name#1``, ``name#2``...
    """
    size = effective_batch_size(request)
    batches = []
    for file_name, items in request.files.items():
        chunks = list(chunk_items(items, size))
        for index, chunk in enumerate(chunks):
            batches.append(BatchRequest(
                batch_id=batch_label(file_name, index, len(chunks)),
                source_locale=request.source_locale,
                target_locale=request.target_locale,
                items=chunk,
                additional_rules=request.additional_rules,
                translation_context=request.translation_context,
            ))
    return batches


def file_of(batch_id: str) -> str:
    return batch_id.split("#", 1)[0]


async def translate_batch(
    batch: BatchRequest,
    model_name: str,
    model_params: Optional[Dict[str, Any]] = None,
    max_attempts: Optional[int] = None,
    on_started: Callback = None,
    on_completed: Callback = None,
    on_attempt_failed: Callback = None,
    on_token_usage: Callback = None,
) -> BatchResult:
    """
    Translate one batch with its own orchestrator and report the outcome.

    Verification and transport failures are captured in the returned
    ``BatchResult``; configuration errors (unknown model, missing API key)
    propagate as ``ValueError``.
    """
    start_time = time.time()
    transport = get_model_router().get_transport(model_name, **sanitize_model_params(model_params or {}))
    orchestrator = TranslationOrchestrator(
        transport,
        max_attempts=max_attempts,
        on_started=on_started,
        on_completed=on_completed,
        on_attempt_failed=on_attempt_failed,
        on_token_usage=on_token_usage,
    )

    file_name = file_of(batch.batch_id)
    try:
        records = await orchestrator.translate(batch)
    except (VerificationError, TransportError) as e:
        logger.error("Batch '%s' failed: %s", batch.batch_id, e)
        return BatchResult(
            batch_id=batch.batch_id,
            processing_time=time.time() - start_time,
            model_used=model_name,
            attempts=orchestrator.attempts,
            usage=orchestrator.token_usage,
            success=False,
            error_message=str(e),
            missing_keys=missing_keys_of(e),
        )

    return BatchResult(
        batch_id=batch.batch_id,
        results=[
            TranslatedString(file=file_name, key=r.key, translated_text=r.translated_text, comment=r.comment)
            for r in records
        ],
        processing_time=time.time() - start_time,
        model_used=model_name,
        attempts=orchestrator.attempts,
        usage=orchestrator.token_usage,
    )
