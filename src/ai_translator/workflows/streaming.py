"""Streaming workflow with real-time progress updates via Server-Sent Events."""

import asyncio
import json
import logging
import time
from typing import AsyncGenerator, Dict, Any, Optional
from datetime import datetime

from sse_starlette.sse import ServerSentEvent

from ..config import get_settings
from ..models.records import TokenUsage, TranslationRecord
from ..utils.helpers import format_error_response
from .batching import effective_batch_size, file_of, plan_batches, resolve_model_name, translate_batch
from .translation_state import BatchRequest, BatchResult, TranslationJobRequest, VerificationOutcome

logger = logging.getLogger("ai_translator.workflows.streaming")


class ProgressEvent:
    """Progress event for SSE streaming."""

    def __init__(self, event_type: str, data: Dict[str, Any]):
        self.event_type = event_type
        self.data = data
        self.timestamp = datetime.now().isoformat()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "timestamp": self.timestamp,
            "type": self.event_type,
            **self.data
        }

    def to_server_sent_event(self) -> ServerSentEvent:
        """Convert to a named Server-Sent Event with a JSON payload."""
        return ServerSentEvent(data=json.dumps(self.to_dict(), ensure_ascii=False), event=self.event_type)


class _BatchReporter:
    """Turns orchestrator callbacks for one batch into queued progress events."""

    def __init__(self, queue: "asyncio.Queue[Optional[ProgressEvent]]", batch: BatchRequest):
        self.queue = queue
        self.batch = batch
        self.file = file_of(batch.batch_id)
        self.attempt = 1

    async def on_started(self, key: str) -> None:
        await self.queue.put(ProgressEvent("item_started", {
            "batch_id": self.batch.batch_id,
            "file": self.file,
            "key": key,
            "attempt": self.attempt,
        }))

    async def on_completed(self, record: TranslationRecord, ordinal: int) -> None:
        await self.queue.put(ProgressEvent("item_completed", {
            "batch_id": self.batch.batch_id,
            "file": self.file,
            "key": record.key,
            "translated_text": record.translated_text,
            "comment": record.comment,
            "ordinal": ordinal,
            "total_in_batch": len(self.batch.items),
            "attempt": self.attempt,
        }))

    async def on_attempt_failed(self, outcome: VerificationOutcome) -> None:
        await self.queue.put(ProgressEvent("attempt_failed", {
            "batch_id": self.batch.batch_id,
            "attempt": self.attempt,
            "missing_keys": sorted(outcome.missing_keys),
            "unexpected_keys": sorted(outcome.unexpected_keys),
        }))
        self.attempt += 1


async def stream_translation_progress(request: TranslationJobRequest) -> AsyncGenerator[ServerSentEvent, None]:
    """
    Stream translation progress with real-time updates.

    Args:
        request: Translation job request

    Yields:
        Server-sent events named after the progress event type
    """
    start_time = time.time()
    settings = get_settings()
    model_name = resolve_model_name(request)
    total_strings = request.total_strings

    yield ProgressEvent("initialization", {
        "status": "starting",
        "total_strings": total_strings,
        "files": list(request.files.keys()),
        "source_locale": request.source_locale,
        "target_locale": request.target_locale,
        "model": model_name,
    }).to_server_sent_event()
    await asyncio.sleep(0)

    batches = plan_batches(request)
    yield ProgressEvent("planning", {
        "status": "batches_created",
        "total_batches": len(batches),
        "batch_size": effective_batch_size(request),
    }).to_server_sent_event()
    await asyncio.sleep(0)

    queue: "asyncio.Queue[Optional[ProgressEvent]]" = asyncio.Queue()
    results: Dict[str, BatchResult] = {}

    async def run_batch(batch_number: int, batch: BatchRequest) -> None:
        reporter = _BatchReporter(queue, batch)
        await queue.put(ProgressEvent("batch_start", {
            "status": "processing_batch",
            "batch_number": batch_number,
            "batch_id": batch.batch_id,
            "strings_in_batch": len(batch.items),
        }))
        result = await translate_batch(
            batch,
            model_name,
            request.model_params,
            max_attempts=request.max_attempts,
            on_started=reporter.on_started,
            on_completed=reporter.on_completed,
            on_attempt_failed=reporter.on_attempt_failed,
        )
        results[batch.batch_id] = result
        if result.success:
            await queue.put(ProgressEvent("batch_completed", {
                "status": "batch_completed",
                "batch_number": batch_number,
                "batch_id": batch.batch_id,
                "attempts": result.attempts,
                "processing_time": round(result.processing_time, 2),
                "progress_percent": int(sum(len(b.items) for b in batches if b.batch_id in results) / max(1, total_strings) * 100),
            }))
        else:
            await queue.put(ProgressEvent("batch_error", {
                "status": "batch_failed",
                "batch_number": batch_number,
                "batch_id": batch.batch_id,
                "error": result.error_message,
                "missing_keys": result.missing_keys,
                "attempts": result.attempts,
            }))

    async def run_all() -> None:
        try:
            wave_size = settings.max_concurrent_batches
            for offset in range(0, len(batches), wave_size):
                wave = batches[offset:offset + wave_size]
                tasks = [
                    asyncio.create_task(run_batch(offset + index + 1, batch))
                    for index, batch in enumerate(wave)
                ]
                try:
                    await asyncio.gather(*tasks)
                except BaseException:
                    # Cancel the rest of the wave
                    for task in tasks:
                        task.cancel()
                    await asyncio.gather(*tasks, return_exceptions=True)
                    raise
        finally:
            await queue.put(None)

    runner = asyncio.create_task(run_all())
    try:
        while True:
            event = await queue.get()
            if event is None:
                break
            yield event.to_server_sent_event()
        await runner
    except Exception as e:
        logger.exception("Streaming translation failed")
        yield ProgressEvent("error", {
            "status": "failed",
            **format_error_response(e, "stream_translation_progress"),
        }).to_server_sent_event()
        return
    finally:
        if not runner.done():
            runner.cancel()

    usage = TokenUsage()
    for result in results.values():
        usage = usage + result.usage
    translated = [s.model_dump() for r in results.values() if r.success for s in r.results]

    yield ProgressEvent("completion", {
        "status": "completed",
        "total_strings": total_strings,
        "translated_strings": len(translated),
        "failed_batches": sorted(r.batch_id for r in results.values() if not r.success),
        "results": translated,
        "token_usage": usage.model_dump(),
        "processing_time": round(time.time() - start_time, 2),
    }).to_server_sent_event()
