"""Attempt loop for translating one batch."""

import asyncio
import inspect
import logging
from typing import Any, AsyncIterator, Callable, List, Optional

from ..config import get_settings
from ..exceptions import StreamInterruptedError, VerificationError
from ..models.records import ExtractorEvent, TokenUsage, TranslationRecord, TranslationStatus
from ..parsers.extractor import StreamingItemExtractor
from ..prompts.localization import build_system_prompt, build_user_prompt
from ..services.transport import StreamChunk, StreamingTransport
from ..utils.namespacing import KeyNamespacer
from .translation_state import AttemptResult, BatchRequest
from .verification import log_comments, verify_records

logger = logging.getLogger("ai_translator.workflows.orchestrator")

Callback = Optional[Callable[..., Any]]


async def _notify(callback: Callback, *args: Any) -> None:
    if callback is None:
        return
    result = callback(*args)
    if inspect.isawaitable(result):
        await result


async def _next_chunk(iterator: AsyncIterator[StreamChunk]) -> Optional[StreamChunk]:
    try:
        return await iterator.__anext__()
    except StopAsyncIteration:
        return None


class TranslationOrchestrator:
    """
    Translates one batch at a time through a streaming transport.

    Each attempt namespaces the batch keys, streams the model's answer through
    a fresh extractor, verifies the records against the requested keys and,
    on failure, resends the whole batch. Progress is reported through the
    optional callbacks, which may be plain functions or coroutines:

    - ``on_started(key)``
    - ``on_completed(record, ordinal)``
    - ``on_attempt_failed(outcome)``
    - ``on_token_usage(usage)``

    Keys passed to the callbacks have the batch prefix removed.
    """

    def __init__(
        self,
        transport: StreamingTransport,
        max_attempts: Optional[int] = None,
        stream_chunk_timeout: Optional[float] = None,
        on_started: Callback = None,
        on_completed: Callback = None,
        on_attempt_failed: Callback = None,
        on_token_usage: Callback = None,
    ):
        self.settings = get_settings()
        self.transport = transport
        self.max_attempts = max_attempts or self.settings.max_attempts
        self.stream_chunk_timeout = stream_chunk_timeout or self.settings.stream_chunk_timeout
        self.on_started = on_started
        self.on_completed = on_completed
        self.on_attempt_failed = on_attempt_failed
        self.on_token_usage = on_token_usage

        self.token_usage = TokenUsage()
        self.last_attempt: Optional[AttemptResult] = None
        self.attempts = 0
        self._completed_count = 0

    async def translate(self, batch: BatchRequest) -> List[TranslationRecord]:
        """
        Translate every item of ``batch``.

        Progress callbacks see keys as the model streamed them. In a
        single-key batch the model may mislabel its one record: ``on_completed``
        then reports the model's key, while the returned record carries the
        requested key.

        Returns:
            Records of the successful attempt in the order the model emitted
            them, keyed by the original keys

        Raises:
            VerificationError: no attempt covered every requested key
            TransportError: the transport failed for a reason other than an
                interrupted stream
        """
        self.attempts = 0
        self.last_attempt = None
        if not batch.items:
            logger.debug("Batch '%s' has no items, nothing to translate", batch.batch_id)
            return []

        namespacer = KeyNamespacer(batch.batch_id)
        system_prompt = build_system_prompt(batch)
        user_prompt = build_user_prompt(batch, namespacer.apply_all(batch.items))

        for attempt in range(1, self.max_attempts + 1):
            result = await self._run_attempt(attempt, batch, namespacer, system_prompt, user_prompt)
            self.attempts = attempt
            self.last_attempt = result

            if result.succeeded:
                records = list(result.outcome.valid_records)
                log_comments(batch.batch_id, records)
                logger.info(
                    "Batch '%s' translated: %d key(s) in %d attempt(s)",
                    batch.batch_id, len(records), attempt,
                )
                return records

            await _notify(self.on_attempt_failed, result.outcome)
            if attempt < self.max_attempts:
                logger.warning(
                    "[%d/%d] Retrying batch '%s' (%d missing key(s)%s)",
                    attempt, self.max_attempts, batch.batch_id, len(result.outcome.missing_keys),
                    ", stream interrupted" if result.interrupted else "",
                )

        logger.error("Batch '%s' failed after %d attempt(s)", batch.batch_id, self.max_attempts)
        raise VerificationError(batch.batch_id, self.last_attempt.outcome, self.max_attempts)

    async def _run_attempt(
        self,
        attempt: int,
        batch: BatchRequest,
        namespacer: KeyNamespacer,
        system_prompt: str,
        user_prompt: str,
    ) -> AttemptResult:
        extractor = StreamingItemExtractor()
        usage = TokenUsage()
        interrupted = False
        self._completed_count = 0

        iterator = self.transport.stream(system_prompt, user_prompt).__aiter__()
        try:
            while True:
                chunk = await asyncio.wait_for(_next_chunk(iterator), self.stream_chunk_timeout)
                if chunk is None:
                    break
                if chunk.usage is not None:
                    usage = usage + chunk.usage
                if chunk.text:
                    await self._dispatch(extractor.feed(chunk.text), namespacer)
        except StreamInterruptedError as exc:
            interrupted = True
            logger.warning("Attempt %d of batch '%s': %s", attempt, batch.batch_id, exc)
        except asyncio.TimeoutError:
            interrupted = True
            logger.warning(
                "Attempt %d of batch '%s': no data for %s seconds",
                attempt, batch.batch_id, self.stream_chunk_timeout,
            )
        finally:
            aclose = getattr(iterator, "aclose", None)
            if aclose is not None:
                await aclose()

        await self._dispatch(extractor.finish(), namespacer)
        if extractor.used_fallback:
            logger.info(
                "Attempt %d of batch '%s' recovered by fallback strategy '%s'",
                attempt, batch.batch_id, extractor.fallback.last_strategy,
            )

        outcome = verify_records(batch.items.keys(), extractor.records, namespacer)
        if interrupted and outcome.passed:
            outcome = outcome.model_copy(update={"passed": False})

        if not usage.is_empty:
            self.token_usage = self.token_usage + usage
            logger.info(
                "Batch '%s' attempt %d used %d input / %d output token(s)",
                batch.batch_id, attempt, usage.input_tokens, usage.output_tokens,
            )
            await _notify(self.on_token_usage, usage)

        if not outcome.passed and self.settings.debug:
            logger.debug("Raw response of failed attempt %d for '%s':\n%s", attempt, batch.batch_id, extractor.full_text)

        return AttemptResult(
            attempt=attempt,
            records=list(extractor.records),
            outcome=outcome,
            interrupted=interrupted,
            usage=usage,
        )

    async def _dispatch(self, events: List[ExtractorEvent], namespacer: KeyNamespacer) -> None:
        for event in events:
            key = namespacer.display_key(event.key)
            if event.status == TranslationStatus.STARTED:
                await _notify(self.on_started, key)
            else:
                self._completed_count += 1
                await _notify(self.on_completed, event.record.with_key(key), self._completed_count)
