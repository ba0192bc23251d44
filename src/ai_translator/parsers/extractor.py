"""Incremental extraction of translation records from a streamed response."""

import logging
from typing import List, Optional, Set

from ..exceptions import MalformedStreamError
from ..models.records import ExtractorEvent, TranslationRecord
from .fallback import FallbackExtractor
from .markup import ITEM_OPEN, parse_item_body, read_open_key, scan_items

logger = logging.getLogger("ai_translator.parsers.extractor")


class StreamingItemExtractor:
    """
    Turns a growing stream of text fragments into translation records.

    Only the unconsumed suffix of the stream is kept in ``pending``; complete
    items are cut from the front as soon as their closing marker arrives, so
    every fragment is scanned a bounded number of times. One instance belongs
    to exactly one attempt and is not safe for concurrent ``feed`` calls.
    """

    def __init__(self, fallback: Optional[FallbackExtractor] = None):
        self.fallback = fallback or FallbackExtractor()
        self.pending = ""
        self.completed_keys: Set[str] = set()
        self.announced_keys: Set[str] = set()
        self.records: List[TranslationRecord] = []
        self.used_fallback = False
        self._chunks: List[str] = []
        self._finished = False

    @property
    def full_text(self) -> str:
        """Everything fed so far."""
        return "".join(self._chunks)

    @property
    def finished(self) -> bool:
        return self._finished

    def feed(self, chunk: str) -> List[ExtractorEvent]:
        """
        Consume one fragment and return the events it produced.

        Args:
            chunk: Next piece of model output, split at an arbitrary boundary

        Returns:
            ``Completed`` events for items closed by this fragment, in stream
            order, followed by at most one ``Started`` event for the item that
            is still open.
        """
        if self._finished:
            raise RuntimeError("Cannot feed an extractor after finish()")
        if not chunk:
            return []

        self._chunks.append(chunk)
        self.pending += chunk

        events: List[ExtractorEvent] = []
        bodies, keep_from = scan_items(self.pending)
        self.pending = self.pending[keep_from:]

        for body in bodies:
            try:
                key, translated_text, comment = parse_item_body(body)
            except MalformedStreamError as exc:
                logger.debug("Skipping malformed item: %s", exc)
                continue
            event = self._accept(TranslationRecord(key=key, translated_text=translated_text, comment=comment))
            if event is not None:
                events.append(event)

        if self.pending.startswith(ITEM_OPEN):
            key = read_open_key(self.pending, len(ITEM_OPEN))
            if key and key not in self.completed_keys and key not in self.announced_keys:
                self.announced_keys.add(key)
                events.append(ExtractorEvent.started(key))

        return events

    def finish(self) -> List[ExtractorEvent]:
        """
        Close the stream.

        When nothing was completed incrementally, the whole transcript is
        handed to the fallback cascade and its records are returned as
        ``Completed`` events. Returns an empty list otherwise.
        """
        if self._finished:
            return []
        self._finished = True

        if self.pending.strip():
            logger.debug("Stream ended with %d unconsumed character(s)", len(self.pending))

        full_text = self.full_text
        if self.records or not full_text.strip():
            return []

        logger.info("No items parsed incrementally, running fallback extraction")
        events = []
        for record in self.fallback.extract(full_text, exclude=self.completed_keys):
            event = self._accept(record)
            if event is not None:
                events.append(event)
        self.used_fallback = bool(events)
        return events

    def _accept(self, record: TranslationRecord) -> Optional[ExtractorEvent]:
        if not record.key:
            logger.debug("Skipping item with empty key")
            return None
        if record.key in self.completed_keys:
            logger.debug("Ignoring repeated key '%s'", record.key)
            return None
        self.completed_keys.add(record.key)
        self.records.append(record)
        return ExtractorEvent.completed(record)
