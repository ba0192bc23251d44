"""One-shot extraction strategies for responses the incremental path could not read."""

import html
import logging
import re
from typing import Callable, Iterable, List, Optional, Tuple

from ..exceptions import MalformedStreamError
from ..models.records import TranslationRecord
from .markup import (
    CDATA_CLOSE,
    CDATA_OPEN,
    CONTAINER_CLOSE,
    CONTAINER_OPEN,
    ITEM_CLOSE,
    ITEM_OPEN,
    decode_key,
    decode_payload,
    parse_item_body,
    read_comment,
    scan_items,
)

logger = logging.getLogger("ai_translator.parsers.fallback")

_ENVELOPE_RE = re.compile(r"<!\[CDATA\[(.*?)\]\]>", re.DOTALL)
_TAG_RE = re.compile(r"<\s*(/?)\s*(translations|item|key|trx|comment)\b[^<>]*>", re.IGNORECASE)
_ITEM_RE = re.compile(r"<item>(.*?)</item>", re.DOTALL)
_KEY_RE = re.compile(r"<key>(.*?)</key>", re.DOTALL)
_VALUE_RE = re.compile(r"<trx>(.*?)</trx>", re.DOTALL)
_COMMENT_RE = re.compile(r"<comment>.*?</comment>", re.DOTALL)


def _outside_envelopes(text: str, transform: Callable[[str], str]) -> str:
    """Apply ``transform`` to the parts of ``text`` that are not CDATA payload."""
    parts = []
    pos = 0
    while True:
        start = text.find(CDATA_OPEN, pos)
        if start < 0:
            parts.append(transform(text[pos:]))
            return "".join(parts)
        parts.append(transform(text[pos:start]))
        end = text.find(CDATA_CLOSE, start + len(CDATA_OPEN))
        if end < 0:
            parts.append(text[start:])
            return "".join(parts)
        end += len(CDATA_CLOSE)
        parts.append(text[start:end])
        pos = end


def canonicalize_tags(text: str) -> str:
    """Rewrite ``<Item >``, ``< /KEY>`` and similar spellings to the canonical markers."""
    return _outside_envelopes(
        text, lambda part: _TAG_RE.sub(lambda m: f"<{m.group(1)}{m.group(2).lower()}>", part)
    )


def normalize_document(text: str) -> str:
    """Prepare a complete response for the strict pass.

    Drops chatter before the first tag and after the last one, canonicalizes
    tag spelling, closes a trailing item whose value is complete and wraps the
    result in the outer container when the model left it out.
    """
    first = text.find("<")
    last = text.rfind(">")
    if first < 0 or last < first:
        return ""
    document = canonicalize_tags(text[first:last + 1])

    closed = document.endswith(CONTAINER_CLOSE)
    body = document[:-len(CONTAINER_CLOSE)] if closed else document
    _, rest = scan_items(body)
    tail = body[rest:]
    if tail.startswith(ITEM_OPEN):
        try:
            parse_item_body(tail[len(ITEM_OPEN):])
        except MalformedStreamError:
            pass
        else:
            logger.debug("Closing truncated trailing item")
            document = body + ITEM_CLOSE + (CONTAINER_CLOSE if closed else "")

    if not document.lstrip().startswith((CONTAINER_OPEN, "<?xml")):
        document = f"{CONTAINER_OPEN}{document}{CONTAINER_CLOSE}"
    return document


def _plain_value(raw: str) -> str:
    value = raw.strip()
    if value.startswith(CDATA_OPEN) and value.endswith(CDATA_CLOSE):
        value = value[len(CDATA_OPEN):-len(CDATA_CLOSE)]
    return html.unescape(value).strip()


def _unique(records: Iterable[TranslationRecord], exclude: Iterable[str]) -> List[TranslationRecord]:
    seen = set(exclude)
    unique = []
    for record in records:
        if not record.key or record.key in seen:
            continue
        seen.add(record.key)
        unique.append(record)
    return unique


class FallbackExtractor:
    """Ordered cascade of progressively more permissive extraction strategies.

    The first strategy that yields at least one record wins; results from
    different strategies are never merged.
    """

    def __init__(self):
        self.strategies: List[Tuple[str, Callable[[str], List[TranslationRecord]]]] = [
            ("strict", self.strict_pass),
            ("direct_pairing", self.direct_pairing),
            ("unescaped", self.unescaped_pass),
        ]
        self.last_strategy: Optional[str] = None

    def extract(self, full_text: str, exclude: Iterable[str] = ()) -> List[TranslationRecord]:
        """Extract records from a complete response.

        Args:
            full_text: Everything the model sent for the attempt
            exclude: Keys that were already completed and must not be repeated

        Returns:
            Records from the first successful strategy, or an empty list
        """
        exclude = set(exclude)
        self.last_strategy = None
        if not full_text or not full_text.strip():
            return []

        for name, strategy in self.strategies:
            records = _unique(strategy(full_text), exclude)
            if records:
                self.last_strategy = name
                logger.info("Fallback strategy '%s' recovered %d item(s)", name, len(records))
                return records
            logger.debug("Fallback strategy '%s' found nothing", name)

        logger.warning("No fallback strategy could extract items from a %d character response", len(full_text))
        return []

    def strict_pass(self, full_text: str) -> List[TranslationRecord]:
        """The streaming record grammar over a normalized copy of the whole text."""
        records = []
        bodies, _ = scan_items(normalize_document(full_text))
        for body in bodies:
            try:
                key, translated_text, comment = parse_item_body(body)
            except MalformedStreamError as exc:
                logger.debug("Strict pass skipped an item: %s", exc)
                continue
            records.append(TranslationRecord(key=key, translated_text=translated_text, comment=comment))
        return records

    def direct_pairing(self, full_text: str) -> List[TranslationRecord]:
        """Pair every key field with every envelope by position when the counts agree."""
        text = _COMMENT_RE.sub("", canonicalize_tags(full_text))
        payloads = _ENVELOPE_RE.findall(text)
        keys = [decode_key(raw) for raw in _KEY_RE.findall(_ENVELOPE_RE.sub("", text))]
        if not keys or len(keys) != len(payloads):
            if keys or payloads:
                logger.debug("Direct pairing mismatch: %d key(s), %d envelope(s)", len(keys), len(payloads))
            return []
        return [
            TranslationRecord(key=key, translated_text=decode_payload(payload))
            for key, payload in zip(keys, payloads)
        ]

    def unescaped_pass(self, full_text: str) -> List[TranslationRecord]:
        """Accept values without an envelope, decoding HTML entities only."""
        text = canonicalize_tags(full_text)

        records = []
        for match in _ITEM_RE.finditer(text):
            body = match.group(1)
            key_match = _KEY_RE.search(body)
            value_match = _VALUE_RE.search(body)
            if key_match and value_match:
                records.append(TranslationRecord(
                    key=decode_key(key_match.group(1)),
                    translated_text=_plain_value(value_match.group(1)),
                    comment=read_comment(body, value_match.end()),
                ))
        if records:
            return records

        keys = _KEY_RE.findall(text)
        values = _VALUE_RE.findall(text)
        if not keys or len(keys) != len(values):
            return []
        return [
            TranslationRecord(key=decode_key(key), translated_text=_plain_value(value))
            for key, value in zip(keys, values)
        ]
