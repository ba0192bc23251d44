"""Markers and low-level scanning for the translation wire format.

The model is instructed to answer with::

    <translations>
      <item>
        <key>auth.failed</key>
        <trx><![CDATA[These credentials do not match our records.]]></trx>
        <comment><![CDATA[optional note]]></comment>
      </item>
    </translations>

Everything here works on plain strings and never assumes the markup is
well-formed; callers decide what to do with unfinished or broken items.
"""

import html
import re
from typing import List, Optional, Sequence, Tuple

from ..exceptions import MalformedStreamError

CONTAINER_OPEN = "<translations>"
CONTAINER_CLOSE = "</translations>"
ITEM_OPEN = "<item>"
ITEM_CLOSE = "</item>"
KEY_OPEN = "<key>"
KEY_CLOSE = "</key>"
VALUE_OPEN = "<trx>"
VALUE_CLOSE = "</trx>"
COMMENT_OPEN = "<comment>"
COMMENT_CLOSE = "</comment>"
CDATA_OPEN = "<![CDATA["
CDATA_CLOSE = "]]>"

_BACKSLASH_ESCAPE_RE = re.compile(r"\\([\"'\\])")


def unescape_backslashes(text: str) -> str:
    """Restore ``\\"``, ``\\'`` and ``\\\\`` in a single left-to-right pass."""
    return _BACKSLASH_ESCAPE_RE.sub(r"\1", text)


def decode_payload(raw: str) -> str:
    """Decode an enveloped translation payload.

    HTML entities are decoded first, then backslash escapes. Each step is a
    single pass, so ``&amp;quot;`` stays ``&quot;`` and ``\\\\"`` becomes ``\\"``.
    Surrounding whitespace is trimmed.
    """
    return unescape_backslashes(html.unescape(raw)).strip()


def decode_key(raw: str) -> str:
    return html.unescape(raw).strip()


def _skip_whitespace(text: str, pos: int) -> int:
    while pos < len(text) and text[pos].isspace():
        pos += 1
    return pos


def _earliest(text: str, pos: int, markers: Sequence[str]) -> Tuple[int, Optional[str]]:
    found_index, found_marker = -1, None
    for marker in markers:
        index = text.find(marker, pos)
        if index >= 0 and (found_index < 0 or index < found_index):
            found_index, found_marker = index, marker
    return found_index, found_marker


def find_item_end(text: str, pos: int) -> Optional[Tuple[int, int]]:
    """Find where the item whose body starts at ``pos`` ends.

    Closing markers inside a CDATA envelope are ignored. Returns
    ``(body_end, resume_at)``, or ``None`` while the item is still open. If a
    new ``<item>`` starts before the current one is closed, the current body
    ends there and scanning resumes at the new item.
    """
    while True:
        index, marker = _earliest(text, pos, (CDATA_OPEN, ITEM_CLOSE, ITEM_OPEN))
        if marker is None:
            return None
        if marker == CDATA_OPEN:
            close = text.find(CDATA_CLOSE, index + len(CDATA_OPEN))
            if close < 0:
                return None
            pos = close + len(CDATA_CLOSE)
        elif marker == ITEM_CLOSE:
            return index, index + len(ITEM_CLOSE)
        else:
            return index, index


def scan_items(text: str) -> Tuple[List[str], int]:
    """Split ``text`` into complete item bodies.

    Returns the bodies in order and the offset from which ``text`` still has
    to be kept: the start of an unfinished item, or a short tail that may hold
    the first half of an ``<item>`` marker.
    """
    bodies = []
    pos = 0
    while True:
        start = text.find(ITEM_OPEN, pos)
        if start < 0:
            return bodies, max(pos, len(text) - (len(ITEM_OPEN) - 1))
        span = find_item_end(text, start + len(ITEM_OPEN))
        if span is None:
            return bodies, start
        body_end, resume = span
        bodies.append(text[start + len(ITEM_OPEN):body_end])
        pos = resume


def _field_span(text: str, open_tag: str, close_tag: str, pos: int = 0) -> Optional[Tuple[int, int]]:
    start = text.find(open_tag, pos)
    if start < 0:
        return None
    end = text.find(close_tag, start + len(open_tag))
    if end < 0:
        return None
    return start + len(open_tag), end


def read_enveloped(text: str, open_tag: str, close_tag: str, pos: int = 0) -> Optional[Tuple[str, int]]:
    """Read ``<tag><![CDATA[...]]></tag>`` starting the search at ``pos``.

    Adjacent CDATA sections (the XML way of embedding ``]]>``) are joined.
    Returns the raw payload and the offset after the closing tag.
    """
    start = text.find(open_tag, pos)
    if start < 0:
        return None
    cursor = _skip_whitespace(text, start + len(open_tag))
    if not text.startswith(CDATA_OPEN, cursor):
        return None

    parts = []
    while text.startswith(CDATA_OPEN, cursor):
        payload_start = cursor + len(CDATA_OPEN)
        payload_end = text.find(CDATA_CLOSE, payload_start)
        if payload_end < 0:
            return None
        parts.append(text[payload_start:payload_end])
        cursor = payload_end + len(CDATA_CLOSE)

    cursor = _skip_whitespace(text, cursor)
    if not text.startswith(close_tag, cursor):
        return None
    return "".join(parts), cursor + len(close_tag)


def read_comment(body: str, pos: int = 0) -> Optional[str]:
    """Read the optional comment field, enveloped or plain."""
    span = _field_span(body, COMMENT_OPEN, COMMENT_CLOSE, pos)
    if span is None:
        return None
    raw = body[span[0]:span[1]].strip()
    if raw.startswith(CDATA_OPEN) and raw.endswith(CDATA_CLOSE):
        comment = decode_payload(raw[len(CDATA_OPEN):-len(CDATA_CLOSE)]).strip()
    else:
        comment = html.unescape(raw).strip()
    return comment or None


def read_open_key(text: str, pos: int = 0) -> Optional[str]:
    """Key of an item that has started streaming, if its key field is closed."""
    span = _field_span(text, KEY_OPEN, KEY_CLOSE, pos)
    if span is None:
        return None
    envelope = text.find(CDATA_OPEN, pos)
    if 0 <= envelope < span[0]:
        return None
    return decode_key(text[span[0]:span[1]]) or None


def parse_item_body(body: str) -> Tuple[str, str, Optional[str]]:
    """Parse the inside of one ``<item>``.

    Returns ``(key, decoded_text, comment)``.

    Raises:
        MalformedStreamError: the key field or the enveloped value is missing
            or unterminated.
    """
    key_span = _field_span(body, KEY_OPEN, KEY_CLOSE)
    if key_span is None:
        raise MalformedStreamError("item has no closed <key> field", body)
    key = decode_key(body[key_span[0]:key_span[1]])

    value = read_enveloped(body, VALUE_OPEN, VALUE_CLOSE, key_span[1] + len(KEY_CLOSE))
    if value is None:
        raise MalformedStreamError(f"item '{key}' has no enveloped <trx> field", body)
    raw_text, value_end = value

    return key, decode_payload(raw_text), read_comment(body, value_end)
