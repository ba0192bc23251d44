"""Per-batch key prefixes."""

import re
from pathlib import PurePosixPath
from typing import Dict, Iterable, Optional

_UNSAFE_CHARS_RE = re.compile(r"[^A-Za-z0-9_\-]")


def derive_prefix(batch_id: str) -> str:
    """
    Derive a stable key prefix from a batch identity.

    ``lang/en/auth.php`` becomes ``auth``. Characters outside
    ``[A-Za-z0-9_-]`` are replaced so the prefix never contains the ``.``
    separator itself.
    """
    stem = PurePosixPath((batch_id or "").replace("\\", "/")).stem
    prefix = _UNSAFE_CHARS_RE.sub("_", stem).strip("_")
    return prefix or "batch"


class KeyNamespacer:
    """
    Reversible ``prefix.key`` transform for the keys of one batch.

    Prefixing is injective because every key gets the same prefix and
    separator; ``strip`` is its inverse and returns ``None`` for keys that do
    not carry the prefix.
    """

    separator = "."

    def __init__(self, batch_id: str):
        self.batch_id = batch_id
        self.prefix = derive_prefix(batch_id)

    def apply(self, key: str) -> str:
        return f"{self.prefix}{self.separator}{key}"

    def apply_all(self, keys: Iterable[str]) -> Dict[str, str]:
        """Map each original key to its namespaced form, preserving order."""
        return {key: self.apply(key) for key in keys}

    def strip(self, key: str) -> Optional[str]:
        marker = f"{self.prefix}{self.separator}"
        if not key.startswith(marker) or len(key) == len(marker):
            return None
        return key[len(marker):]

    def display_key(self, key: str) -> str:
        """The key without prefix when it has one, unchanged otherwise."""
        stripped = self.strip(key)
        return key if stripped is None else stripped
