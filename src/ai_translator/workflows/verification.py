"""Completeness check of an attempt's records against the requested keys."""

import logging
from typing import Iterable, List

from ..models.records import TranslationRecord
from ..utils.namespacing import KeyNamespacer
from .translation_state import VerificationOutcome

logger = logging.getLogger("ai_translator.workflows.verification")


def verify_records(
    requested_keys: Iterable[str],
    records: List[TranslationRecord],
    namespacer: KeyNamespacer,
) -> VerificationOutcome:
    """
    Verify the records of one attempt.

    Args:
        requested_keys: Original (un-namespaced) keys of the batch
        records: Records as extracted, keys still namespaced
        namespacer: Namespacer the prompt was rendered with

    Returns:
        Outcome whose ``valid_records`` carry original keys in emission order.
        A single requested key is satisfied by any single record with
        non-empty text, whatever key the model gave it.
    """
    requested = list(dict.fromkeys(requested_keys))
    requested_set = set(requested)

    if len(requested) == 1 and len(records) == 1 and records[0].translated_text.strip():
        record = records[0]
        key = requested[0]
        if namespacer.strip(record.key) != key:
            logger.warning(
                "Single-key batch '%s': accepting record labelled '%s' as '%s'",
                namespacer.batch_id, record.key, key,
            )
        return VerificationOutcome(
            requested_keys=requested_set,
            valid_records=[record.with_key(key)],
            lenient=True,
            passed=True,
        )

    valid_records = []
    unexpected = set()
    for record in records:
        key = namespacer.strip(record.key)
        if key is None:
            logger.debug("Dropping record with foreign key '%s' in batch '%s'", record.key, namespacer.batch_id)
            continue
        if key not in requested_set:
            unexpected.add(key)
            continue
        valid_records.append(record.with_key(key))

    missing = requested_set - {record.key for record in valid_records}

    if unexpected:
        logger.warning(
            "Batch '%s': model returned %d unexpected key(s): %s",
            namespacer.batch_id, len(unexpected), ", ".join(sorted(unexpected)),
        )
    if missing:
        logger.warning(
            "Batch '%s': %d of %d key(s) missing: %s",
            namespacer.batch_id, len(missing), len(requested_set), ", ".join(sorted(missing)),
        )

    return VerificationOutcome(
        requested_keys=requested_set,
        missing_keys=missing,
        unexpected_keys=unexpected,
        valid_records=valid_records,
        passed=not missing,
    )


def log_comments(batch_id: str, records: Iterable[TranslationRecord]) -> None:
    for record in records:
        if record.comment:
            logger.warning("Comment for '%s' in batch '%s': %s", record.key, batch_id, record.comment)
