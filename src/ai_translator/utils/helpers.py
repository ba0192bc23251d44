"""Utility functions for the translator."""

from itertools import islice
from typing import Any, Dict, Iterator, List, Mapping, Tuple, TypeVar
from datetime import datetime

V = TypeVar("V")


def chunk_items(items: Mapping[str, V], size: int) -> Iterator[Dict[str, V]]:
    """
    Split an ordered mapping into consecutive chunks of at most ``size`` entries.

    Args:
        items: Items keyed by string key
        size: Maximum entries per chunk

    Yields:
        Dictionaries preserving the original order
    """
    if size < 1:
        raise ValueError("Chunk size must be at least 1")
    iterator = iter(items.items())
    while True:
        chunk = dict(islice(iterator, size))
        if not chunk:
            return
        yield chunk


def batch_label(file_name: str, index: int, total: int) -> str:
    """Identity of the ``index``-th batch of a file; the file name itself when there is only one."""
    if total <= 1:
        return file_name
    return f"{file_name}#{index + 1}"


def create_processing_metadata(
    start_time: float,
    end_time: float,
    total_strings: int,
    model_name: str,
    batch_size: int,
    success_count: int,
    error_count: int,
    usage: Dict[str, int],
) -> Dict[str, Any]:
    """
    Create metadata for a translation job.

    Args:
        start_time: Processing start time (timestamp)
        end_time: Processing end time (timestamp)
        total_strings: Number of strings requested
        model_name: Model used for translation
        batch_size: Batch size used
        success_count: Number of strings translated
        error_count: Number of strings in failed batches
        usage: Summed token usage

    Returns:
        Metadata dictionary
    """
    processing_time = end_time - start_time

    return {
        "processing_time_seconds": round(processing_time, 2),
        "start_time": datetime.fromtimestamp(start_time).isoformat(),
        "end_time": datetime.fromtimestamp(end_time).isoformat(),
        "total_strings": total_strings,
        "successful_translations": success_count,
        "failed_translations": error_count,
        "success_rate": round(success_count / total_strings * 100, 2) if total_strings > 0 else 0,
        "model_used": model_name,
        "batch_size": batch_size,
        "token_usage": usage,
    }


def sanitize_model_params(params: Dict[str, Any]) -> Dict[str, Any]:
    """
    Sanitize and validate model parameters.

    Unknown parameters and values that cannot be converted are dropped;
    numeric values are clamped to their allowed range.
    """
    sanitized = {}

    allowed_params: Dict[str, Tuple[type, float, float]] = {
        "temperature": (float, 0.0, 2.0),
        "max_tokens": (int, 1, 64000),
        "top_p": (float, 0.0, 1.0),
    }

    for key, value in params.items():
        if key in allowed_params:
            param_type, min_val, max_val = allowed_params[key]
            try:
                converted_value = param_type(value)
            except (ValueError, TypeError):
                continue
            sanitized[key] = max(min_val, min(max_val, converted_value))

    return sanitized


def format_error_response(error: Exception, context: str = "") -> Dict[str, Any]:
    """Format an error for an API response or workflow state."""
    return {
        "error_type": type(error).__name__,
        "error_message": str(error),
        "context": context,
        "timestamp": datetime.now().isoformat(),
    }


def missing_keys_of(error: Exception) -> List[str]:
    outcome = getattr(error, "outcome", None)
    if outcome is None:
        return []
    return sorted(outcome.missing_keys)
