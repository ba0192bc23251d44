"""Exception types raised by the translator."""

from typing import Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from .workflows.translation_state import VerificationOutcome


class TranslatorError(Exception):
    """Base class for translator errors."""


class MalformedStreamError(TranslatorError):
    """A record fragment could not be parsed.

    Raised by the record parser and always handled by the extractor or the
    fallback cascade; callers of the orchestrator never see it.
    """

    def __init__(self, message: str, fragment: str = ""):
        super().__init__(message)
        self.fragment = fragment


class TransportError(TranslatorError):
    """The streaming transport failed. Not retried by the orchestrator."""


class StreamInterruptedError(TransportError):
    """The stream ended before the model finished (timeout, dropped connection).

    The orchestrator treats this as a failed attempt rather than propagating it.
    """


class VerificationError(TranslatorError):
    """No attempt produced a result covering every requested key."""

    def __init__(
        self,
        batch_id: str,
        outcome: Optional["VerificationOutcome"],
        attempts: int,
    ):
        missing = sorted(outcome.missing_keys) if outcome is not None else []
        super().__init__(
            f"Batch '{batch_id}' failed verification after {attempts} attempt(s); "
            f"missing keys: {', '.join(missing) if missing else 'none'}"
        )
        self.batch_id = batch_id
        self.outcome = outcome
        self.attempts = attempts
