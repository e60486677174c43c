"""Error taxonomy and classification for generative backend failures."""

from __future__ import annotations

from enum import Enum

# Substrings the hosted backends put in their error text.
THROTTLE_MARKERS = ("429", "RESOURCE_EXHAUSTED")
NOT_FOUND_MARKERS = ("Requested entity was not found",)


class ErrorClass(str, Enum):
    THROTTLED = "throttled"
    NOT_FOUND = "not_found"
    OTHER = "other"


class AuraError(Exception):
    """Base class for errors raised by resume-aura."""


class DecodeError(AuraError, ValueError):
    """The backend answered, but the payload could not be decoded."""

    def __init__(self, message: str, raw: str = ""):
        super().__init__(message)
        self.raw = raw


class ImageGenerationUnavailable(AuraError):
    """The configured backend cannot produce images."""


def _message_of(error: BaseException) -> str:
    message = getattr(error, "message", None)
    if isinstance(message, str) and message:
        return f"{message} {error}"
    return str(error)


def classify(error: BaseException) -> ErrorClass:
    """Classify an error from its payload only.

    Checks status attributes first (google-genai exposes ``status`` and
    ``code``, anthropic exposes ``status_code``), then falls back to the
    message text.
    """
    if isinstance(error, DecodeError):
        return ErrorClass.OTHER

    status = getattr(error, "status", None)
    if status == "RESOURCE_EXHAUSTED":
        return ErrorClass.THROTTLED
    for attr in ("status_code", "code"):
        if getattr(error, attr, None) == 429:
            return ErrorClass.THROTTLED

    text = _message_of(error)
    if any(marker in text for marker in THROTTLE_MARKERS):
        return ErrorClass.THROTTLED
    if any(marker in text for marker in NOT_FOUND_MARKERS):
        return ErrorClass.NOT_FOUND
    return ErrorClass.OTHER


def is_throttled(error: BaseException) -> bool:
    return classify(error) is ErrorClass.THROTTLED


def is_quota_error(error: BaseException) -> bool:
    """True for the failures that need a different API key or project."""
    return classify(error) in (ErrorClass.THROTTLED, ErrorClass.NOT_FOUND)
