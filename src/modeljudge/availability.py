"""Classifies provider output as a real answer or a failure sentinel."""

from typing import Optional


DEFAULT_NO_ANSWER_PREFIX = "no answer from"
DEFAULT_NOT_CONFIGURED_MARKER = "not configured yet"


def no_answer_sentinel(label: str) -> str:
    """Sentinel returned when a provider call fails."""
    return f"No answer from {label}."


def not_configured_sentinel(label: str) -> str:
    """Sentinel returned when a provider has no credential."""
    return f"{label} API key not configured yet."


class AvailabilityClassifier:
    """Decides whether a candidate answer counts as real content.

    Every failure mode of an answer source (missing key, network error,
    non-2xx status, malformed payload) ends up as one of the sentinels above,
    so this is the single place downstream code asks "did we get an answer?".
    """

    def __init__(self, no_answer_prefix: str = DEFAULT_NO_ANSWER_PREFIX,
                 not_configured_marker: str = DEFAULT_NOT_CONFIGURED_MARKER):
        self.no_answer_prefix = no_answer_prefix.strip().lower()
        self.not_configured_marker = not_configured_marker.lower()

    def is_real_answer(self, text: Optional[str]) -> bool:
        if not text or not text.strip():
            return False

        normalized = text.strip().lower()
        if self.no_answer_prefix and normalized.startswith(self.no_answer_prefix):
            return False
        if self.not_configured_marker and self.not_configured_marker in normalized:
            return False
        return True


default_classifier = AvailabilityClassifier()


def is_real_answer(text: Optional[str]) -> bool:
    """Classify with the default prefix and marker."""
    return default_classifier.is_real_answer(text)
