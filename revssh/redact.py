"""Hiding sensitive text from logs and output."""

REDACTED = "[REDACTED]"


def redact_string(text: str) -> str:
    """Return ``[REDACTED]`` for any non-empty text, and the empty string otherwise."""
    return REDACTED if text else ""