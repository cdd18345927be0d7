"""Utility helpers for ChatRewind."""

from chatrewind.utils.anonymize import AnonymizeResult, anonymize, is_placeholder_only, redact

__all__ = ["AnonymizeResult", "anonymize", "is_placeholder_only", "redact"]
