"""PII redaction applied to inbound text and outbound ledger records."""

from app.privacy.redaction import REDACTION_RULES, RedactionRule, deep_sanitize, sanitize_text

__all__ = ["REDACTION_RULES", "RedactionRule", "deep_sanitize", "sanitize_text"]
