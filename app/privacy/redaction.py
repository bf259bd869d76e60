"""Best-effort PII redaction for free text and JSON-like payloads.

Rules are regex heuristics, not a validated PII classifier:
- They run in a fixed order and a later rule sees the output of earlier ones.
- Placeholders contain no digits, '@' or URL prefixes, so redaction is idempotent.
- Lab values or other long digit runs may be over-redacted (e.g. as `[card]`).
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class RedactionRule:
    name: str
    pattern: re.Pattern[str]
    placeholder: str

    def apply(self, text: str) -> str:
        return self.pattern.sub(self.placeholder, text)


_STREET_SUFFIXES = (
    "street|st|avenue|ave|road|rd|boulevard|blvd|lane|ln|drive|dr|court|ct|place|pl"
)

# Order matters: SSN before card, card before phone.
REDACTION_RULES: tuple[RedactionRule, ...] = (
    RedactionRule(
        name="email",
        pattern=re.compile(r"[A-Z0-9._%+-]+@[A-Z0-9.-]+\.[A-Z]{2,}", re.IGNORECASE),
        placeholder="[email]",
    ),
    RedactionRule(
        name="ssn",
        pattern=re.compile(r"\b\d{3}-\d{2}-\d{4}\b"),
        placeholder="[ssn]",
    ),
    RedactionRule(
        name="card",
        pattern=re.compile(r"\b(?:\d[ -]*?){13,16}\b"),
        placeholder="[card]",
    ),
    RedactionRule(
        name="phone",
        pattern=re.compile(r"\+?\d[\d\-().\s]{6,}\d"),
        placeholder="[phone]",
    ),
    RedactionRule(
        name="url",
        pattern=re.compile(r"\b(?:https?://|www\.)\S+", re.IGNORECASE),
        placeholder="[url]",
    ),
    RedactionRule(
        name="address",
        pattern=re.compile(
            r"\b\d{1,5}\s+[\w'.-]+(?:\s+[\w'.-]+)*\s+(?:" + _STREET_SUFFIXES + r")\b",
            re.IGNORECASE,
        ),
        placeholder="[address]",
    ),
    RedactionRule(
        name="hex",
        pattern=re.compile(r"\b0x[a-f0-9]{16,}\b", re.IGNORECASE),
        placeholder="[hex]",
    ),
)


def sanitize_text(text: str | None) -> str | None:
    """Replace PII-shaped substrings with placeholder tokens.

    Empty or missing input is returned as-is.
    """

    if not text:
        return text

    out = text
    for rule in REDACTION_RULES:
        out = rule.apply(out)
    return out


def deep_sanitize(value: Any) -> Any:
    """Return a copy of `value` with every string leaf passed through `sanitize_text`.

    Dicts keep all keys, lists keep order and length; anything else (numbers, bools,
    None, unknown objects) is returned unchanged. The input is never mutated.
    """

    if isinstance(value, str):
        return sanitize_text(value)
    if isinstance(value, dict):
        return {key: deep_sanitize(item) for key, item in value.items()}
    if isinstance(value, list):
        return [deep_sanitize(item) for item in value]
    if isinstance(value, tuple):
        return tuple(deep_sanitize(item) for item in value)
    return value
