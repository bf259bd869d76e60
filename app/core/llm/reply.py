"""Typed parse result for LLM replies.

Some prompt variants ask the model for prose followed by a fenced JSON block, so a
reply that is not a bare JSON object is an expected outcome rather than an error.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from typing import Any

_FENCED_JSON = re.compile(r"```(?:json)?\s*(\{.*?\})\s*```", re.DOTALL | re.IGNORECASE)


@dataclass(frozen=True)
class ParsedReply:
    data: dict[str, Any]

    @property
    def status(self) -> str | None:
        value = self.data.get("status")
        return value if isinstance(value, str) else None


@dataclass(frozen=True)
class UnparsedReply:
    raw_text: str


LLMReply = ParsedReply | UnparsedReply


def _load_object(candidate: str) -> dict[str, Any] | None:
    try:
        parsed = json.loads(candidate)
    except ValueError:
        return None
    return parsed if isinstance(parsed, dict) else None


def parse_reply(text: str | None) -> LLMReply:
    """Parse a completion into a JSON object.

    Accepts a bare JSON object, else the last fenced ```json block. Empty content is
    treated as `{}`.
    """

    raw = text or "{}"
    parsed = _load_object(raw.strip())
    if parsed is not None:
        return ParsedReply(data=parsed)

    for block in reversed(_FENCED_JSON.findall(raw)):
        parsed = _load_object(block)
        if parsed is not None:
            return ParsedReply(data=parsed)

    return UnparsedReply(raw_text=raw)
