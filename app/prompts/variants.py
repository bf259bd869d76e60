"""Named prompt variants.

Each variant is configuration, not code: a system-prompt template plus the options
that decide how user input is framed and when a reply gets published to the ledger.
One submission handler serves all of them.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Any, Literal

from app.domain.exceptions import BusinessValidationError

UserContentMode = Literal["text", "envelope"]

TEMPLATES_DIR = Path(__file__).resolve().parent / "templates"

COLLECTED_DATA_PLACEHOLDER = "{{COLLECTED_DATA}}"
CONVERSATION_HISTORY_PLACEHOLDER = "{{CONVERSATION_HISTORY}}"


@lru_cache
def load_template(file_name: str) -> str:
    return (TEMPLATES_DIR / file_name).read_text(encoding="utf-8")


def _pretty_json(value: Any) -> str:
    return json.dumps(value, indent=2, ensure_ascii=False, default=str)


@dataclass(frozen=True)
class PromptVariant:
    name: str
    description: str
    template_file: str
    temperature: float
    user_content: UserContentMode
    # None means every parsed reply is published.
    publish_statuses: frozenset[str] | None
    # Reply key holding the record to publish; None publishes the whole exchange.
    record_key: str | None
    json_mode: bool = True

    def render_system_prompt(
        self,
        *,
        collected_data: dict[str, Any] | None = None,
        conversation_history: list[Any] | None = None,
    ) -> str:
        return (
            load_template(self.template_file)
            .replace(COLLECTED_DATA_PLACEHOLDER, _pretty_json(collected_data or {}))
            .replace(CONVERSATION_HISTORY_PLACEHOLDER, _pretty_json(conversation_history or []))
        )

    def build_user_content(self, *, data: str, consent: bool | None, user: str | None) -> str:
        if self.user_content == "envelope":
            return json.dumps({"consent": bool(consent), "data": data, "user": user})
        return data

    def should_publish(self, status: str | None) -> bool:
        if self.publish_statuses is None:
            return True
        return status in self.publish_statuses

    def build_record(self, *, reply: dict[str, Any], user_input: str, timestamp: str) -> dict[str, Any]:
        if self.record_key is None:
            return {"timestamp": timestamp, "user_input": user_input, "ai_response": reply}

        section = reply.get(self.record_key)
        record: dict[str, Any] = {"consent": True, "timestamp": timestamp}
        if isinstance(section, dict):
            record.update(section)
        return record


PROMPT_VARIANTS: dict[str, PromptVariant] = {
    v.name: v
    for v in (
        PromptVariant(
            name="conversational",
            description="Step-by-step intake that accumulates collected_data across turns.",
            template_file="conversational.txt",
            temperature=0.5,
            user_content="text",
            publish_statuses=frozenset({"COMPLETE"}),
            record_key="collected_data",
        ),
        PromptVariant(
            name="validator",
            description="Consent check, trust score and compact standardization.",
            template_file="validator.txt",
            temperature=0.2,
            user_content="envelope",
            publish_statuses=frozenset({"OK"}),
            record_key="standardized",
        ),
        PromptVariant(
            name="clinical",
            description="Medical insights and empathetic message followed by a fenced JSON record.",
            template_file="clinical.txt",
            temperature=0.2,
            user_content="envelope",
            publish_statuses=frozenset({"OK"}),
            record_key="standardized_data",
            json_mode=False,
        ),
        PromptVariant(
            name="extraction",
            description="Single-turn extraction; every reply is published with its input.",
            template_file="extraction.txt",
            temperature=0.3,
            user_content="text",
            publish_statuses=None,
            record_key=None,
        ),
    )
}

DEFAULT_VARIANT = "conversational"


def get_variant(name: str) -> PromptVariant:
    variant = PROMPT_VARIANTS.get(name)
    if variant is None:
        supported = ", ".join(sorted(PROMPT_VARIANTS))
        raise BusinessValidationError(f"Unknown prompt variant. Supported values: {supported}.")
    return variant
