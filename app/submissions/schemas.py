from __future__ import annotations

from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from app.prompts.variants import DEFAULT_VARIANT
from app.topics.schemas import TOPIC_ID_PATTERN


class SubmissionPayload(BaseModel):
    consent: bool | None = Field(
        default=None,
        description="Explicit `false` short-circuits the request with CONSENT_MISSING.",
    )
    data: str = Field(
        default="",
        max_length=20_000,
        description="Free-text health narrative. PII-redacted before it reaches the LLM.",
        examples=["Diagnosed with breast cancer in January 2023, started chemo in March."],
    )
    user: str | None = Field(default=None, description="Optional user label.")
    collected_data: dict[str, Any] | None = Field(
        default=None,
        description="Structured data gathered in earlier turns (conversational variants).",
    )
    conversation_history: list[Any] | None = Field(
        default=None,
        description="Earlier turns, oldest first.",
    )


class SubmissionRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    topic_id: str | None = Field(
        default=None,
        pattern=TOPIC_ID_PATTERN,
        validation_alias=AliasChoices("topic_id", "topicId"),
        description="Target topic; falls back to DEFAULT_TOPIC_ID.",
        examples=["0.0.6531943"],
    )
    variant: str = Field(
        default=DEFAULT_VARIANT,
        description="Prompt variant: conversational, validator, clinical or extraction.",
    )
    fee_workflow: bool = Field(
        default=False,
        validation_alias=AliasChoices("fee_workflow", "feeWorkflow"),
        description="Require the dedicated payer account when publishing.",
    )
    output_topic: str | None = Field(
        default=None,
        pattern=TOPIC_ID_PATTERN,
        validation_alias=AliasChoices("output_topic", "outputTopic"),
        description="Publish the result here instead of `topic_id`.",
    )
    payload: SubmissionPayload


class SubmissionOut(BaseModel):
    status: str | None = Field(
        default=None,
        description="CONSENT_MISSING, or the `status` field of the LLM reply.",
        examples=["IN_PROGRESS", "COMPLETE", "OK"],
    )
    variant: str
    consent: bool | None = None
    latest_response: dict[str, Any] | None = Field(
        default=None, description="Parsed LLM reply."
    )
    published: bool = Field(default=False, description="True when a ledger submission was attempted.")
    ledger_status: str | None = Field(
        default=None, description="Receipt status, or ERROR when the submission failed."
    )
    ledger_error: str | None = None
    transaction_id: str | None = None
    topic_id: str | None = None
