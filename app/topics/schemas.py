from __future__ import annotations

from typing import Any, Literal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

# Hedera entity id: shard.realm.num
TOPIC_ID_PATTERN = r"^\d+\.\d+\.\d+$"

MessageOrder = Literal["asc", "desc"]


class PublishIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    payload: Any = Field(
        default=None,
        description=(
            "Any JSON value. String leaves are PII-redacted before the value is serialized "
            "and submitted to the topic."
        ),
        examples=[{"note": "Started dandelion root tea in March"}],
    )
    fee_workflow: bool = Field(
        default=False,
        validation_alias=AliasChoices("fee_workflow", "feeWorkflow"),
        description="Require the dedicated payer account (topics with custom token fees).",
    )


class PublishOut(BaseModel):
    ok: bool = Field(description="True when the transaction reached consensus.")
    status: str = Field(description="Receipt status name.", examples=["SUCCESS"])
    transaction_id: str = Field(description="Ledger transaction id.")
    topic_id: str = Field(description="Topic the message was submitted to.")


class TopicMessageOut(BaseModel):
    sequence_number: int
    consensus_timestamp: str
    content: str = Field(description="UTF-8 decoded message body.")


class TopicMessagesOut(BaseModel):
    topic_id: str
    items: list[TopicMessageOut]
