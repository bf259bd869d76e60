"""Topic agent: follow a topic, validate each message with a prompt variant.

Messages are expected to be `{"consent": bool, "data": str, "user": str | null}`.
Anything else is treated as raw text without consent.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Callable

from app.core.ledger.mirror import MirrorNodeClient, TopicMessage, follow_topic
from app.core.llm.openai_client import OpenAIError
from app.domain.exceptions import BusinessValidationError
from app.prompts.variants import PromptVariant
from app.submissions.schemas import SubmissionOut, SubmissionPayload
from app.submissions.service import SubmissionService, UnparseableReplyError

logger = logging.getLogger("app.agent")

ResultHandler = Callable[[TopicMessage, SubmissionOut], None]


def parse_topic_payload(text: str) -> SubmissionPayload:
    try:
        data = json.loads(text)
    except ValueError:
        data = None

    if not isinstance(data, dict):
        logger.warning("Topic message is not a JSON object; treating as raw text")
        return SubmissionPayload(consent=False, data=text)

    raw_data = data.get("data")
    user = data.get("user")
    return SubmissionPayload(
        consent=bool(data.get("consent")),
        data="" if raw_data is None else str(raw_data),
        user=user if isinstance(user, str) else None,
    )


class TopicAgent:
    def __init__(
        self,
        *,
        service: SubmissionService,
        variant: PromptVariant,
        mirror: MirrorNodeClient,
        poll_seconds: float,
        output_topic: str | None = None,
    ):
        self._service = service
        self._variant = variant
        self._mirror = mirror
        self._poll_seconds = poll_seconds
        self._output_topic = output_topic

    async def handle_message(self, message: TopicMessage) -> SubmissionOut | None:
        """Process one message; LLM failures are logged and skipped so the agent keeps going."""

        payload = parse_topic_payload(message.content)
        try:
            return await self._service.submit(
                payload=payload,
                variant=self._variant,
                output_topic=self._output_topic,
                publish=self._output_topic is not None,
            )
        except (OpenAIError, UnparseableReplyError) as exc:
            logger.warning(
                "Agent could not process message: %s",
                type(exc).__name__,
                extra={"sequence_number": message.sequence_number, "outcome": "llm_error"},
            )
            return None

    async def run(
        self,
        *,
        topic_id: str,
        on_result: ResultHandler,
        after_sequence: int | None = None,
        max_messages: int | None = None,
    ) -> int:
        """Follow `topic_id` and hand each processed result to `on_result`.

        Returns the number of messages seen when `max_messages` is reached.
        """

        if self._output_topic == topic_id:
            raise BusinessValidationError("Output topic must differ from the followed topic")

        seen = 0
        async for message in follow_topic(
            self._mirror,
            topic_id=topic_id,
            poll_seconds=self._poll_seconds,
            after_sequence=after_sequence,
        ):
            seen += 1
            result = await self.handle_message(message)
            if result is not None:
                on_result(message, result)
            if max_messages is not None and seen >= max_messages:
                break
        return seen
