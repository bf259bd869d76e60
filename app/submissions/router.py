from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Request, status

from app.core.ledger.deps import get_ledger_client
from app.core.llm.deps import get_openai_client
from app.core.llm.openai_client import OpenAIError, OpenAIUnavailableError
from app.core.settings import get_settings
from app.prompts.variants import get_variant
from app.submissions.schemas import SubmissionOut, SubmissionRequest
from app.submissions.service import SubmissionService, UnparseableReplyError

router = APIRouter(prefix="/submissions", tags=["submissions"])
logger = logging.getLogger("app.submissions")


@router.post(
    "",
    response_model=SubmissionOut,
    summary="Submit health data through a prompt variant",
    description=(
        "Redacts the free text, runs it through the selected prompt variant and, when the "
        "variant's completion condition holds, publishes the redacted record to a ledger "
        "topic.\n\n"
        "A ledger failure does not fail the request: the LLM reply is returned with "
        "`ledger_status=ERROR`."
    ),
)
async def create_submission(
    body: SubmissionRequest,
    request: Request,
    openai_client=Depends(get_openai_client),
    ledger_client=Depends(get_ledger_client),
) -> SubmissionOut:
    """
    IMPORTANT (safety):
    - The narrative, prompts and LLM output are never logged.
    - Only redacted records are written to the ledger.
    """

    variant = get_variant(body.variant)
    request_id = getattr(request.state, "request_id", None)

    svc = SubmissionService(
        llm_client=openai_client,
        ledger_client=ledger_client,
        default_topic_id=get_settings().default_topic_id,
    )
    try:
        return await svc.submit(
            payload=body.payload,
            variant=variant,
            topic_id=body.topic_id,
            output_topic=body.output_topic,
            fee_workflow=body.fee_workflow,
        )
    except OpenAIUnavailableError:
        detail = "LLM service unavailable"
    except OpenAIError:
        detail = "LLM service failed"
    except UnparseableReplyError as exc:
        detail = str(exc)

    logger.info(
        "Submission failed",
        extra={"request_id": request_id, "variant": variant.name, "outcome": "llm_error"},
    )
    raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=detail)
