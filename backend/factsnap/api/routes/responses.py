"""Response Routes — threaded answers and summaries under a question."""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status

from factsnap.api.dependencies import get_caller_id, get_response_service
from factsnap.core.domain_types import QuestionId, ResponseId, UserId
from factsnap.core.entities import PageParams
from factsnap.schemas.response import (
    CreateResponseBody, EditResponseBody, ResponseListOut, ResponseOut, SummaryOut,
)
from factsnap.services.response_service import ResponseService

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/questions/{question_id}", tags=["responses"])


@router.post(
    "/responses", response_model=ResponseOut, status_code=status.HTTP_201_CREATED,
)
async def create_response(
    question_id: UUID,
    body: CreateResponseBody,
    caller_id: UserId = Depends(get_caller_id),
    service: ResponseService = Depends(get_response_service),
):
    response = await service.create_response(caller_id, body.to_params(question_id))
    return ResponseOut.from_entity(response)


@router.get("/responses", response_model=ResponseListOut)
async def list_responses(
    question_id: UUID,
    limit: int = Query(20),
    offset: int = Query(0),
    caller_id: UserId = Depends(get_caller_id),
    service: ResponseService = Depends(get_response_service),
):
    """Oldest first."""
    page = PageParams(limit=limit, offset=offset)
    responses = await service.get_responses(caller_id, QuestionId(question_id), page)
    return ResponseListOut(
        responses=[ResponseOut.from_entity(r) for r in responses],
        limit=page.limit,
        offset=page.offset,
    )


@router.put("/responses/{response_id}", response_model=ResponseOut)
async def edit_response(
    question_id: UUID,
    response_id: UUID,
    body: EditResponseBody,
    caller_id: UserId = Depends(get_caller_id),
    service: ResponseService = Depends(get_response_service),
):
    response = await service.edit_response(
        caller_id, QuestionId(question_id), body.to_params(response_id),
    )
    return ResponseOut.from_entity(response)


@router.delete(
    "/responses/{response_id}", status_code=status.HTTP_204_NO_CONTENT,
)
async def delete_response(
    question_id: UUID,
    response_id: UUID,
    caller_id: UserId = Depends(get_caller_id),
    service: ResponseService = Depends(get_response_service),
):
    await service.delete_response(
        caller_id, QuestionId(question_id), ResponseId(response_id),
    )


@router.post("/summary", response_model=SummaryOut)
async def summarize_responses(
    question_id: UUID,
    caller_id: UserId = Depends(get_caller_id),
    service: ResponseService = Depends(get_response_service),
):
    summary = await service.summarize_responses(caller_id, QuestionId(question_id))
    return SummaryOut(question_id=question_id, summary=summary)
