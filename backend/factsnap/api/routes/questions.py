"""Question Routes — CRUD, polls, votes and the nearby feed.

Invariants:
    - Every route resolves the caller from X-User-Id before touching a service
    - Routes translate request bodies into core params and entities into
      response schemas; no business rules live here
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status

from factsnap.api.dependencies import get_caller_id, get_question_service
from factsnap.core.domain_types import QuestionId, UserId
from factsnap.core.entities import PageParams
from factsnap.schemas.question import (
    CreatePollBody, CreateQuestionBody, EditQuestionBody, FeedBody,
    PollCreatedOut, QuestionListOut, QuestionOut, VotePollBody,
)
from factsnap.services.question_service import QuestionService

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/questions", tags=["questions"])


def _list_out(questions, page: PageParams) -> QuestionListOut:
    return QuestionListOut(
        questions=[QuestionOut.from_entity(q) for q in questions],
        limit=page.limit,
        offset=page.offset,
    )


@router.post(
    "", response_model=QuestionOut, status_code=status.HTTP_201_CREATED,
)
async def create_question(
    body: CreateQuestionBody,
    caller_id: UserId = Depends(get_caller_id),
    service: QuestionService = Depends(get_question_service),
):
    question = await service.create_question(caller_id, body.to_params())
    return QuestionOut.from_entity(question)


@router.put("", response_model=QuestionOut)
async def edit_question(
    body: EditQuestionBody,
    caller_id: UserId = Depends(get_caller_id),
    service: QuestionService = Depends(get_question_service),
):
    question = await service.edit_question(caller_id, body.to_params())
    return QuestionOut.from_entity(question)


@router.post("/feed", response_model=QuestionListOut)
async def get_feed(
    body: FeedBody,
    caller_id: UserId = Depends(get_caller_id),
    service: QuestionService = Depends(get_question_service),
):
    """Open questions within radius_miles of the given point, newest first."""
    page = body.page.to_params()
    questions = await service.get_feed(caller_id, body.to_feed(), page)
    return _list_out(questions, page)


@router.post(
    "/poll", response_model=PollCreatedOut, status_code=status.HTTP_201_CREATED,
)
async def create_poll(
    body: CreatePollBody,
    caller_id: UserId = Depends(get_caller_id),
    service: QuestionService = Depends(get_question_service),
):
    poll_id = await service.create_poll(caller_id, body.to_params())
    return PollCreatedOut(poll_id=poll_id)


@router.post("/poll/vote", status_code=status.HTTP_204_NO_CONTENT)
async def vote_poll(
    body: VotePollBody,
    caller_id: UserId = Depends(get_caller_id),
    service: QuestionService = Depends(get_question_service),
):
    await service.vote_poll(caller_id, body.poll, body.option)


@router.get("/by-user/{user_id}", response_model=QuestionListOut)
async def get_questions_by_user(
    user_id: str,
    limit: int = Query(20),
    offset: int = Query(0),
    caller_id: UserId = Depends(get_caller_id),
    service: QuestionService = Depends(get_question_service),
):
    page = PageParams(limit=limit, offset=offset)
    questions = await service.get_questions_by_user(caller_id, UserId(user_id), page)
    return _list_out(questions, page)


@router.get("/responded/{user_id}", response_model=QuestionListOut)
async def get_questions_responded_by(
    user_id: str,
    limit: int = Query(20),
    offset: int = Query(0),
    caller_id: UserId = Depends(get_caller_id),
    service: QuestionService = Depends(get_question_service),
):
    page = PageParams(limit=limit, offset=offset)
    questions = await service.get_questions_responded_by(
        caller_id, UserId(user_id), page,
    )
    return _list_out(questions, page)


@router.get("/{question_id}", response_model=QuestionOut)
async def get_question(
    question_id: UUID,
    caller_id: UserId = Depends(get_caller_id),
    service: QuestionService = Depends(get_question_service),
):
    question = await service.get_question_by_id(caller_id, QuestionId(question_id))
    return QuestionOut.from_entity(question)


@router.delete("/{question_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_question(
    question_id: UUID,
    caller_id: UserId = Depends(get_caller_id),
    service: QuestionService = Depends(get_question_service),
):
    await service.delete_question(caller_id, QuestionId(question_id))
