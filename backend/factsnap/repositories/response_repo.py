"""Response Repository — threaded answers plus the question's denormalized count.

Invariants:
    - create/delete adjust questions.responses_count in the same transaction
    - Listing order is (created_at ASC, id ASC): oldest answers first
    - edit/delete statements carry the author predicate
"""

import logging
import uuid

from sqlalchemy import delete, select, update

from factsnap.core.domain_types import QuestionId, ResponseId, UserId
from factsnap.core.entities import (
    CreateResponseParams, EditResponseParams, PageParams, Response,
)
from factsnap.core.errors import ErrorContext, NotFoundError, UnauthorizedError
from factsnap.core.expiration import utc_now
from factsnap.infrastructure.database import DatabaseSessionManager
from factsnap.models.question import Question as QuestionModel
from factsnap.models.response import Response as ResponseModel
from factsnap.repositories.converters import to_response

logger = logging.getLogger(__name__)


class ResponseRepo:
    """SQLAlchemy implementation of core.repository_protocols.ResponseRepository."""

    def __init__(self, db: DatabaseSessionManager):
        self._db = db

    async def create_response(
        self, author_id: UserId, params: CreateResponseParams,
    ) -> Response:
        now = utc_now()
        async with self._db.transaction() as session:
            row = ResponseModel(
                id=uuid.uuid4(),
                question_id=params.question_id,
                author_id=author_id,
                body=params.body,
                image_urls=list(params.image_urls),
                created_at=now,
                edited_at=now,
            )
            session.add(row)
            await session.flush()

            result = await session.execute(
                update(QuestionModel)
                .where(QuestionModel.id == params.question_id)
                .values(responses_count=QuestionModel.responses_count + 1)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                raise NotFoundError("Question", str(params.question_id))
            response = to_response(row, author_id)
        logger.info(
            "Response created",
            extra={"question_id": str(params.question_id), "response_id": str(row.id)},
        )
        return response

    async def get_response_by_id(
        self, caller_id: UserId, response_id: ResponseId,
    ) -> Response:
        async with self._db.session() as session:
            row = await session.get(ResponseModel, response_id)
            if row is None:
                raise NotFoundError("Response", str(response_id))
            return to_response(row, caller_id)

    async def get_responses_by_question_id(
        self, caller_id: UserId, question_id: QuestionId, page: PageParams,
    ) -> list[Response]:
        async with self._db.session() as session:
            rows = (await session.scalars(
                select(ResponseModel)
                .where(ResponseModel.question_id == question_id)
                .order_by(ResponseModel.created_at.asc(), ResponseModel.id.asc())
                .limit(page.limit)
                .offset(page.offset)
            )).all()
            return [to_response(row, caller_id) for row in rows]

    async def edit_response(
        self, author_id: UserId, params: EditResponseParams,
    ) -> Response:
        values = {"body": params.body, "edited_at": utc_now()}
        if params.image_urls is not None:
            values["image_urls"] = list(params.image_urls)

        async with self._db.transaction() as session:
            result = await session.execute(
                update(ResponseModel)
                .where(
                    ResponseModel.id == params.response_id,
                    ResponseModel.author_id == author_id,
                )
                .values(**values)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                raise UnauthorizedError(
                    "response is no longer editable",
                    ErrorContext(response_id=str(params.response_id), user_id=author_id),
                )
            row = await session.get(
                ResponseModel, params.response_id, populate_existing=True,
            )
            return to_response(row, author_id)

    async def delete_response(
        self, author_id: UserId, question_id: QuestionId, response_id: ResponseId,
    ) -> None:
        async with self._db.transaction() as session:
            result = await session.execute(
                delete(ResponseModel)
                .where(
                    ResponseModel.id == response_id,
                    ResponseModel.question_id == question_id,
                    ResponseModel.author_id == author_id,
                )
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                raise NotFoundError("Response", str(response_id))

            await session.execute(
                update(QuestionModel)
                .where(
                    QuestionModel.id == question_id,
                    QuestionModel.responses_count > 0,
                )
                .values(responses_count=QuestionModel.responses_count - 1)
                .execution_options(synchronize_session=False)
            )
        logger.info(
            "Response deleted",
            extra={"question_id": str(question_id), "response_id": str(response_id)},
        )
