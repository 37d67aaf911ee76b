"""Row -> entity converters. `is_owned` is derived from the caller here."""

from factsnap.core.domain_types import (
    Category, ContentType, QuestionId, ResponseId, UserId,
)
from factsnap.core.entities import Question, QuestionContent, Response
from factsnap.core.expiration import as_utc
from factsnap.core.geo import Location
from factsnap.models.question import Question as QuestionModel
from factsnap.models.response import Response as ResponseModel


def to_question(row: QuestionModel, caller_id: str) -> Question:
    """Base question. Content carries only the tag; the payload is attached later."""
    loc = row.location
    return Question(
        id=QuestionId(row.id),
        author_id=UserId(row.author_id),
        title=row.title,
        body=row.body,
        category=Category(row.category),
        content=QuestionContent(ContentType(row.content_type)),
        location=Location(
            latitude=loc.latitude,
            longitude=loc.longitude,
            name=loc.name,
            address=loc.address,
        ),
        created_at=as_utc(row.created_at),
        edited_at=as_utc(row.edited_at),
        expires_at=as_utc(row.expires_at),
        image_urls=list(row.image_urls or []),
        is_owned=row.author_id == caller_id,
        responses_count=row.responses_count,
    )


def to_response(row: ResponseModel, caller_id: str) -> Response:
    return Response(
        id=ResponseId(row.id),
        question_id=QuestionId(row.question_id),
        author_id=UserId(row.author_id),
        body=row.body,
        created_at=as_utc(row.created_at),
        edited_at=as_utc(row.edited_at),
        image_urls=list(row.image_urls or []),
        is_owned=row.author_id == caller_id,
    )
