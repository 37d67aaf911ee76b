"""Response Schemas — request bodies and response shapes for question responses."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from factsnap.core.domain_types import QuestionId, ResponseId
from factsnap.core.entities import CreateResponseParams, EditResponseParams, Response


class CreateResponseBody(BaseModel):
    body: str
    image_urls: list[str] = Field(default_factory=list)

    def to_params(self, question_id: UUID) -> CreateResponseParams:
        return CreateResponseParams(
            question_id=QuestionId(question_id),
            body=self.body.strip(),
            image_urls=self.image_urls,
        )


class EditResponseBody(BaseModel):
    """image_urls omitted (null) keeps the stored list unchanged."""
    body: str
    image_urls: list[str] | None = None

    def to_params(self, response_id: UUID) -> EditResponseParams:
        return EditResponseParams(
            response_id=ResponseId(response_id),
            body=self.body.strip(),
            image_urls=self.image_urls,
        )


class ResponseOut(BaseModel):
    id: UUID
    question_id: UUID
    author_id: str
    body: str
    image_urls: list[str]
    is_owned: bool
    created_at: datetime
    edited_at: datetime

    @classmethod
    def from_entity(cls, r: Response) -> "ResponseOut":
        return cls(
            id=r.id,
            question_id=r.question_id,
            author_id=r.author_id,
            body=r.body,
            image_urls=r.image_urls,
            is_owned=r.is_owned,
            created_at=r.created_at,
            edited_at=r.edited_at,
        )


class ResponseListOut(BaseModel):
    responses: list[ResponseOut]
    limit: int
    offset: int


class SummaryOut(BaseModel):
    question_id: UUID
    summary: str
