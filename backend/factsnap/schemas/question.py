"""Question Schemas — request bodies and response shapes for /api/v1/questions.

Invariants:
    - Requests carry raw strings for category/duration/filter; parsing into
      domain enums happens in to_params() so bad values surface as
      InvalidArgumentError with the offending field
    - Responses mirror core entities; content is {"type": ..., "data": ...}
"""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from factsnap.core.domain_types import (
    PollId, PollOptionId, QuestionId, parse_category, parse_page_filter_type,
)
from factsnap.core.entities import (
    CreatePollParams, CreateQuestionParams, EditQuestionParams, FeedParams,
    PageFilter, PageParams, Poll, Question,
)
from factsnap.core.expiration import parse_duration
from factsnap.core.geo import GeoPoint, Location


class LocationBody(BaseModel):
    latitude: float
    longitude: float
    name: str | None = Field(None, max_length=200)
    address: str | None = Field(None, max_length=500)

    def to_location(self) -> Location:
        return Location(
            latitude=self.latitude, longitude=self.longitude,
            name=self.name, address=self.address,
        )


class _QuestionFields(BaseModel):
    title: str
    body: str | None = None
    category: str
    location: LocationBody

    @field_validator("title")
    @classmethod
    def strip_title(cls, v: str) -> str:
        return v.strip()

    @field_validator("body")
    @classmethod
    def blank_body_is_none(cls, v: str | None) -> str | None:
        if v is None:
            return None
        v = v.strip()
        return v or None


class CreateQuestionBody(_QuestionFields):
    duration: str = Field(description='Go-style duration, e.g. "90m" or "1h30m"')
    image_urls: list[str] = Field(default_factory=list)

    def to_params(self) -> CreateQuestionParams:
        return CreateQuestionParams(
            title=self.title,
            body=self.body,
            category=parse_category(self.category),
            location=self.location.to_location(),
            duration=parse_duration(self.duration),
            image_urls=self.image_urls,
        )


class EditQuestionBody(_QuestionFields):
    question_id: UUID

    def to_params(self) -> EditQuestionParams:
        return EditQuestionParams(
            question_id=QuestionId(self.question_id),
            title=self.title,
            body=self.body,
            category=parse_category(self.category),
            location=self.location.to_location(),
        )


class CreatePollBody(BaseModel):
    question_id: UUID
    option_labels: list[str]

    def to_params(self) -> CreatePollParams:
        return CreatePollParams(
            question_id=QuestionId(self.question_id),
            option_labels=[label.strip() for label in self.option_labels],
        )


class VotePollBody(BaseModel):
    """option_id=null retracts the caller's vote."""
    poll_id: UUID
    option_id: UUID | None = None

    @property
    def poll(self) -> PollId:
        return PollId(self.poll_id)

    @property
    def option(self) -> PollOptionId | None:
        return PollOptionId(self.option_id) if self.option_id else None


class PageBody(BaseModel):
    limit: int = 20
    offset: int = 0
    filter_type: str | None = None
    filter_value: str = ""

    def to_params(self) -> PageParams:
        return PageParams(
            limit=self.limit,
            offset=self.offset,
            filter=PageFilter(
                type=parse_page_filter_type(self.filter_type),
                value=self.filter_value,
            ),
        )


class FeedBody(BaseModel):
    latitude: float
    longitude: float
    radius_miles: float
    page: PageBody = Field(default_factory=PageBody)

    def to_feed(self) -> FeedParams:
        return FeedParams(
            center=GeoPoint(self.latitude, self.longitude),
            radius_miles=self.radius_miles,
        )


# ─── Responses ──────────────────────────────────────────────────

class PollOptionOut(BaseModel):
    id: UUID
    label: str
    position: int
    num_votes: int
    is_selected: bool


class PollOut(BaseModel):
    id: UUID
    question_id: UUID
    created_at: datetime
    expires_at: datetime
    options: list[PollOptionOut]
    num_total_votes: int
    selected_option_id: UUID | None

    @classmethod
    def from_entity(cls, poll: Poll) -> "PollOut":
        return cls(
            id=poll.id,
            question_id=poll.question_id,
            created_at=poll.created_at,
            expires_at=poll.expires_at,
            options=[
                PollOptionOut(
                    id=o.id, label=o.label, position=o.position,
                    num_votes=o.num_votes, is_selected=o.is_selected,
                )
                for o in poll.options
            ],
            num_total_votes=poll.num_total_votes,
            selected_option_id=poll.selected_option_id,
        )


class ContentOut(BaseModel):
    type: str
    data: PollOut | None = None


class QuestionOut(BaseModel):
    id: UUID
    author_id: str
    title: str
    body: str | None
    category: str
    content: ContentOut
    location: LocationBody
    image_urls: list[str]
    is_owned: bool
    responses_count: int
    created_at: datetime
    edited_at: datetime
    expires_at: datetime

    @classmethod
    def from_entity(cls, q: Question) -> "QuestionOut":
        data = q.content.data
        return cls(
            id=q.id,
            author_id=q.author_id,
            title=q.title,
            body=q.body,
            category=q.category.value,
            content=ContentOut(
                type=q.content.type.value,
                data=PollOut.from_entity(data) if data is not None else None,
            ),
            location=LocationBody(
                latitude=q.location.latitude,
                longitude=q.location.longitude,
                name=q.location.name,
                address=q.location.address,
            ),
            image_urls=q.image_urls,
            is_owned=q.is_owned,
            responses_count=q.responses_count,
            created_at=q.created_at,
            edited_at=q.edited_at,
            expires_at=q.expires_at,
        )


class QuestionListOut(BaseModel):
    questions: list[QuestionOut]
    limit: int
    offset: int


class PollCreatedOut(BaseModel):
    poll_id: UUID
