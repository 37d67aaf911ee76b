"""Domain Entities — the shapes the core returns and accepts.

Invariants:
    - QuestionContent is a tagged union: type NONE carries no data, type POLL
      carries a Poll. The tag is always authoritative.
    - Poll.expires_at mirrors the owning question's expires_at (no own field)
    - Poll.options are ordered by position (0-based, submission order)
    - is_owned / is_selected are derived per caller, never stored
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta

from factsnap.core.domain_types import (
    Category, ContentType, PageFilterType,
    QuestionId, PollId, PollOptionId, ResponseId, UserId,
)
from factsnap.core.geo import GeoPoint, Location


@dataclass
class PollOption:
    id: PollOptionId
    label: str
    position: int
    num_votes: int = 0
    is_selected: bool = False


@dataclass
class Poll:
    id: PollId
    question_id: QuestionId
    created_at: datetime
    expires_at: datetime
    options: list[PollOption] = field(default_factory=list)
    num_total_votes: int = 0

    @property
    def selected_option_id(self) -> PollOptionId | None:
        for option in self.options:
            if option.is_selected:
                return option.id
        return None


@dataclass
class QuestionContent:
    """Content union. Build with QuestionContent.none() / QuestionContent.poll()."""
    type: ContentType
    data: Poll | None = None

    @classmethod
    def none(cls) -> "QuestionContent":
        return cls(ContentType.NONE, None)

    @classmethod
    def poll(cls, poll: Poll) -> "QuestionContent":
        return cls(ContentType.POLL, poll)


@dataclass
class Question:
    id: QuestionId
    author_id: UserId
    title: str
    body: str | None
    category: Category
    content: QuestionContent
    location: Location
    created_at: datetime
    edited_at: datetime
    expires_at: datetime
    image_urls: list[str] = field(default_factory=list)
    is_owned: bool = False
    responses_count: int = 0


@dataclass
class Response:
    id: ResponseId
    question_id: QuestionId
    author_id: UserId
    body: str
    created_at: datetime
    edited_at: datetime
    image_urls: list[str] = field(default_factory=list)
    is_owned: bool = False


# ─── Parameters ─────────────────────────────────────────────────

@dataclass
class PageFilter:
    type: PageFilterType = PageFilterType.NONE
    value: str = ""


@dataclass
class PageParams:
    limit: int = 20
    offset: int = 0
    filter: PageFilter = field(default_factory=PageFilter)


@dataclass
class FeedParams:
    center: GeoPoint
    radius_miles: float


@dataclass
class CreateQuestionParams:
    title: str
    category: Category
    location: Location
    duration: timedelta
    body: str | None = None
    image_urls: list[str] = field(default_factory=list)


@dataclass
class EditQuestionParams:
    question_id: QuestionId
    title: str
    category: Category
    location: Location
    body: str | None = None


@dataclass
class CreatePollParams:
    question_id: QuestionId
    option_labels: list[str]


@dataclass
class CreateResponseParams:
    question_id: QuestionId
    body: str
    image_urls: list[str] = field(default_factory=list)


@dataclass
class EditResponseParams:
    response_id: ResponseId
    body: str
    image_urls: list[str] | None = None


@dataclass
class UserStatistics:
    question_count: int
    response_count: int
