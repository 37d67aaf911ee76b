"""Boundary Protocols — contracts between core and shell.

Invariants:
    - Core NEVER imports from shell: dependency arrows point inward only
    - All IO operations accessed through Protocol types
    - Implementations provided by shell via dependency injection

Design Decisions:
    - Protocol over ABC: structural subtyping, tests pass plain fakes
"""

from datetime import datetime
from typing import Any, Protocol

from factsnap.core.domain_types import (
    PollId, PollOptionId, QuestionId, ResponseId, UserId,
)
from factsnap.core.entities import (
    CreatePollParams, CreateQuestionParams, CreateResponseParams,
    EditQuestionParams, EditResponseParams, FeedParams, PageParams,
    Question, Response, UserStatistics,
)
from factsnap.core.geo import GeoPoint


class QuestionRepository(Protocol):
    """Question/location/poll/vote persistence, implemented by the shell."""
    async def create_question(
        self, author_id: UserId, params: CreateQuestionParams,
        created_at: datetime, expires_at: datetime,
    ) -> QuestionId: ...
    async def create_poll(
        self, author_id: UserId, params: CreatePollParams,
    ) -> PollId: ...
    async def is_poll_expired(self, poll_id: PollId) -> bool: ...
    async def vote_poll(
        self, voter_id: UserId, poll_id: PollId, option_id: PollOptionId | None,
    ) -> None: ...
    async def get_question_by_id(
        self, caller_id: UserId, question_id: QuestionId,
    ) -> Question: ...
    async def edit_question(
        self, author_id: UserId, params: EditQuestionParams,
    ) -> Question: ...
    async def delete_question(
        self, author_id: UserId, question_id: QuestionId,
    ) -> list[str]: ...
    async def get_questions_in_radius_feed(
        self, caller_id: UserId, feed: FeedParams, page: PageParams,
    ) -> list[Question]: ...
    async def get_questions_by_user_id(
        self, caller_id: UserId, author_id: UserId, page: PageParams,
    ) -> list[Question]: ...
    async def get_questions_responded_by_user_id(
        self, caller_id: UserId, user_id: UserId, page: PageParams,
    ) -> list[Question]: ...


class ResponseRepository(Protocol):
    """Threaded answer persistence, implemented by the shell."""
    async def create_response(
        self, author_id: UserId, params: CreateResponseParams,
    ) -> Response: ...
    async def get_response_by_id(
        self, caller_id: UserId, response_id: ResponseId,
    ) -> Response: ...
    async def get_responses_by_question_id(
        self, caller_id: UserId, question_id: QuestionId, page: PageParams,
    ) -> list[Response]: ...
    async def edit_response(
        self, author_id: UserId, params: EditResponseParams,
    ) -> Response: ...
    async def delete_response(
        self, author_id: UserId, question_id: QuestionId, response_id: ResponseId,
    ) -> None: ...


class UserRepository(Protocol):
    """Device registration and proximity lookup, implemented by the shell."""
    async def upsert_device(
        self, user_id: UserId, push_token: str | None, position: GeoPoint | None,
    ) -> None: ...
    async def get_push_tokens_in_radius(
        self, center: GeoPoint, radius_miles: float, exclude_user_id: UserId,
    ) -> list[str]: ...
    async def get_user_statistics(self, user_id: UserId) -> UserStatistics: ...


class NotificationSender(Protocol):
    """Push notification collaborator."""
    async def send(
        self, tokens: list[str], title: str, body: str,
        data: dict[str, Any] | None = None,
    ) -> None: ...


class MediaStore(Protocol):
    """Object storage collaborator. The core only ever deletes."""
    async def delete(self, key_or_url: str) -> None: ...


class Summarizer(Protocol):
    """LLM collaborator — output is an opaque string."""
    async def prompt(self, text: str) -> str: ...
