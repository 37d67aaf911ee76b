"""Question Repository — transactional CRUD, polls, votes and the geo feed.

Invariants:
    - create_question: question row + location row in one transaction
    - create_poll: poll row + option rows + content-tag flip in one transaction;
      a partial poll is never observable
    - vote_poll: delete-then-conditional-insert in one transaction (replace semantics)
    - Poll payload is loaded only for rows tagged POLL, never eagerly joined
    - Feed order is (created_at DESC, id DESC) so offset pages are reproducible
    - Feed enrichment runs one task per POLL row; first failure cancels the rest
      and fails the whole call; output order equals base row order

Design Decisions:
    - Each filter variant is its own query builder (no dynamic composition)
    - Edit/delete statements carry the author (and, for edit, not-expired)
      predicate, so a row that changed after the service's gate check is not touched
    - Enrichment tasks open their own sessions: an AsyncSession is not shareable
      across concurrent tasks
"""

import asyncio
import logging
import uuid
from datetime import datetime

from sqlalchemy import case, delete, func, insert, select, update
from sqlalchemy.orm import contains_eager

from factsnap.core.domain_types import (
    Category, ContentType, PageFilterType, PollId, PollOptionId,
    QuestionId, UserId, parse_category,
)
from factsnap.core.entities import (
    CreatePollParams, CreateQuestionParams, EditQuestionParams, FeedParams,
    PageParams, Poll, PollOption, Question, QuestionContent,
)
from factsnap.core.errors import (
    ConflictError, ErrorContext, InvalidArgumentError, NotFoundError,
    UnauthorizedError,
)
from factsnap.core.expiration import as_utc, is_expired, utc_now
from factsnap.infrastructure.database import DatabaseSessionManager
from factsnap.models.poll import Poll as PollModel
from factsnap.models.poll import PollOption as PollOptionModel
from factsnap.models.poll import PollVote as PollVoteModel
from factsnap.models.question import Location as LocationModel
from factsnap.models.question import Question as QuestionModel
from factsnap.models.response import Response as ResponseModel
from factsnap.repositories.converters import to_question
from factsnap.repositories.geo_sql import within_radius

logger = logging.getLogger(__name__)

# Concurrent first votes by the same voter can both see "no row" and race on
# the unique (poll_id, voter_id) key; the loser retries and replaces.
_VOTE_ATTEMPTS = 3


def _first_leaf(group: ExceptionGroup) -> Exception:
    exc: Exception = group
    while isinstance(exc, ExceptionGroup):
        exc = exc.exceptions[0]
    return exc


class QuestionRepo:
    """SQLAlchemy implementation of core.repository_protocols.QuestionRepository."""

    def __init__(self, db: DatabaseSessionManager):
        self._db = db

    # ─── Writes ────────────────────────────────────────────────

    async def create_question(
        self,
        author_id: UserId,
        params: CreateQuestionParams,
        created_at: datetime,
        expires_at: datetime,
    ) -> QuestionId:
        async with self._db.transaction() as session:
            row = QuestionModel(
                id=uuid.uuid4(),
                author_id=author_id,
                title=params.title,
                body=params.body,
                category=params.category.value,
                content_type=ContentType.NONE.value,
                image_urls=list(params.image_urls),
                responses_count=0,
                created_at=created_at,
                edited_at=created_at,
                expires_at=expires_at,
            )
            session.add(row)
            await session.flush()

            session.add(LocationModel(
                question_id=row.id,
                latitude=params.location.latitude,
                longitude=params.location.longitude,
                name=params.location.name,
                address=params.location.address,
            ))
        logger.info(
            "Question created", extra={"question_id": str(row.id), "user_id": author_id},
        )
        return QuestionId(row.id)

    async def create_poll(
        self, author_id: UserId, params: CreatePollParams,
    ) -> PollId:
        poll_id = uuid.uuid4()
        async with self._db.transaction() as session:
            session.add(PollModel(id=poll_id, question_id=params.question_id))
            await session.flush()

            await session.execute(
                insert(PollOptionModel),
                [
                    {
                        "id": uuid.uuid4(),
                        "poll_id": poll_id,
                        "label": label,
                        "position": position,
                    }
                    for position, label in enumerate(params.option_labels)
                ],
            )

            result = await session.execute(
                update(QuestionModel)
                .where(
                    QuestionModel.id == params.question_id,
                    QuestionModel.content_type == ContentType.NONE.value,
                )
                .values(content_type=ContentType.POLL.value)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                raise ConflictError(
                    "question already has a poll", field="question_id",
                    context=ErrorContext(question_id=str(params.question_id)),
                )
        logger.info(
            "Poll created",
            extra={"question_id": str(params.question_id), "poll_id": str(poll_id)},
        )
        return PollId(poll_id)

    async def is_poll_expired(self, poll_id: PollId) -> bool:
        """Derived from the owning question's expires_at."""
        async with self._db.session() as session:
            expires_at = await session.scalar(
                select(QuestionModel.expires_at)
                .join(PollModel, PollModel.question_id == QuestionModel.id)
                .where(PollModel.id == poll_id)
            )
        if expires_at is None:
            raise NotFoundError("Poll", str(poll_id))
        return is_expired(as_utc(expires_at))

    async def vote_poll(
        self, voter_id: UserId, poll_id: PollId, option_id: PollOptionId | None,
    ) -> None:
        """Replace the voter's vote; option_id=None retracts it."""
        for attempt in range(1, _VOTE_ATTEMPTS + 1):
            try:
                await self._replace_vote(voter_id, poll_id, option_id)
                return
            except ConflictError:
                if attempt == _VOTE_ATTEMPTS:
                    raise
                logger.warning(
                    "Concurrent vote collision, retrying",
                    extra={"poll_id": str(poll_id), "user_id": voter_id, "attempt": attempt},
                )

    async def _replace_vote(
        self, voter_id: UserId, poll_id: PollId, option_id: PollOptionId | None,
    ) -> None:
        async with self._db.transaction() as session:
            await session.execute(
                delete(PollVoteModel)
                .where(
                    PollVoteModel.poll_id == poll_id,
                    PollVoteModel.voter_id == voter_id,
                )
                .execution_options(synchronize_session=False)
            )
            if option_id is None:
                return

            belongs = await session.scalar(
                select(PollOptionModel.id).where(
                    PollOptionModel.id == option_id,
                    PollOptionModel.poll_id == poll_id,
                )
            )
            if belongs is None:
                raise NotFoundError("Poll option", str(option_id))
            session.add(PollVoteModel(
                poll_id=poll_id, option_id=option_id, voter_id=voter_id,
            ))

    async def edit_question(
        self, author_id: UserId, params: EditQuestionParams,
    ) -> Question:
        """Update question + location together, then re-read with content attached."""
        now = utc_now()
        async with self._db.transaction() as session:
            result = await session.execute(
                update(QuestionModel)
                .where(
                    QuestionModel.id == params.question_id,
                    QuestionModel.author_id == author_id,
                    QuestionModel.expires_at >= now,
                )
                .values(
                    title=params.title,
                    body=params.body,
                    category=params.category.value,
                    edited_at=now,
                )
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                raise UnauthorizedError(
                    "question is no longer editable",
                    ErrorContext(question_id=str(params.question_id), user_id=author_id),
                )

            result = await session.execute(
                update(LocationModel)
                .where(LocationModel.question_id == params.question_id)
                .values(
                    latitude=params.location.latitude,
                    longitude=params.location.longitude,
                    name=params.location.name,
                    address=params.location.address,
                )
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                raise NotFoundError("Location", str(params.question_id))

        return await self.get_question_by_id(author_id, params.question_id)

    async def delete_question(
        self, author_id: UserId, question_id: QuestionId,
    ) -> list[str]:
        """Hard delete. Returns every media URL orphaned by the cascade."""
        async with self._db.transaction() as session:
            question_urls = await session.scalar(
                select(QuestionModel.image_urls).where(QuestionModel.id == question_id)
            )
            response_urls = (await session.scalars(
                select(ResponseModel.image_urls)
                .where(ResponseModel.question_id == question_id)
            )).all()

            result = await session.execute(
                delete(QuestionModel)
                .where(
                    QuestionModel.id == question_id,
                    QuestionModel.author_id == author_id,
                )
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                raise NotFoundError("Question", str(question_id))

        orphaned = list(question_urls or [])
        for urls in response_urls:
            orphaned.extend(urls or [])
        logger.info(
            "Question deleted", extra={"question_id": str(question_id), "user_id": author_id},
        )
        return orphaned

    # ─── Reads ─────────────────────────────────────────────────

    async def get_question_by_id(
        self, caller_id: UserId, question_id: QuestionId,
    ) -> Question:
        async with self._db.session() as session:
            row = await session.scalar(
                select(QuestionModel).where(QuestionModel.id == question_id)
            )
            if row is None:
                raise NotFoundError("Question", str(question_id))
            question = to_question(row, caller_id)
        return await self._attach_content(question, caller_id)

    async def get_questions_in_radius_feed(
        self, caller_id: UserId, feed: FeedParams, page: PageParams,
    ) -> list[Question]:
        now = utc_now()
        if page.filter.type == PageFilterType.NONE:
            stmt = self._feed_query(feed, now)
        elif page.filter.type == PageFilterType.QUESTION_CATEGORY:
            category = parse_category(page.filter.value)
            stmt = self._feed_by_category_query(feed, now, category)
        else:
            raise InvalidArgumentError(
                f"page filter {page.filter.type} is unsupported or invalid",
                field="filter_type",
            )
        return await self._fetch_page(stmt, caller_id, page)

    async def get_questions_by_user_id(
        self, caller_id: UserId, author_id: UserId, page: PageParams,
    ) -> list[Question]:
        stmt = (
            select(QuestionModel)
            .where(QuestionModel.author_id == author_id)
            .order_by(QuestionModel.created_at.desc(), QuestionModel.id.desc())
        )
        return await self._fetch_page(stmt, caller_id, page)

    async def get_questions_responded_by_user_id(
        self, caller_id: UserId, user_id: UserId, page: PageParams,
    ) -> list[Question]:
        responded = (
            select(ResponseModel.question_id)
            .where(ResponseModel.author_id == user_id)
            .distinct()
        )
        stmt = (
            select(QuestionModel)
            .where(QuestionModel.id.in_(responded))
            .order_by(QuestionModel.created_at.desc(), QuestionModel.id.desc())
        )
        return await self._fetch_page(stmt, caller_id, page)

    # ─── Feed query shapes ─────────────────────────────────────

    def _feed_query(self, feed: FeedParams, now: datetime):
        """Baseline: every open question within the radius."""
        return (
            select(QuestionModel)
            .join(LocationModel, LocationModel.question_id == QuestionModel.id)
            .options(contains_eager(QuestionModel.location))
            .where(
                QuestionModel.expires_at >= now,
                within_radius(
                    LocationModel.latitude, LocationModel.longitude,
                    feed.center, feed.radius_miles,
                ),
            )
            .order_by(QuestionModel.created_at.desc(), QuestionModel.id.desc())
        )

    def _feed_by_category_query(
        self, feed: FeedParams, now: datetime, category: Category,
    ):
        """Baseline plus a category equality predicate."""
        return (
            select(QuestionModel)
            .join(LocationModel, LocationModel.question_id == QuestionModel.id)
            .options(contains_eager(QuestionModel.location))
            .where(
                QuestionModel.expires_at >= now,
                QuestionModel.category == category.value,
                within_radius(
                    LocationModel.latitude, LocationModel.longitude,
                    feed.center, feed.radius_miles,
                ),
            )
            .order_by(QuestionModel.created_at.desc(), QuestionModel.id.desc())
        )

    async def _fetch_page(self, stmt, caller_id: UserId, page: PageParams) -> list[Question]:
        async with self._db.session() as session:
            rows = (await session.scalars(
                stmt.limit(page.limit).offset(page.offset)
            )).all()
            questions = [to_question(row, caller_id) for row in rows]
        return await self._attach_contents(questions, caller_id)

    # ─── Content enrichment ────────────────────────────────────

    async def _attach_contents(
        self, questions: list[Question], caller_id: UserId,
    ) -> list[Question]:
        """Fan out one task per POLL row; results land in their input slot."""
        results: list[Question | None] = [None] * len(questions)

        async def _enrich(index: int, question: Question) -> None:
            results[index] = await self._attach_content(question, caller_id)

        try:
            async with asyncio.TaskGroup() as group:
                for index, question in enumerate(questions):
                    if question.content.type == ContentType.POLL:
                        group.create_task(_enrich(index, question))
                    else:
                        question.content = QuestionContent.none()
                        results[index] = question
        except ExceptionGroup as eg:
            raise _first_leaf(eg) from None
        return results

    async def _attach_content(self, question: Question, caller_id: UserId) -> Question:
        """Branch on the content tag; only POLL triggers the secondary fetch."""
        if question.content.type == ContentType.POLL:
            question.content = QuestionContent.poll(
                await self._get_poll(question, caller_id),
            )
        else:
            question.content = QuestionContent.none()
        return question

    async def _get_poll(self, question: Question, caller_id: UserId) -> Poll:
        async with self._db.session() as session:
            poll_row = await session.scalar(
                select(PollModel).where(PollModel.question_id == question.id)
            )
            if poll_row is None:
                raise NotFoundError("Poll", context=ErrorContext(question_id=str(question.id)))

            option_rows = (await session.scalars(
                select(PollOptionModel)
                .where(PollOptionModel.poll_id == poll_row.id)
                .order_by(PollOptionModel.position)
            )).all()

            tallies = (await session.execute(
                select(
                    PollVoteModel.option_id,
                    func.count(PollVoteModel.id),
                    func.max(case((PollVoteModel.voter_id == caller_id, 1), else_=0)),
                )
                .where(PollVoteModel.poll_id == poll_row.id)
                .group_by(PollVoteModel.option_id)
            )).all()

        poll = Poll(
            id=PollId(poll_row.id),
            question_id=question.id,
            created_at=as_utc(poll_row.created_at),
            expires_at=question.expires_at,
            options=[
                PollOption(
                    id=PollOptionId(row.id), label=row.label, position=row.position,
                )
                for row in option_rows
            ],
        )
        by_id = {option.id: option for option in poll.options}
        for option_id, num_votes, selected in tallies:
            option = by_id.get(option_id)
            if option is None:
                continue
            option.num_votes = num_votes
            option.is_selected = bool(selected)
            poll.num_total_votes += num_votes
        return poll
