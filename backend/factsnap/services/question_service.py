"""Question Service — authorization, validation and side-effect orchestration.

Invariants:
    - Every mutation (edit, delete, create poll) gates on a fresh repository read
    - Ownership is checked before expiration; DELETE bypasses the expiration gate
    - Voting checks only poll expiration (any caller may vote)
    - Validation failures short-circuit before any write
    - Notification fan-out and media cleanup run detached; their failures are
      logged by the runner and never reach the caller

Design Decisions:
    - Gates are pure functions in core/enforce_access.py; the service raises
      whatever they return
"""

import logging

from factsnap.core.domain_types import (
    ContentType, PollId, PollOptionId, QuestionId, UserId,
)
from factsnap.core.enforce_access import (
    MutationAction, check_poll_vote, check_question_mutation, check_question_open,
)
from factsnap.core.entities import (
    CreatePollParams, CreateQuestionParams, EditQuestionParams, FeedParams,
    PageParams, Question,
)
from factsnap.core.errors import ConflictError, ErrorContext
from factsnap.core.expiration import compute_expires_at, utc_now
from factsnap.core.repository_protocols import (
    MediaStore, NotificationSender, QuestionRepository, UserRepository,
)
from factsnap.core.validation import (
    check_body, check_coordinates, check_image_urls, check_page,
    check_poll_option_labels, check_radius, check_title, first_error,
)
from factsnap.infrastructure.background import BackgroundTaskRunner

logger = logging.getLogger(__name__)

NEW_QUESTION_TITLE = "New question nearby"


def _raise_if(error) -> None:
    if error:
        raise error


class QuestionService:
    def __init__(
        self,
        repo: QuestionRepository,
        user_repo: UserRepository,
        notifier: NotificationSender,
        media: MediaStore,
        runner: BackgroundTaskRunner,
        notification_radius_miles: float = 25.0,
        feed_max_radius_miles: float = 20.0,
    ):
        self.repo = repo
        self.user_repo = user_repo
        self.notifier = notifier
        self.media = media
        self.runner = runner
        self.notification_radius_miles = notification_radius_miles
        self.feed_max_radius_miles = feed_max_radius_miles

    # ─── Questions ─────────────────────────────────────────────

    async def create_question(
        self, caller_id: UserId, params: CreateQuestionParams,
    ) -> Question:
        _raise_if(first_error(
            check_title(params.title),
            check_body(params.body),
            check_coordinates(params.location.latitude, params.location.longitude),
            check_image_urls(params.image_urls),
        ))
        created_at = utc_now()
        expires_at = compute_expires_at(created_at, params.duration)

        question_id = await self.repo.create_question(
            caller_id, params, created_at, expires_at,
        )
        question = await self.repo.get_question_by_id(caller_id, question_id)

        self.runner.spawn(
            f"notify-nearby:{question_id}",
            self._notify_nearby(caller_id, question),
        )
        return question

    async def _notify_nearby(self, author_id: UserId, question: Question) -> None:
        tokens = await self.user_repo.get_push_tokens_in_radius(
            question.location.point, self.notification_radius_miles, author_id,
        )
        if not tokens:
            return
        await self.notifier.send(
            tokens,
            NEW_QUESTION_TITLE,
            question.title,
            {"question_id": str(question.id)},
        )
        logger.info(
            "Nearby users notified",
            extra={"question_id": str(question.id), "count": len(tokens)},
        )

    async def get_question_by_id(
        self, caller_id: UserId, question_id: QuestionId,
    ) -> Question:
        return await self.repo.get_question_by_id(caller_id, question_id)

    async def ensure_question_open(
        self, caller_id: UserId, question_id: QuestionId,
    ) -> Question:
        """Fresh read plus expiration gate; used by the response subsystem."""
        question = await self.repo.get_question_by_id(caller_id, question_id)
        _raise_if(check_question_open(question, utc_now()))
        return question

    async def edit_question(
        self, caller_id: UserId, params: EditQuestionParams,
    ) -> Question:
        current = await self.repo.get_question_by_id(caller_id, params.question_id)
        _raise_if(check_question_mutation(
            current, caller_id, MutationAction.EDIT, utc_now(),
        ))
        _raise_if(first_error(
            check_title(params.title),
            check_body(params.body),
            check_coordinates(params.location.latitude, params.location.longitude),
        ))
        return await self.repo.edit_question(caller_id, params)

    async def delete_question(
        self, caller_id: UserId, question_id: QuestionId,
    ) -> None:
        current = await self.repo.get_question_by_id(caller_id, question_id)
        _raise_if(check_question_mutation(
            current, caller_id, MutationAction.DELETE, utc_now(),
        ))
        orphaned = await self.repo.delete_question(caller_id, question_id)
        if orphaned:
            self.runner.spawn(
                f"media-cleanup:{question_id}", self.delete_media(orphaned),
            )

    async def delete_media(self, urls: list[str]) -> None:
        """Best-effort removal of every URL; one failure does not stop the rest."""
        failed = 0
        for url in urls:
            try:
                await self.media.delete(url)
            except Exception as e:
                failed += 1
                logger.warning(f"Media delete failed for {url}: {e}")
        if failed:
            logger.error(f"Media cleanup left {failed} of {len(urls)} objects orphaned")

    # ─── Polls ─────────────────────────────────────────────────

    async def create_poll(
        self, caller_id: UserId, params: CreatePollParams,
    ) -> PollId:
        current = await self.repo.get_question_by_id(caller_id, params.question_id)
        _raise_if(check_question_mutation(
            current, caller_id, MutationAction.CREATE_POLL, utc_now(),
        ))
        if current.content.type == ContentType.POLL:
            raise ConflictError(
                "question already has a poll", field="question_id",
                context=ErrorContext(question_id=str(params.question_id)),
            )
        _raise_if(check_poll_option_labels(params.option_labels))
        return await self.repo.create_poll(caller_id, params)

    async def vote_poll(
        self, caller_id: UserId, poll_id: PollId, option_id: PollOptionId | None,
    ) -> None:
        _raise_if(check_poll_vote(await self.repo.is_poll_expired(poll_id)))
        await self.repo.vote_poll(caller_id, poll_id, option_id)

    # ─── Listings ──────────────────────────────────────────────

    async def get_feed(
        self, caller_id: UserId, feed: FeedParams, page: PageParams,
    ) -> list[Question]:
        _raise_if(first_error(
            check_coordinates(feed.center.latitude, feed.center.longitude),
            check_radius(feed.radius_miles, self.feed_max_radius_miles),
            check_page(page.limit, page.offset),
        ))
        return await self.repo.get_questions_in_radius_feed(caller_id, feed, page)

    async def get_questions_by_user(
        self, caller_id: UserId, author_id: UserId, page: PageParams,
    ) -> list[Question]:
        _raise_if(check_page(page.limit, page.offset))
        return await self.repo.get_questions_by_user_id(caller_id, author_id, page)

    async def get_questions_responded_by(
        self, caller_id: UserId, user_id: UserId, page: PageParams,
    ) -> list[Question]:
        _raise_if(check_page(page.limit, page.offset))
        return await self.repo.get_questions_responded_by_user_id(
            caller_id, user_id, page,
        )
