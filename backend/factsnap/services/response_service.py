"""Response Service — threaded answers under a question.

Invariants:
    - Create requires an open (unexpired) parent question
    - Edit requires ownership and an open parent; delete requires ownership only
    - Deleting a response with images spawns a detached media-cleanup task
    - Summaries cover at most the first 20 responses (oldest first)
"""

import logging

from factsnap.core.domain_types import QuestionId, ResponseId, UserId
from factsnap.core.enforce_access import MutationAction, check_response_mutation
from factsnap.core.entities import (
    CreateResponseParams, EditResponseParams, PageParams, Response,
)
from factsnap.core.errors import ErrorContext, NotFoundError
from factsnap.core.expiration import utc_now
from factsnap.core.repository_protocols import ResponseRepository, Summarizer
from factsnap.core.validation import (
    check_image_urls, check_page, check_response_body, first_error,
)
from factsnap.infrastructure.background import BackgroundTaskRunner
from factsnap.services.question_service import QuestionService
from factsnap.services.summary_prompt import (
    MAX_SUMMARY_RESPONSES, NO_RESPONSES_SUMMARY, build_summary_prompt,
)

logger = logging.getLogger(__name__)


def _raise_if(error) -> None:
    if error:
        raise error


class ResponseService:
    def __init__(
        self,
        repo: ResponseRepository,
        questions: QuestionService,
        summarizer: Summarizer,
        runner: BackgroundTaskRunner,
    ):
        self.repo = repo
        self.questions = questions
        self.summarizer = summarizer
        self.runner = runner

    async def create_response(
        self, caller_id: UserId, params: CreateResponseParams,
    ) -> Response:
        _raise_if(first_error(
            check_response_body(params.body),
            check_image_urls(params.image_urls),
        ))
        await self.questions.ensure_question_open(caller_id, params.question_id)
        return await self.repo.create_response(caller_id, params)

    async def get_responses(
        self, caller_id: UserId, question_id: QuestionId, page: PageParams,
    ) -> list[Response]:
        _raise_if(check_page(page.limit, page.offset))
        await self.questions.get_question_by_id(caller_id, question_id)
        return await self.repo.get_responses_by_question_id(
            caller_id, question_id, page,
        )

    async def _load_for_mutation(
        self, caller_id: UserId, question_id: QuestionId, response_id: ResponseId,
    ):
        response = await self.repo.get_response_by_id(caller_id, response_id)
        if response.question_id != question_id:
            raise NotFoundError(
                "Response", str(response_id),
                ErrorContext(question_id=str(question_id)),
            )
        parent = await self.questions.get_question_by_id(caller_id, question_id)
        return response, parent

    async def edit_response(
        self, caller_id: UserId, question_id: QuestionId, params: EditResponseParams,
    ) -> Response:
        response, parent = await self._load_for_mutation(
            caller_id, question_id, params.response_id,
        )
        _raise_if(check_response_mutation(
            response, parent, caller_id, MutationAction.EDIT, utc_now(),
        ))
        _raise_if(first_error(
            check_response_body(params.body),
            check_image_urls(params.image_urls or []),
        ))
        return await self.repo.edit_response(caller_id, params)

    async def delete_response(
        self, caller_id: UserId, question_id: QuestionId, response_id: ResponseId,
    ) -> None:
        response, parent = await self._load_for_mutation(
            caller_id, question_id, response_id,
        )
        _raise_if(check_response_mutation(
            response, parent, caller_id, MutationAction.DELETE, utc_now(),
        ))
        await self.repo.delete_response(caller_id, question_id, response_id)
        if response.image_urls:
            self.runner.spawn(
                f"media-cleanup:{response_id}",
                self.questions.delete_media(response.image_urls),
            )

    async def summarize_responses(
        self, caller_id: UserId, question_id: QuestionId,
    ) -> str:
        question = await self.questions.get_question_by_id(caller_id, question_id)
        responses = await self.repo.get_responses_by_question_id(
            caller_id, question_id, PageParams(limit=MAX_SUMMARY_RESPONSES, offset=0),
        )
        if not responses:
            return NO_RESPONSES_SUMMARY
        summary = await self.summarizer.prompt(build_summary_prompt(question, responses))
        logger.info(
            "Responses summarized",
            extra={"question_id": str(question_id), "count": len(responses)},
        )
        return summary
