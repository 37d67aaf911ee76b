"""Authorization State Machine — ownership and expiration gates for every mutation.

Invariants:
    - All functions are PURE: the caller supplies a freshly read entity and `now`
    - Return UnauthorizedError on violation, None on success
    - Question mutations pass two gates: ownership, then expiration
    - The expiration gate is bypassed for DELETE only (questions and responses)
    - Voting checks only poll expiration; any caller may vote

Design Decisions:
    - Gate table keyed by action: the bypass rule lives in one place
    - Evaluated at call time against a fresh read; never against a cached snapshot
"""

from datetime import datetime
from enum import Enum

from factsnap.core.entities import Question, Response
from factsnap.core.errors import ErrorContext, UnauthorizedError
from factsnap.core.expiration import is_expired


class MutationAction(str, Enum):
    EDIT = "edit"
    DELETE = "delete"
    CREATE_POLL = "create_poll"


EXPIRATION_BYPASS = frozenset({MutationAction.DELETE})

NOT_QUESTION_OWNER = "you must own this question"
NOT_RESPONSE_OWNER = "you must own this response"
QUESTION_EXPIRED = "this question has expired"
POLL_EXPIRED = "this poll has expired"


def check_ownership(
    author_id: str, caller_id: str, message: str, context: ErrorContext | None = None,
) -> UnauthorizedError | None:
    if author_id != caller_id:
        return UnauthorizedError(message, context)
    return None


def check_question_open(
    question: Question, now: datetime,
) -> UnauthorizedError | None:
    """Expiration gate. Open while now <= expires_at."""
    if is_expired(question.expires_at, now):
        return UnauthorizedError(
            QUESTION_EXPIRED, ErrorContext(question_id=str(question.id)),
        )
    return None


def check_question_mutation(
    question: Question, caller_id: str, action: MutationAction, now: datetime,
) -> UnauthorizedError | None:
    """Both gates for EditQuestion / DeleteQuestion / CreatePoll."""
    ctx = ErrorContext(question_id=str(question.id), user_id=caller_id)
    error = check_ownership(question.author_id, caller_id, NOT_QUESTION_OWNER, ctx)
    if error:
        return error
    if action in EXPIRATION_BYPASS:
        return None
    return check_question_open(question, now)


def check_poll_vote(poll_expired: bool) -> UnauthorizedError | None:
    """Single gate for voting — ownership is irrelevant."""
    if poll_expired:
        return UnauthorizedError(POLL_EXPIRED)
    return None


def check_response_mutation(
    response: Response,
    parent: Question,
    caller_id: str,
    action: MutationAction,
    now: datetime,
) -> UnauthorizedError | None:
    """EditResponse needs ownership plus an open parent; DeleteResponse needs ownership."""
    ctx = ErrorContext(
        question_id=str(parent.id), response_id=str(response.id), user_id=caller_id,
    )
    error = check_ownership(response.author_id, caller_id, NOT_RESPONSE_OWNER, ctx)
    if error:
        return error
    if action in EXPIRATION_BYPASS:
        return None
    return check_question_open(parent, now)
