"""API Dependencies — caller identity and service providers.

Invariants:
    - Caller identity comes from the X-User-Id header, verified upstream;
      a missing or blank header is UnauthenticatedError (401)
    - Services are built once in the lifespan and read from app.state
"""

from dataclasses import dataclass

from fastapi import Header, Request

from factsnap.core.domain_types import UserId
from factsnap.core.errors import UnauthenticatedError
from factsnap.infrastructure.background import BackgroundTaskRunner
from factsnap.services.question_service import QuestionService
from factsnap.services.response_service import ResponseService
from factsnap.services.user_service import UserService


@dataclass
class Services:
    questions: QuestionService
    responses: ResponseService
    users: UserService
    runner: BackgroundTaskRunner


async def get_caller_id(
    x_user_id: str | None = Header(None, alias="X-User-Id"),
) -> UserId:
    if not x_user_id or not x_user_id.strip():
        raise UnauthenticatedError()
    return UserId(x_user_id.strip())


def _services(request: Request) -> Services:
    services = getattr(request.app.state, "services", None)
    if services is None:
        raise RuntimeError("Services not initialized")
    return services


def get_question_service(request: Request) -> QuestionService:
    return _services(request).questions


def get_response_service(request: Request) -> ResponseService:
    return _services(request).responses


def get_user_service(request: Request) -> UserService:
    return _services(request).users
