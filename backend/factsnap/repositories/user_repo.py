"""User Repository — device registration, push fan-out lookup, and activity counts."""

import logging

from sqlalchemy import func, select

from factsnap.core.domain_types import UserId
from factsnap.core.entities import UserStatistics
from factsnap.core.expiration import utc_now
from factsnap.core.geo import GeoPoint
from factsnap.infrastructure.database import DatabaseSessionManager
from factsnap.models.question import Question as QuestionModel
from factsnap.models.response import Response as ResponseModel
from factsnap.models.user import User as UserModel
from factsnap.repositories.geo_sql import within_radius

logger = logging.getLogger(__name__)


class UserRepo:
    def __init__(self, db: DatabaseSessionManager):
        self._db = db

    async def upsert_device(
        self, user_id: UserId, push_token: str | None, position: GeoPoint | None,
    ) -> None:
        """Record the caller's push token and last known position."""
        async with self._db.transaction() as session:
            row = await session.get(UserModel, user_id)
            if row is None:
                row = UserModel(id=user_id)
                session.add(row)
            if push_token is not None:
                row.push_token = push_token
            if position is not None:
                row.latitude = position.latitude
                row.longitude = position.longitude
            row.updated_at = utc_now()

    async def get_push_tokens_in_radius(
        self, center: GeoPoint, radius_miles: float, exclude_user_id: UserId,
    ) -> list[str]:
        async with self._db.session() as session:
            tokens = (await session.scalars(
                select(UserModel.push_token)
                .where(
                    UserModel.push_token.is_not(None),
                    UserModel.latitude.is_not(None),
                    UserModel.longitude.is_not(None),
                    UserModel.id != exclude_user_id,
                    within_radius(
                        UserModel.latitude, UserModel.longitude, center, radius_miles,
                    ),
                )
            )).all()
        return list(tokens)

    async def get_user_statistics(self, user_id: UserId) -> UserStatistics:
        """Questions and responses ever authored by the user, expired ones included."""
        async with self._db.session() as session:
            question_count = await session.scalar(
                select(func.count())
                .select_from(QuestionModel)
                .where(QuestionModel.author_id == user_id)
            )
            response_count = await session.scalar(
                select(func.count())
                .select_from(ResponseModel)
                .where(ResponseModel.author_id == user_id)
            )
        return UserStatistics(
            question_count=question_count or 0,
            response_count=response_count or 0,
        )
