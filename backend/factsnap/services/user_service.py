"""User Service — device registration and per-user activity statistics."""

import logging

from factsnap.core.domain_types import UserId
from factsnap.core.entities import UserStatistics
from factsnap.core.errors import InvalidArgumentError
from factsnap.core.geo import GeoPoint
from factsnap.core.repository_protocols import UserRepository
from factsnap.core.validation import check_coordinates

logger = logging.getLogger(__name__)


class UserService:
    def __init__(self, repo: UserRepository):
        self.repo = repo

    async def register_device(
        self,
        caller_id: UserId,
        push_token: str | None,
        latitude: float | None,
        longitude: float | None,
    ) -> None:
        if (latitude is None) != (longitude is None):
            raise InvalidArgumentError(
                "latitude and longitude must be provided together", field="location",
            )
        position = None
        if latitude is not None and longitude is not None:
            error = check_coordinates(latitude, longitude)
            if error:
                raise error
            position = GeoPoint(latitude, longitude)
        await self.repo.upsert_device(caller_id, push_token, position)
        logger.info("Device registered", extra={"user_id": caller_id})

    async def get_user_statistics(self, caller_id: UserId) -> UserStatistics:
        return await self.repo.get_user_statistics(caller_id)
