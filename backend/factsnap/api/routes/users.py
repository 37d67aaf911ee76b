"""User Routes — device registration and the caller's activity statistics."""

from fastapi import APIRouter, Depends, status

from factsnap.api.dependencies import get_caller_id, get_user_service
from factsnap.core.domain_types import UserId
from factsnap.schemas.user import RegisterDeviceBody, UserStatisticsOut
from factsnap.services.user_service import UserService

router = APIRouter(prefix="/api/v1/users", tags=["users"])


@router.put("/me/device", status_code=status.HTTP_204_NO_CONTENT)
async def register_device(
    body: RegisterDeviceBody,
    caller_id: UserId = Depends(get_caller_id),
    service: UserService = Depends(get_user_service),
):
    await service.register_device(
        caller_id, body.push_token, body.latitude, body.longitude,
    )


@router.get("/stats", response_model=UserStatisticsOut)
async def get_user_statistics(
    caller_id: UserId = Depends(get_caller_id),
    service: UserService = Depends(get_user_service),
):
    stats = await service.get_user_statistics(caller_id)
    return UserStatisticsOut(
        question_count=stats.question_count,
        response_count=stats.response_count,
    )
