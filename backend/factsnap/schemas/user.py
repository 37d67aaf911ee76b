"""User Schemas — device registration and activity statistics."""

from pydantic import BaseModel, Field, field_validator


class RegisterDeviceBody(BaseModel):
    push_token: str | None = Field(None, max_length=255)
    latitude: float | None = None
    longitude: float | None = None

    @field_validator("push_token")
    @classmethod
    def strip_token(cls, v: str | None) -> str | None:
        if v is None:
            return None
        return v.strip() or None


class UserStatisticsOut(BaseModel):
    question_count: int
    response_count: int
