"""User Device ORM — push token and last known position per identity.

Invariants:
    - id is the upstream identity string (no local credential data)
    - push_token / position may be absent; such users never receive proximity pushes
"""

from datetime import datetime, timezone

from sqlalchemy import String, Float, DateTime, Index
from sqlalchemy.orm import Mapped, mapped_column

from factsnap.db.base import Base


class User(Base):
    __tablename__ = "users"
    __table_args__ = (
        Index("ix_users_lat_lon", "latitude", "longitude"),
    )

    id: Mapped[str] = mapped_column(String(128), primary_key=True)
    push_token: Mapped[str | None] = mapped_column(String(255), nullable=True)
    latitude: Mapped[float | None] = mapped_column(Float, nullable=True)
    longitude: Mapped[float | None] = mapped_column(Float, nullable=True)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
