"""Question + Location ORM — a time-bounded question anchored to one location.

Invariants:
    - expires_at > created_at, written once at insert, never updated
    - content_type is the content tag ("None" | "Poll"); poll rows exist only when "Poll"
    - Exactly one Location per Question; created and edited in the same transaction
    - Deleting a question cascades to its location, poll, options, votes and responses
      at the storage layer (ON DELETE CASCADE)

Design Decisions:
    - Location lat/lon as plain floats with a composite index: the feed's bounding-box
      prefilter uses it, the haversine predicate runs in SQL on top
    - image_urls as JSON: portable between Postgres and the SQLite test store
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    String, Text, Integer, Float, DateTime, JSON, ForeignKey, Index,
    CheckConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.dialects.postgresql import UUID

from factsnap.db.base import Base


class Question(Base):
    """Question aggregate root — owns its location, poll and responses."""
    __tablename__ = "questions"
    __table_args__ = (
        Index("ix_questions_feed_order", "created_at", "id"),
        Index("ix_questions_expires_at", "expires_at"),
        CheckConstraint(
            "expires_at > created_at", name="ck_questions_expires_after_created",
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    author_id: Mapped[str] = mapped_column(
        String(128), nullable=False, index=True,
    )
    title: Mapped[str] = mapped_column(String(120), nullable=False)
    body: Mapped[str | None] = mapped_column(Text, nullable=True)
    category: Mapped[str] = mapped_column(String(20), nullable=False)
    content_type: Mapped[str] = mapped_column(
        String(10), nullable=False, default="None",
    )
    image_urls: Mapped[list] = mapped_column(
        JSON, nullable=False, default=list,
    )
    responses_count: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    edited_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    expires_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False,
    )

    location: Mapped["Location"] = relationship(
        "Location", back_populates="question", uselist=False,
        lazy="joined", passive_deletes=True,
    )


class Location(Base):
    """Location entity — no lifecycle independent of its question."""
    __tablename__ = "locations"
    __table_args__ = (
        Index("ix_locations_lat_lon", "latitude", "longitude"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    question_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("questions.id", ondelete="CASCADE"),
        nullable=False, unique=True,
    )
    latitude: Mapped[float] = mapped_column(Float, nullable=False)
    longitude: Mapped[float] = mapped_column(Float, nullable=False)
    name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    address: Mapped[str | None] = mapped_column(String(500), nullable=True)

    question: Mapped["Question"] = relationship(
        "Question", back_populates="location",
    )
