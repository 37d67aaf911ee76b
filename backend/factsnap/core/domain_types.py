"""Domain Types — identity wrappers and closed enums shared across the codebase.

Invariants:
    - QuestionId, PollId, PollOptionId, ResponseId wrap UUIDs
    - UserId is the opaque identity string verified upstream
    - Enums parse case-insensitively; unknown values raise InvalidArgumentError

Design Decisions:
    - NewType over dataclass wrappers: zero runtime cost, full type-checker support
    - str Enums: serialize to JSON and to DB string columns without custom encoders
"""

from enum import Enum
from typing import NewType
from uuid import UUID

from factsnap.core.errors import InvalidArgumentError


# ─── Identity Types ──────────────────────────────────────────────

UserId = NewType("UserId", str)
QuestionId = NewType("QuestionId", UUID)
PollId = NewType("PollId", UUID)
PollOptionId = NewType("PollOptionId", UUID)
ResponseId = NewType("ResponseId", UUID)


# ─── Enums ───────────────────────────────────────────────────────

class Category(str, Enum):
    """Question category — maps to the `category` column."""
    RESTAURANT = "Restaurant"
    STORE = "Store"
    TRANSPORTATION = "Transportation"
    EVENT = "Event"
    GENERAL = "General"


class ContentType(str, Enum):
    """Content tag — discriminant for the question content union."""
    NONE = "None"
    POLL = "Poll"


class PageFilterType(str, Enum):
    """Feed filter variants. Each variant is a distinct query shape."""
    NONE = "none"
    QUESTION_CATEGORY = "question_category"


def _parse_enum(enum_cls: type[Enum], raw: str, label: str, field: str):
    for member in enum_cls:
        if member.value.lower() == raw.lower():
            return member
    raise InvalidArgumentError(f"{raw} is not a valid {label}", field=field)


def parse_category(raw: str) -> Category:
    return _parse_enum(Category, raw, "category", "category")


def parse_content_type(raw: str) -> ContentType:
    return _parse_enum(ContentType, raw, "content type", "content_type")


def parse_page_filter_type(raw: str | None) -> PageFilterType:
    """Empty filter means no filter."""
    if not raw:
        return PageFilterType.NONE
    return _parse_enum(PageFilterType, raw, "page filter type", "filter_type")
