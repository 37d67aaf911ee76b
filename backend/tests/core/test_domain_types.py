"""Domain Types — enum values and case-insensitive parsing."""

from uuid import uuid4

import pytest

from factsnap.core.domain_types import (
    Category, ContentType, PageFilterType, QuestionId, UserId,
    parse_category, parse_content_type, parse_page_filter_type,
)
from factsnap.core.errors import InvalidArgumentError


def test_identity_types_wrap_values():
    uid = uuid4()
    assert QuestionId(uid) == uid
    assert UserId("user_1") == "user_1"


def test_category_has_five_members():
    assert {c.value for c in Category} == {
        "Restaurant", "Store", "Transportation", "Event", "General",
    }


def test_parse_category_is_case_insensitive():
    assert parse_category("restaurant") is Category.RESTAURANT
    assert parse_category("EVENT") is Category.EVENT


def test_parse_category_rejects_unknown():
    with pytest.raises(InvalidArgumentError) as exc:
        parse_category("Museum")
    assert exc.value.field == "category"


def test_parse_content_type():
    assert parse_content_type("poll") is ContentType.POLL
    assert parse_content_type("None") is ContentType.NONE


def test_empty_page_filter_means_none():
    assert parse_page_filter_type(None) is PageFilterType.NONE
    assert parse_page_filter_type("") is PageFilterType.NONE
    assert parse_page_filter_type("question_category") is PageFilterType.QUESTION_CATEGORY


def test_unknown_page_filter_is_rejected():
    with pytest.raises(InvalidArgumentError) as exc:
        parse_page_filter_type("distance")
    assert exc.value.field == "filter_type"
