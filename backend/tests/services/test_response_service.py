"""Response Service — answers under a question, counts and summaries.

Tests cover:
    - responses can be created only while the parent question is open
    - responses_count follows create / delete
    - listing is oldest first with pagination
    - edit is owner-only and needs an open parent; delete is owner-only
    - deleting a response with images spawns media cleanup
    - summaries use the first 20 responses and skip the LLM when there are none
"""

from datetime import timedelta
from uuid import uuid4

import pytest
from sqlalchemy import update

from factsnap.core.domain_types import ResponseId
from factsnap.core.entities import CreateResponseParams, EditResponseParams, PageParams
from factsnap.core.errors import InvalidArgumentError, NotFoundError, UnauthorizedError
from factsnap.core.expiration import utc_now
from factsnap.models.response import Response as ResponseModel
from factsnap.services.summary_prompt import NO_RESPONSES_SUMMARY

from tests.services.conftest import ALICE, BOB, CAROL, force_expire, question_params


@pytest.fixture
async def question(question_service):
    return await question_service.create_question(ALICE, question_params())


async def _answer(service, question, author=BOB, body="About ten minutes", image_urls=None):
    return await service.create_response(
        author, CreateResponseParams(question.id, body, image_urls or []),
    )


async def test_create_response_increments_count(response_service, question_service, question):
    response = await _answer(response_service, question)
    assert response.is_owned is True
    assert response.body == "About ten minutes"

    refreshed = await question_service.get_question_by_id(ALICE, question.id)
    assert refreshed.responses_count == 1


async def test_cannot_respond_to_expired_question(response_service, question, db):
    await force_expire(db, question.id)
    with pytest.raises(UnauthorizedError) as exc:
        await _answer(response_service, question)
    assert exc.value.message == "this question has expired"


async def test_cannot_respond_to_missing_question(response_service):
    with pytest.raises(NotFoundError):
        await response_service.create_response(
            BOB, CreateResponseParams(uuid4(), "Hello there"),
        )


async def test_blank_response_is_rejected(response_service, question):
    with pytest.raises(InvalidArgumentError):
        await _answer(response_service, question, body="   ")


async def test_list_is_oldest_first_and_paginated(response_service, question, db):
    created = [
        await _answer(response_service, question, body=f"answer {i}") for i in range(4)
    ]
    base = utc_now() - timedelta(minutes=30)
    async with db.transaction() as session:
        for i, response in enumerate(created):
            await session.execute(
                update(ResponseModel)
                .where(ResponseModel.id == response.id)
                .values(created_at=base + timedelta(minutes=i))
            )

    first = await response_service.get_responses(CAROL, question.id, PageParams(limit=3))
    rest = await response_service.get_responses(
        CAROL, question.id, PageParams(limit=3, offset=3),
    )
    assert [r.body for r in first + rest] == [f"answer {i}" for i in range(4)]
    assert not any(r.is_owned for r in first)


async def test_list_for_missing_question_is_not_found(response_service):
    with pytest.raises(NotFoundError):
        await response_service.get_responses(BOB, uuid4(), PageParams())


async def test_owner_edits_response(response_service, question):
    response = await _answer(response_service, question)
    edited = await response_service.edit_response(
        BOB, question.id,
        EditResponseParams(response.id, "Closer to twenty", ["https://cdn.example.com/x.jpg"]),
    )
    assert edited.body == "Closer to twenty"
    assert edited.image_urls == ["https://cdn.example.com/x.jpg"]


async def test_edit_without_image_urls_keeps_them(response_service, question):
    response = await _answer(
        response_service, question, image_urls=["https://cdn.example.com/keep.jpg"],
    )
    edited = await response_service.edit_response(
        BOB, question.id, EditResponseParams(response.id, "New words"),
    )
    assert edited.image_urls == ["https://cdn.example.com/keep.jpg"]


async def test_non_owner_cannot_edit_response(response_service, question):
    response = await _answer(response_service, question)
    with pytest.raises(UnauthorizedError) as exc:
        await response_service.edit_response(
            ALICE, question.id, EditResponseParams(response.id, "Not mine"),
        )
    assert exc.value.message == "you must own this response"


async def test_cannot_edit_response_after_question_expires(response_service, question, db):
    response = await _answer(response_service, question)
    await force_expire(db, question.id)
    with pytest.raises(UnauthorizedError):
        await response_service.edit_response(
            BOB, question.id, EditResponseParams(response.id, "Too late"),
        )


async def test_response_under_other_question_is_not_found(
    response_service, question_service, question,
):
    other = await question_service.create_question(ALICE, question_params(title="Other one"))
    response = await _answer(response_service, question)
    with pytest.raises(NotFoundError):
        await response_service.delete_response(BOB, other.id, response.id)


async def test_delete_after_expiry_decrements_count_and_cleans_media(
    response_service, question_service, question, db, media, runner,
):
    response = await _answer(
        response_service, question, image_urls=["https://cdn.example.com/r.jpg"],
    )
    await force_expire(db, question.id)

    await response_service.delete_response(BOB, question.id, response.id)
    await runner.drain()

    refreshed = await question_service.get_question_by_id(ALICE, question.id)
    assert refreshed.responses_count == 0
    assert media.deleted == ["https://cdn.example.com/r.jpg"]


async def test_non_owner_cannot_delete_response(response_service, question):
    response = await _answer(response_service, question)
    with pytest.raises(UnauthorizedError):
        await response_service.delete_response(CAROL, question.id, response.id)


async def test_delete_missing_response_is_not_found(response_service, question):
    with pytest.raises(NotFoundError):
        await response_service.delete_response(BOB, question.id, ResponseId(uuid4()))


# ─── summaries ──────────────────────────────────────────────────

async def test_summary_without_responses_skips_summarizer(
    response_service, question, summarizer,
):
    summary = await response_service.summarize_responses(ALICE, question.id)
    assert summary == NO_RESPONSES_SUMMARY
    assert summarizer.prompts == []


async def test_summary_uses_first_twenty_responses(response_service, question, summarizer):
    for i in range(22):
        await _answer(response_service, question, author=CAROL, body=f"observation {i:02d}")

    summary = await response_service.summarize_responses(ALICE, question.id)

    assert summary == summarizer.reply
    prompt = summarizer.prompts[0]
    assert question.title in prompt
    assert "exactly three bullet points" in prompt
    assert prompt.count("observation") == 20
