"""Question Repository — transactional writes, content loading and error translation.

Tests cover:
    - create_question writes question + location together (content tag None)
    - create_poll writes poll + ordered options and flips the tag atomically
    - a failed create_poll leaves no poll rows behind
    - second create_poll fails closed with ConflictError
    - get_question_by_id loads poll data only for POLL-tagged rows
    - edit/delete carry the author predicate into the statement
    - delete cascades to location/poll/responses and returns orphaned media
"""

from datetime import timedelta
from uuid import uuid4

import pytest
from sqlalchemy import func, select

from factsnap.core.domain_types import Category, ContentType, QuestionId
from factsnap.core.entities import (
    CreatePollParams, CreateResponseParams, EditQuestionParams, PageParams,
)
from factsnap.core.errors import (
    ConflictError, DatabaseError, NotFoundError, UnauthorizedError,
)
from factsnap.core.expiration import utc_now
from factsnap.core.geo import Location
from factsnap.models.poll import Poll as PollModel
from factsnap.models.poll import PollOption as PollOptionModel
from factsnap.models.question import Location as LocationModel
from factsnap.models.response import Response as ResponseModel

from tests.services.conftest import ALICE, BOB, CAMPUS, force_expire, question_params


async def _create(repo, author=ALICE, **kwargs):
    now = utc_now()
    return await repo.create_question(
        author, question_params(**kwargs), now, now + timedelta(hours=2),
    )


async def _count(db, model, **filters):
    async with db.session() as session:
        stmt = select(func.count()).select_from(model)
        for column, value in filters.items():
            stmt = stmt.where(getattr(model, column) == value)
        return await session.scalar(stmt)


async def test_create_question_persists_question_and_location(question_repo):
    qid = await _create(question_repo)

    question = await question_repo.get_question_by_id(ALICE, qid)
    assert question.title == "How long is the line?"
    assert question.category is Category.RESTAURANT
    assert question.content.type is ContentType.NONE
    assert question.content.data is None
    assert question.location.latitude == pytest.approx(CAMPUS.latitude)
    assert question.location.name == "Bascom Hall"
    assert question.expires_at - question.created_at == timedelta(hours=2)
    assert question.responses_count == 0


async def test_is_owned_is_derived_from_caller(question_repo):
    qid = await _create(question_repo)
    assert (await question_repo.get_question_by_id(ALICE, qid)).is_owned is True
    assert (await question_repo.get_question_by_id(BOB, qid)).is_owned is False


async def test_get_missing_question_is_not_found(question_repo):
    with pytest.raises(NotFoundError):
        await question_repo.get_question_by_id(ALICE, QuestionId(uuid4()))


async def test_create_poll_keeps_submitted_order(question_repo):
    qid = await _create(question_repo)
    labels = ["Under 5 minutes", "5-15 minutes", "Over 15 minutes"]

    poll_id = await question_repo.create_poll(ALICE, CreatePollParams(qid, labels))

    question = await question_repo.get_question_by_id(BOB, qid)
    assert question.content.type is ContentType.POLL
    poll = question.content.data
    assert poll.id == poll_id
    assert [o.label for o in poll.options] == labels
    assert [o.position for o in poll.options] == [0, 1, 2]
    assert poll.expires_at == question.expires_at
    assert poll.num_total_votes == 0


async def test_second_create_poll_fails_closed(question_repo, db):
    qid = await _create(question_repo)
    await question_repo.create_poll(ALICE, CreatePollParams(qid, ["A", "B"]))

    with pytest.raises(ConflictError) as exc:
        await question_repo.create_poll(ALICE, CreatePollParams(qid, ["C"]))
    assert exc.value.field == "question_id"

    assert await _count(db, PollModel) == 1
    assert await _count(db, PollOptionModel) == 2


async def test_create_poll_for_missing_question_leaves_no_rows(question_repo, db):
    with pytest.raises(NotFoundError):
        await question_repo.create_poll(
            ALICE, CreatePollParams(QuestionId(uuid4()), ["A", "B"]),
        )
    assert await _count(db, PollModel) == 0
    assert await _count(db, PollOptionModel) == 0


async def test_create_poll_rolls_back_when_options_fail(question_repo, db):
    qid = await _create(question_repo)
    with pytest.raises(DatabaseError):
        await question_repo.create_poll(
            ALICE, CreatePollParams(qid, ["ok", None]),
        )

    assert await _count(db, PollModel) == 0
    assert await _count(db, PollOptionModel) == 0
    question = await question_repo.get_question_by_id(ALICE, qid)
    assert question.content.type is ContentType.NONE


async def test_edit_question_updates_question_and_location(question_repo):
    qid = await _create(question_repo)
    moved = Location(43.0766, -89.4125, name="Memorial Union")

    edited = await question_repo.edit_question(ALICE, EditQuestionParams(
        question_id=qid, title="Is the terrace open?", category=Category.EVENT,
        location=moved, body=None,
    ))

    assert edited.title == "Is the terrace open?"
    assert edited.category is Category.EVENT
    assert edited.body is None
    assert edited.location.name == "Memorial Union"
    assert edited.edited_at >= edited.created_at


async def test_edit_question_reattaches_poll_content(question_repo):
    qid = await _create(question_repo)
    await question_repo.create_poll(ALICE, CreatePollParams(qid, ["Yes", "No"]))

    edited = await question_repo.edit_question(ALICE, EditQuestionParams(
        question_id=qid, title="Still busy?", category=Category.RESTAURANT,
        location=CAMPUS,
    ))
    assert edited.content.type is ContentType.POLL
    assert [o.label for o in edited.content.data.options] == ["Yes", "No"]


async def test_edit_statement_rejects_non_author(question_repo):
    qid = await _create(question_repo)
    with pytest.raises(UnauthorizedError):
        await question_repo.edit_question(BOB, EditQuestionParams(
            question_id=qid, title="Hijacked", category=Category.GENERAL,
            location=CAMPUS,
        ))
    assert (await question_repo.get_question_by_id(ALICE, qid)).title != "Hijacked"


async def test_edit_statement_rejects_expired_question(question_repo, db):
    qid = await _create(question_repo)
    await force_expire(db, qid)
    with pytest.raises(UnauthorizedError):
        await question_repo.edit_question(ALICE, EditQuestionParams(
            question_id=qid, title="Too late", category=Category.GENERAL,
            location=CAMPUS,
        ))


async def test_delete_cascades_and_returns_orphaned_media(question_repo, response_repo, db):
    qid = await _create(
        question_repo, image_urls=["https://cdn.example.com/q.jpg"],
    )
    await question_repo.create_poll(ALICE, CreatePollParams(qid, ["A", "B"]))
    await response_repo.create_response(BOB, CreateResponseParams(
        qid, "Pretty short", ["https://cdn.example.com/r.jpg"],
    ))

    orphaned = await question_repo.delete_question(ALICE, qid)

    assert sorted(orphaned) == [
        "https://cdn.example.com/q.jpg", "https://cdn.example.com/r.jpg",
    ]
    assert await _count(db, LocationModel) == 0
    assert await _count(db, PollModel) == 0
    assert await _count(db, PollOptionModel) == 0
    assert await _count(db, ResponseModel) == 0
    with pytest.raises(NotFoundError):
        await question_repo.get_question_by_id(ALICE, qid)


async def test_delete_statement_requires_author(question_repo):
    qid = await _create(question_repo)
    with pytest.raises(NotFoundError):
        await question_repo.delete_question(BOB, qid)
    assert await question_repo.get_question_by_id(ALICE, qid)


async def test_questions_by_user_newest_first(question_repo):
    now = utc_now()
    older = await question_repo.create_question(
        ALICE, question_params(title="Older one"),
        now - timedelta(minutes=10), now + timedelta(hours=1),
    )
    newer = await question_repo.create_question(
        ALICE, question_params(title="Newer one"),
        now - timedelta(minutes=1), now + timedelta(hours=1),
    )
    await _create(question_repo, author=BOB)

    questions = await question_repo.get_questions_by_user_id(BOB, ALICE, PageParams())
    assert [q.id for q in questions] == [newer, older]
    assert all(not q.is_owned for q in questions)


async def test_questions_responded_by_user_are_deduplicated(question_repo, response_repo):
    first = await _create(question_repo, title="First question")
    second = await _create(question_repo, title="Second question")
    await _create(question_repo, title="Unanswered")
    for qid in (first, first, second):
        await response_repo.create_response(BOB, CreateResponseParams(qid, "An answer"))

    questions = await question_repo.get_questions_responded_by_user_id(
        BOB, BOB, PageParams(),
    )
    assert sorted(q.title for q in questions) == ["First question", "Second question"]
