"""HTTP surface — status codes, caller identity and error envelopes end to end."""

from uuid import uuid4

import factsnap.infrastructure.database as db_module

from tests.services.conftest import ALICE, BOB, CAMPUS


def _as(user: str) -> dict:
    return {"X-User-Id": user}


def _question_body(**overrides) -> dict:
    body = {
        "title": "  Is the library open late?  ",
        "body": "Finals week hours keep changing.",
        "category": "general",
        "duration": "2h",
        "location": {
            "latitude": CAMPUS.latitude,
            "longitude": CAMPUS.longitude,
            "name": CAMPUS.name,
        },
    }
    body.update(overrides)
    return body


async def _create(client, user=ALICE, **overrides) -> dict:
    resp = await client.post(
        "/api/v1/questions", json=_question_body(**overrides), headers=_as(user),
    )
    assert resp.status_code == 201, resp.text
    return resp.json()


class TestHealth:
    async def test_liveness(self, client):
        resp = await client.get("/api/v1/health/")
        assert resp.status_code == 200
        assert resp.json()["status"] == "healthy"

    async def test_readiness_with_database(self, client):
        resp = await client.get("/api/v1/health/ready")
        assert resp.status_code == 200
        assert resp.json()["checks"]["database"] == "healthy"
        assert resp.json()["background_tasks"] == 0

    async def test_readiness_without_database(self, client, monkeypatch):
        monkeypatch.setattr(db_module, "db_manager", None)
        resp = await client.get("/api/v1/health/ready")
        assert resp.status_code == 503
        assert resp.json()["reason"] == "database_unavailable"


class TestQuestionRoutes:
    async def test_create_returns_owned_question(self, client):
        data = await _create(client)
        assert data["title"] == "Is the library open late?"
        assert data["category"] == "General"
        assert data["content"] == {"type": "None", "data": None}
        assert data["is_owned"] is True
        assert data["responses_count"] == 0

    async def test_missing_caller_is_401(self, client):
        resp = await client.post("/api/v1/questions", json=_question_body())
        assert resp.status_code == 401
        assert resp.json()["error"]["code"] == "UNAUTHENTICATED"

    async def test_blank_caller_is_401(self, client):
        resp = await client.get(f"/api/v1/questions/{uuid4()}", headers=_as("   "))
        assert resp.status_code == 401

    async def test_bad_category_names_the_field(self, client):
        resp = await client.post(
            "/api/v1/questions", json=_question_body(category="Bakery"),
            headers=_as(ALICE),
        )
        assert resp.status_code == 400
        error = resp.json()["error"]
        assert error["code"] == "INVALID_ARGUMENT"
        assert error["field"] == "category"

    async def test_out_of_range_duration(self, client):
        resp = await client.post(
            "/api/v1/questions", json=_question_body(duration="48h"),
            headers=_as(ALICE),
        )
        assert resp.status_code == 400
        assert resp.json()["error"]["field"] == "duration"

    async def test_oversized_duration_is_invalid_argument(self, client):
        resp = await client.post(
            "/api/v1/questions", json=_question_body(duration="99999999999h"),
            headers=_as(ALICE),
        )
        assert resp.status_code == 400
        error = resp.json()["error"]
        assert error["code"] == "INVALID_ARGUMENT"
        assert error["field"] == "duration"

    async def test_malformed_body_is_validation_error(self, client):
        resp = await client.post(
            "/api/v1/questions", json={"title": "no location"}, headers=_as(ALICE),
        )
        assert resp.status_code == 400
        error = resp.json()["error"]
        assert error["code"] == "VALIDATION_ERROR"
        assert error["details"]

    async def test_unknown_question_is_404(self, client):
        resp = await client.get(f"/api/v1/questions/{uuid4()}", headers=_as(ALICE))
        assert resp.status_code == 404

    async def test_viewer_sees_not_owned(self, client):
        created = await _create(client)
        resp = await client.get(
            f"/api/v1/questions/{created['id']}", headers=_as(BOB),
        )
        assert resp.status_code == 200
        assert resp.json()["is_owned"] is False

    async def test_edit_by_non_author_is_forbidden(self, client):
        created = await _create(client)
        body = _question_body(question_id=created["id"], title="Hijacked")
        del body["duration"]
        resp = await client.put("/api/v1/questions", json=body, headers=_as(BOB))
        assert resp.status_code == 403

    async def test_edit_by_author(self, client):
        created = await _create(client)
        body = _question_body(question_id=created["id"], title="Open until 2am?")
        del body["duration"]
        resp = await client.put("/api/v1/questions", json=body, headers=_as(ALICE))
        assert resp.status_code == 200
        assert resp.json()["title"] == "Open until 2am?"

    async def test_delete_then_404(self, client):
        created = await _create(client)
        resp = await client.delete(
            f"/api/v1/questions/{created['id']}", headers=_as(ALICE),
        )
        assert resp.status_code == 204
        resp = await client.get(
            f"/api/v1/questions/{created['id']}", headers=_as(ALICE),
        )
        assert resp.status_code == 404

    async def test_feed_and_by_user_listing(self, client):
        created = await _create(client)
        resp = await client.post(
            "/api/v1/questions/feed",
            json={
                "latitude": CAMPUS.latitude,
                "longitude": CAMPUS.longitude,
                "radius_miles": 5,
                "page": {"limit": 10, "offset": 0},
            },
            headers=_as(BOB),
        )
        assert resp.status_code == 200
        assert [q["id"] for q in resp.json()["questions"]] == [created["id"]]

        resp = await client.get(
            f"/api/v1/questions/by-user/{ALICE}", params={"limit": 5},
            headers=_as(BOB),
        )
        assert resp.status_code == 200
        data = resp.json()
        assert data["limit"] == 5
        assert len(data["questions"]) == 1

    async def test_feed_radius_too_large(self, client):
        resp = await client.post(
            "/api/v1/questions/feed",
            json={
                "latitude": CAMPUS.latitude,
                "longitude": CAMPUS.longitude,
                "radius_miles": 500,
            },
            headers=_as(BOB),
        )
        assert resp.status_code == 400

    async def test_invalid_page_limit(self, client):
        resp = await client.get(
            f"/api/v1/questions/by-user/{ALICE}", params={"limit": 0},
            headers=_as(ALICE),
        )
        assert resp.status_code == 400


class TestPollRoutes:
    async def test_create_vote_and_read_back(self, client):
        created = await _create(client)
        resp = await client.post(
            "/api/v1/questions/poll",
            json={"question_id": created["id"], "option_labels": ["Yes", "No"]},
            headers=_as(ALICE),
        )
        assert resp.status_code == 201
        poll_id = resp.json()["poll_id"]

        question = (await client.get(
            f"/api/v1/questions/{created['id']}", headers=_as(BOB),
        )).json()
        assert question["content"]["type"] == "Poll"
        yes = question["content"]["data"]["options"][0]
        assert yes["label"] == "Yes"

        resp = await client.post(
            "/api/v1/questions/poll/vote",
            json={"poll_id": poll_id, "option_id": yes["id"]},
            headers=_as(BOB),
        )
        assert resp.status_code == 204

        poll = (await client.get(
            f"/api/v1/questions/{created['id']}", headers=_as(BOB),
        )).json()["content"]["data"]
        assert poll["num_total_votes"] == 1
        assert poll["selected_option_id"] == yes["id"]

    async def test_second_poll_conflicts(self, client):
        created = await _create(client)
        payload = {"question_id": created["id"], "option_labels": ["A", "B"]}
        first = await client.post(
            "/api/v1/questions/poll", json=payload, headers=_as(ALICE),
        )
        assert first.status_code == 201
        second = await client.post(
            "/api/v1/questions/poll", json=payload, headers=_as(ALICE),
        )
        assert second.status_code == 409


class TestResponseRoutes:
    async def test_respond_list_edit_delete(self, client):
        created = await _create(client)
        base = f"/api/v1/questions/{created['id']}/responses"

        resp = await client.post(
            base, json={"body": "  Open until midnight.  "}, headers=_as(BOB),
        )
        assert resp.status_code == 201
        response = resp.json()
        assert response["body"] == "Open until midnight."
        assert response["is_owned"] is True

        listing = (await client.get(base, headers=_as(ALICE))).json()
        assert [r["id"] for r in listing["responses"]] == [response["id"]]
        assert listing["responses"][0]["is_owned"] is False

        resp = await client.put(
            f"{base}/{response['id']}", json={"body": "Actually 1am."},
            headers=_as(ALICE),
        )
        assert resp.status_code == 403

        resp = await client.put(
            f"{base}/{response['id']}", json={"body": "Actually 1am."},
            headers=_as(BOB),
        )
        assert resp.status_code == 200
        assert resp.json()["body"] == "Actually 1am."

        resp = await client.delete(f"{base}/{response['id']}", headers=_as(BOB))
        assert resp.status_code == 204
        question = (await client.get(
            f"/api/v1/questions/{created['id']}", headers=_as(ALICE),
        )).json()
        assert question["responses_count"] == 0

    async def test_respond_to_missing_question(self, client):
        resp = await client.post(
            f"/api/v1/questions/{uuid4()}/responses", json={"body": "hello"},
            headers=_as(BOB),
        )
        assert resp.status_code == 404

    async def test_summary(self, client, summarizer):
        created = await _create(client)
        await client.post(
            f"/api/v1/questions/{created['id']}/responses",
            json={"body": "Packed on the second floor."}, headers=_as(BOB),
        )
        resp = await client.post(
            f"/api/v1/questions/{created['id']}/summary", headers=_as(ALICE),
        )
        assert resp.status_code == 200
        assert resp.json() == {
            "question_id": created["id"],
            "summary": summarizer.reply,
        }
        assert "Packed on the second floor." in summarizer.prompts[0]


class TestDeviceRoutes:
    async def test_registered_device_receives_nearby_question(
        self, client, notifier, runner,
    ):
        resp = await client.put(
            "/api/v1/users/me/device",
            json={
                "push_token": "ExponentPushToken[bob]",
                "latitude": CAMPUS.latitude + 0.01,
                "longitude": CAMPUS.longitude,
            },
            headers=_as(BOB),
        )
        assert resp.status_code == 204

        created = await _create(client)
        await runner.drain()
        assert notifier.sent == [{
            "tokens": ["ExponentPushToken[bob]"],
            "title": "New question nearby",
            "body": created["title"],
            "data": {"question_id": created["id"]},
        }]

    async def test_partial_location_rejected(self, client):
        resp = await client.put(
            "/api/v1/users/me/device",
            json={"push_token": "tok", "latitude": 43.0},
            headers=_as(BOB),
        )
        assert resp.status_code == 400
        assert resp.json()["error"]["field"] == "location"

    async def test_stats_count_the_callers_activity(self, client):
        created = await _create(client)
        resp = await client.post(
            f"/api/v1/questions/{created['id']}/responses",
            json={"body": "Short line right now."}, headers=_as(BOB),
        )
        assert resp.status_code == 201

        resp = await client.get("/api/v1/users/stats", headers=_as(ALICE))
        assert resp.status_code == 200
        assert resp.json() == {"question_count": 1, "response_count": 0}

        resp = await client.get("/api/v1/users/stats", headers=_as(BOB))
        assert resp.json() == {"question_count": 0, "response_count": 1}

    async def test_stats_require_caller(self, client):
        resp = await client.get("/api/v1/users/stats")
        assert resp.status_code == 401


class TestEnvelope:
    async def test_request_id_is_echoed_and_attached_to_errors(self, client):
        resp = await client.get(
            f"/api/v1/questions/{uuid4()}",
            headers={**_as(ALICE), "X-Request-Id": "req-123"},
        )
        assert resp.status_code == 404
        assert resp.headers["X-Request-Id"] == "req-123"
        assert resp.json()["error"]["request_id"] == "req-123"

    async def test_unknown_route_uses_error_envelope(self, client):
        resp = await client.get("/api/v1/nope", headers=_as(ALICE))
        assert resp.status_code == 404
        assert resp.json()["error"]["code"] == "NOT_FOUND"

    async def test_validation_details_drop_body_prefix(self, client):
        resp = await client.post(
            "/api/v1/questions/poll",
            json={"question_id": "not-a-uuid", "option_labels": ["a"]},
            headers=_as(ALICE),
        )
        assert resp.status_code == 400
        fields = [d["field"] for d in resp.json()["error"]["details"]]
        assert "question_id" in fields
