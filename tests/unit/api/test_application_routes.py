"""
Tests for job, application, pipeline and screening endpoints.

Tests:
- Permission checks on staff routes
- Public intake and the automatic regret background task
- Error envelope and status codes
- Kanban stage moves and screening knockouts
"""

import pytest

API = "/api/v1"


@pytest.fixture
def job(client, hr_headers):
    response = client.post(
        f"{API}/jobs",
        json={"title": "Loan Officer", "description": "Originate microloans", "branch": "Nakuru"},
        headers=hr_headers,
    )
    assert response.status_code == 201
    job = response.json()
    rules = client.post(
        f"{API}/jobs/{job['id']}/rules",
        json={
            "must_have": ["loan", "microfinance"],
            "preferred": ["credit"],
            "shortlist_threshold": 35,
            "reject_threshold": 15,
        },
        headers=hr_headers,
    )
    assert rules.status_code == 200
    return job


def apply(client, job_id, email="jane@example.com", resume_text="loan microfinance credit"):
    return client.post(
        f"{API}/applications/apply",
        json={
            "job_id": job_id,
            "first_name": "Jane",
            "last_name": "Doe",
            "email": email,
            "resume_text": resume_text,
        },
    )


# ==================== Health ==================== #

class TestHealth:
    """Test health endpoints."""

    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_ready(self, client):
        response = client.get("/ready")
        assert response.status_code == 200
        assert response.json() == {"status": "ready"}


# ==================== Jobs ==================== #

class TestJobRoutes:
    """Test job endpoints."""

    def test_missing_identity_is_forbidden(self, client):
        response = client.post(f"{API}/jobs", json={"title": "Teller"})

        assert response.status_code == 403
        assert response.json()["error"]["code"] == "PERMISSION_DENIED"

    def test_staff_cannot_create_jobs(self, client, staff_headers):
        response = client.post(f"{API}/jobs", json={"title": "Teller"}, headers=staff_headers)
        assert response.status_code == 403

    def test_unknown_role(self, client):
        headers = {"x-user-id": "u-1", "x-user-role": "intern"}
        response = client.get(f"{API}/jobs", headers=headers)
        assert response.status_code == 403

    def test_staff_can_read_jobs(self, client, job, staff_headers):
        response = client.get(f"{API}/jobs", headers=staff_headers)

        assert response.status_code == 200
        assert [j["id"] for j in response.json()] == [job["id"]]

    def test_request_validation(self, client, hr_headers):
        response = client.post(f"{API}/jobs", json={"title": ""}, headers=hr_headers)

        assert response.status_code == 422
        body = response.json()["error"]
        assert body["code"] == "VALIDATION_ERROR"
        assert body["details"][0]["field"] == "body.title"

    def test_unknown_job(self, client, hr_headers):
        response = client.get(f"{API}/jobs/999", headers=hr_headers)

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "NOT_FOUND"

    def test_invalid_rules(self, client, job, hr_headers):
        response = client.put(
            f"{API}/jobs/{job['id']}/rules",
            json={"shortlist_threshold": 10, "reject_threshold": 50},
            headers=hr_headers,
        )
        assert response.status_code == 400

    def test_get_rules(self, client, job, manager_headers):
        response = client.get(f"{API}/jobs/{job['id']}/rules", headers=manager_headers)

        assert response.status_code == 200
        assert response.json()["must_have"] == ["loan", "microfinance"]

    def test_close_twice(self, client, job, hr_headers):
        assert client.post(f"{API}/jobs/{job['id']}/close", headers=hr_headers).status_code == 200
        assert client.post(f"{API}/jobs/{job['id']}/close", headers=hr_headers).status_code == 409

    def test_delete(self, client, job, hr_headers, manager_headers):
        url = f"{API}/jobs/{job['id']}"

        assert client.delete(url, headers=manager_headers).status_code == 403
        assert client.delete(url, headers=hr_headers).status_code == 200
        assert client.get(f"{url}/rules", headers=hr_headers).status_code == 404

    def test_delete_with_applications(self, client, job, hr_headers):
        apply(client, job["id"])

        response = client.delete(f"{API}/jobs/{job['id']}", headers=hr_headers)
        assert response.status_code == 409


# ==================== Applications ==================== #

class TestApplyRoute:
    """Test public intake."""

    def test_apply_is_public(self, client, job):
        response = apply(client, job["id"])

        assert response.status_code == 201
        body = response.json()
        assert body["decision"] == "SHORTLIST"
        assert "auto_regret" not in body

    def test_duplicate_application(self, client, job):
        apply(client, job["id"])
        response = apply(client, job["id"])

        assert response.status_code == 409
        assert response.json()["error"]["code"] == "CONFLICT"

    def test_invalid_email(self, client, job):
        response = apply(client, job["id"], email="not-an-email")
        assert response.status_code == 422

    def test_auto_regret_sent_after_response(self, client, job, hr_headers, sender):
        client.post(
            f"{API}/jobs/{job['id']}/rules",
            json={"must_have": ["loan"], "auto_regret": True},
            headers=hr_headers,
        )

        response = apply(client, job["id"], resume_text="")

        assert response.status_code == 201
        assert response.json()["decision"] == "AUTO-REJECT"
        assert [m["to"] for m in sender.sent] == ["jane@example.com"]

    def test_no_regret_without_flag(self, client, job, sender):
        apply(client, job["id"], resume_text="")
        assert sender.sent == []


class TestApplicationRoutes:
    """Test staff application endpoints."""

    def test_staff_cannot_list(self, client, job, staff_headers):
        response = client.get(f"{API}/applications", headers=staff_headers)
        assert response.status_code == 403

    def test_list_with_status_alias(self, client, job, manager_headers):
        apply(client, job["id"], email="a@example.com", resume_text="loan processing")
        apply(client, job["id"], email="b@example.com")

        response = client.get(
            f"{API}/applications",
            params={"job_id": job["id"], "status": "RECEIVED"},
            headers=manager_headers,
        )

        assert response.status_code == 200
        assert [a["email"] for a in response.json()] == ["a@example.com"]

    def test_advance_and_stale_retry(self, client, job, manager_headers):
        application = apply(client, job["id"], resume_text="loan processing").json()["application"]
        url = f"{API}/applications/{application['id']}/advance"

        first = client.post(url, json={"expected_status": "RECEIVED"}, headers=manager_headers)
        second = client.post(url, json={"expected_status": "RECEIVED"}, headers=manager_headers)

        assert first.status_code == 200
        assert first.json()["status"] == "REVIEWED"
        assert second.status_code == 409
        assert second.json()["error"]["details"]["actual"] == "REVIEWED"

    def test_reject_needs_reason(self, client, job, manager_headers):
        application = apply(client, job["id"]).json()["application"]

        response = client.post(
            f"{API}/applications/{application['id']}/reject",
            json={"expected_status": "SHORTLISTED", "reason": "   "},
            headers=manager_headers,
        )
        assert response.status_code == 400

    def test_activity(self, client, job, manager_headers):
        application = apply(client, job["id"]).json()["application"]

        response = client.get(
            f"{API}/applications/{application['id']}/activity", headers=manager_headers
        )

        assert response.status_code == 200
        assert response.json()[0]["activity_type"] == "applied"

    def test_regret_route(self, client, job, hr_headers, sender):
        application = apply(client, job["id"]).json()["application"]

        response = client.post(
            f"{API}/applications/{application['id']}/regret", headers=hr_headers
        )

        assert response.status_code == 200
        assert response.json()["delivered"] is True
        assert response.json()["application"]["status"] == "REJECTED"
        assert len(sender.sent) == 1


# ==================== Pipelines ==================== #

class TestPipelineRoutes:
    """Test pipeline and kanban endpoints."""

    @pytest.fixture
    def pipeline(self, client, hr_headers):
        response = client.post(
            f"{API}/pipelines",
            json={"name": "Branch hiring", "stages": [{"name": "Applied"}, {"name": "Interview"}]},
            headers=hr_headers,
        )
        assert response.status_code == 201
        return response.json()

    def test_bad_color(self, client, hr_headers):
        response = client.post(
            f"{API}/pipelines",
            json={"name": "P", "stages": [{"name": "A", "color": "red"}]},
            headers=hr_headers,
        )
        assert response.status_code == 422

    def test_move_and_board(self, client, job, pipeline, hr_headers, manager_headers):
        client.put(
            f"{API}/jobs/{job['id']}/pipeline",
            json={"pipeline_id": pipeline["id"]},
            headers=hr_headers,
        )
        application = apply(client, job["id"]).json()["application"]
        applied, interview = (s["id"] for s in pipeline["stages"])
        assert application["current_stage_id"] == applied

        moved = client.post(
            f"{API}/applications/{application['id']}/move-stage",
            json={"stage_id": interview, "expected_stage_id": applied},
            headers=manager_headers,
        )
        assert moved.status_code == 200

        board = client.get(f"{API}/pipelines/{pipeline['id']}/board", headers=manager_headers)
        columns = board.json()["columns"]
        assert [len(c["applications"]) for c in columns] == [0, 1]

        occupied = client.delete(f"{API}/pipelines/stages/{interview}", headers=hr_headers)
        assert occupied.status_code == 409

    def test_reorder(self, client, pipeline, hr_headers):
        ids = [s["id"] for s in pipeline["stages"]]

        response = client.post(
            f"{API}/pipelines/{pipeline['id']}/stages/reorder",
            json={"stage_ids": ids[::-1]},
            headers=hr_headers,
        )
        assert response.status_code == 200
        assert [s["id"] for s in response.json()["stages"]] == ids[::-1]

        bad = client.post(
            f"{API}/pipelines/{pipeline['id']}/stages/reorder",
            json={"stage_ids": ids[:1]},
            headers=hr_headers,
        )
        assert bad.status_code == 400


# ==================== Screening ==================== #

class TestScreeningRoutes:
    """Test screening endpoints."""

    def test_knockout_rejects(self, client, job, hr_headers):
        question = client.post(
            f"{API}/screening/questions",
            json={
                "job_id": job["id"],
                "question": "Do you hold a valid driving licence?",
                "is_knockout": True,
                "knockout_answer": "Yes",
            },
            headers=hr_headers,
        )
        assert question.status_code == 201
        application = apply(client, job["id"]).json()["application"]

        response = client.post(
            f"{API}/screening/answers",
            json={
                "application_id": application["id"],
                "answers": [{"question_id": question.json()["id"], "answer": "no"}],
            },
            headers=hr_headers,
        )

        assert response.status_code == 200
        assert response.json()["application"]["status"] == "REJECTED"
