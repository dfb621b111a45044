"""
Tests for offer, onboarding and regret batch endpoints.
"""

from unittest.mock import MagicMock, patch

import pytest

API = "/api/v1"


@pytest.fixture
def shortlisted(client, hr_headers):
    job = client.post(
        f"{API}/jobs", json={"title": "Loan Officer", "branch": "Nakuru"}, headers=hr_headers
    ).json()
    client.post(
        f"{API}/jobs/{job['id']}/rules",
        json={"must_have": ["loan", "microfinance"], "preferred": ["credit"]},
        headers=hr_headers,
    )
    response = client.post(
        f"{API}/applications/apply",
        json={
            "job_id": job["id"],
            "first_name": "Jane",
            "last_name": "Doe",
            "email": "jane@example.com",
            "resume_text": "loan officer with microfinance credit experience",
        },
    )
    return response.json()["application"]


@pytest.fixture
def offer(client, shortlisted, manager_headers):
    response = client.post(
        f"{API}/offers",
        json={"application_id": shortlisted["id"], "salary": "85000"},
        headers=manager_headers,
    )
    assert response.status_code == 201
    return response.json()


# ==================== Offers ==================== #

class TestOfferRoutes:
    """Test offer endpoints."""

    def test_create(self, offer):
        assert offer["status"] == "PENDING"
        assert offer["salary"] == "85000.00"

    def test_non_positive_salary(self, client, shortlisted, hr_headers):
        response = client.post(
            f"{API}/offers",
            json={"application_id": shortlisted["id"], "salary": 0},
            headers=hr_headers,
        )
        assert response.status_code == 422

    def test_staff_cannot_create(self, client, shortlisted, staff_headers):
        response = client.post(
            f"{API}/offers",
            json={"application_id": shortlisted["id"], "salary": 1000},
            headers=staff_headers,
        )
        assert response.status_code == 403

    def test_accept_twice(self, client, offer, manager_headers):
        url = f"{API}/offers/{offer['id']}/accept"

        first = client.post(url, json={"signature_ref": "sig-1"}, headers=manager_headers)
        second = client.post(url, headers=manager_headers)

        assert first.status_code == 200
        assert first.json()["status"] == "ACCEPTED"
        assert second.status_code == 409

    def test_send_with_email(self, client, offer, hr_headers, sender):
        response = client.post(
            f"{API}/offers/{offer['id']}/send",
            json={"expires_in_days": 7, "email": True},
            headers=hr_headers,
        )

        assert response.status_code == 200
        assert response.json()["status"] == "SENT"
        assert response.json()["expires_at"] is not None
        assert sender.sent[0]["subject"] == "Offer of employment: Loan Officer"

    def test_send_without_body(self, client, offer, hr_headers, sender):
        response = client.post(f"{API}/offers/{offer['id']}/send", headers=hr_headers)

        assert response.status_code == 200
        assert sender.sent == []

    def test_decline(self, client, offer, manager_headers):
        response = client.post(
            f"{API}/offers/{offer['id']}/decline",
            json={"reason": "Relocation"},
            headers=manager_headers,
        )
        assert response.status_code == 200
        assert response.json()["status"] == "REJECTED"

    def test_contract(self, client, offer, hr_headers):
        template = client.post(
            f"{API}/offers/templates",
            json={"name": "Short", "body": "{{firstName}} joins as {{jobTitle}}"},
            headers=hr_headers,
        )
        assert template.status_code == 201

        response = client.post(
            f"{API}/offers/{offer['id']}/contract",
            json={"template_id": template.json()["id"]},
            headers=hr_headers,
        )
        assert response.json()["contract_text"] == "Jane joins as Loan Officer"

        edited = client.put(
            f"{API}/offers/{offer['id']}/contract-text",
            json={"text": "Edited letter"},
            headers=hr_headers,
        )
        assert edited.json()["contract_text"] == "Edited letter"

    def test_unknown_offer(self, client, hr_headers):
        assert client.get(f"{API}/offers/999", headers=hr_headers).status_code == 404


# ==================== Onboarding ==================== #

class TestOnboardingRoutes:
    """Test onboarding endpoints."""

    def test_init_before_acceptance(self, client, offer, hr_headers):
        client.post(f"{API}/onboarding/tasks/seed", headers=hr_headers)

        response = client.post(
            f"{API}/onboarding/init",
            json={"application_id": offer["application_id"]},
            headers=hr_headers,
        )

        assert response.status_code == 412
        assert response.json()["error"]["code"] == "PRECONDITION_FAILED"

    def test_checklist_flow(self, client, offer, hr_headers, staff_headers):
        client.post(f"{API}/onboarding/tasks/seed", headers=hr_headers)
        client.post(f"{API}/offers/{offer['id']}/accept", headers=hr_headers)

        init = {"application_id": offer["application_id"]}
        first = client.post(f"{API}/onboarding/init", json=init, headers=hr_headers)
        second = client.post(f"{API}/onboarding/init", json=init, headers=hr_headers)
        assert len(first.json()) == 5
        assert len(second.json()) == 5

        item_id = first.json()[0]["id"]
        done = client.post(
            f"{API}/onboarding/items/{item_id}/complete",
            json={"evidence_ref": "upload-7"},
            headers=staff_headers,
        )
        again = client.post(f"{API}/onboarding/items/{item_id}/complete", headers=staff_headers)
        assert done.status_code == 200
        assert again.status_code == 409

        checklist = client.get(
            f"{API}/onboarding/{offer['application_id']}", headers=staff_headers
        )
        assert [i["completed"] for i in checklist.json()] == [True, False, False, False, False]


# ==================== Regrets ==================== #

class TestRegretRoutes:
    """Test regret template and batch endpoints."""

    def test_batch_counts_failures(self, client, shortlisted, hr_headers, sender):
        sender.fail_for.add("jane@example.com")
        client.post(
            f"{API}/applications/{shortlisted['id']}/reject",
            json={"expected_status": "SHORTLISTED", "reason": "position filled"},
            headers=hr_headers,
        )

        response = client.post(
            f"{API}/regrets/batch", json={"job_id": shortlisted["job_id"]}, headers=hr_headers
        )

        assert response.status_code == 200
        assert response.json() == {"sent": 0, "failed": 1, "total": 1}

    def test_batch_queued(self, client, shortlisted, hr_headers):
        with patch("api.routes.v1.regrets.send_regret_batch_task") as task:
            task.delay.return_value = MagicMock(id="task-123")

            response = client.post(
                f"{API}/regrets/batch",
                json={"job_id": shortlisted["job_id"], "queue": True},
                headers=hr_headers,
            )

        assert response.status_code == 202
        assert response.json() == {"task_id": "task-123"}
        task.delay.assert_called_once_with(shortlisted["job_id"], None, ["REJECTED"])

    def test_manager_cannot_send(self, client, shortlisted, manager_headers):
        response = client.post(
            f"{API}/regrets/batch", json={"job_id": shortlisted["job_id"]}, headers=manager_headers
        )
        assert response.status_code == 403

    def test_templates(self, client, hr_headers):
        created = client.post(
            f"{API}/regrets/templates",
            json={"name": "Default", "subject": "Update", "body_text": "Dear {{firstName}}"},
            headers=hr_headers,
        )
        listed = client.get(f"{API}/regrets/templates", headers=hr_headers)

        assert created.status_code == 201
        assert [t["name"] for t in listed.json()] == ["Default"]
