"""API tests for requisitions, the notification inbox and the email queue."""

from unittest.mock import AsyncMock, MagicMock, patch
from uuid import uuid4

import pytest

from reqflow.models.email_job import EmailJob, EmailJobStatus
from tests.conftest import (
    ADMIN_ID,
    ALPHA_ORG_ID,
    APPROVER_ID,
    OUTSIDER_ID,
    REVIEWER_ID,
    SUBMITTER_ID,
    headers,
)


def _create(client, title="Printer paper", user_id=SUBMITTER_ID, org_id=ALPHA_ORG_ID):
    response = client.post(
        "/v1/requisitions/",
        json={"title": title, "total_amount": "42.50"},
        headers=headers(user_id, org_id),
    )
    assert response.status_code == 201
    return response.json()


@pytest.fixture
def pending(client):
    requisition = _create(client)
    response = client.post(
        f"/v1/requisitions/{requisition['id']}/submit",
        headers=headers(SUBMITTER_ID, ALPHA_ORG_ID),
    )
    assert response.status_code == 200
    return response.json()["requisition"]


class TestRequisitionsAPI:
    def test_create_draft(self, client):
        body = _create(client)
        assert body["status"] == "draft"
        assert body["reference"].startswith("REQ-")
        assert body["submitted_by"] == str(SUBMITTER_ID)

    def test_outsider_cannot_create(self, client):
        response = client.post(
            "/v1/requisitions/",
            json={"title": "Chairs"},
            headers=headers(OUTSIDER_ID, ALPHA_ORG_ID),
        )
        assert response.status_code == 403

    def test_submit_reports_recipients(self, client):
        requisition = _create(client)
        response = client.post(
            f"/v1/requisitions/{requisition['id']}/submit",
            headers=headers(SUBMITTER_ID, ALPHA_ORG_ID),
        )

        body = response.json()
        assert body["requisition"]["status"] == "pending"
        assert set(body["notified_user_ids"]) == {
            str(REVIEWER_ID),
            str(APPROVER_ID),
            str(ADMIN_ID),
        }
        assert body["emails_queued"] == 3
        assert body["notification_error"] is None

    def test_approve(self, client, pending):
        response = client.post(
            f"/v1/requisitions/{pending['id']}/approve",
            headers=headers(APPROVER_ID, ALPHA_ORG_ID),
        )
        body = response.json()
        assert body["requisition"]["status"] == "approved"
        assert body["requisition"]["approved_by"] == str(APPROVER_ID)
        assert body["notified_user_ids"] == [str(SUBMITTER_ID)]

    def test_reviewer_cannot_approve(self, client, pending):
        response = client.post(
            f"/v1/requisitions/{pending['id']}/approve",
            headers=headers(REVIEWER_ID, ALPHA_ORG_ID),
        )
        assert response.status_code == 403

    def test_reject_with_reason(self, client, pending):
        response = client.post(
            f"/v1/requisitions/{pending['id']}/reject",
            json={"reason": "Over budget"},
            headers=headers(REVIEWER_ID, ALPHA_ORG_ID),
        )
        body = response.json()
        assert body["requisition"]["status"] == "rejected"
        assert body["requisition"]["rejection_reason"] == "Over budget"

    def test_approve_twice(self, client, pending):
        url = f"/v1/requisitions/{pending['id']}/approve"
        client.post(url, headers=headers(APPROVER_ID, ALPHA_ORG_ID))
        response = client.post(url, headers=headers(APPROVER_ID, ALPHA_ORG_ID))
        assert response.status_code == 400

    def test_unknown_requisition(self, client):
        response = client.get(f"/v1/requisitions/{uuid4()}", headers=headers(None, ALPHA_ORG_ID))
        assert response.status_code == 404

    def test_list_filters_by_status(self, client, pending):
        _create(client, title="Toner")
        response = client.get(
            "/v1/requisitions/", params={"status": "pending"}, headers=headers(None, ALPHA_ORG_ID)
        )
        assert [r["id"] for r in response.json()] == [pending["id"]]


class TestNotificationsAPI:
    def test_inbox_after_submit(self, client, pending):
        response = client.get("/v1/notifications/", headers=headers(REVIEWER_ID, ALPHA_ORG_ID))
        body = response.json()
        assert len(body) == 1
        assert body[0]["type"] == "submitted"
        assert body[0]["link"] == f"/requisitions/{pending['id']}"
        assert body[0]["is_read"] is False

        count = client.get(
            "/v1/notifications/unread_count", headers=headers(REVIEWER_ID, ALPHA_ORG_ID)
        )
        assert count.json() == {"unread_count": 1}

    def test_submitter_gets_nothing_for_own_submit(self, client, pending):
        response = client.get("/v1/notifications/", headers=headers(SUBMITTER_ID, ALPHA_ORG_ID))
        assert response.json() == []

    def test_filter_by_type(self, client, pending):
        response = client.get(
            "/v1/notifications/",
            params={"type": "approved"},
            headers=headers(REVIEWER_ID, ALPHA_ORG_ID),
        )
        assert response.json() == []

    def test_mark_read_and_delete(self, client, pending):
        auth = headers(REVIEWER_ID, ALPHA_ORG_ID)
        notification_id = client.get("/v1/notifications/", headers=auth).json()[0]["id"]

        read = client.post(f"/v1/notifications/{notification_id}/read", headers=auth)
        assert read.json()["is_read"] is True
        count = client.get("/v1/notifications/unread_count", headers=auth).json()
        assert count["unread_count"] == 0

        deleted = client.delete(f"/v1/notifications/{notification_id}", headers=auth)
        assert deleted.status_code == 204
        assert client.get("/v1/notifications/", headers=auth).json() == []

    def test_cannot_read_someone_elses_notification(self, client, pending):
        notification_id = client.get(
            "/v1/notifications/", headers=headers(REVIEWER_ID, ALPHA_ORG_ID)
        ).json()[0]["id"]

        response = client.post(
            f"/v1/notifications/{notification_id}/read",
            headers=headers(APPROVER_ID, ALPHA_ORG_ID),
        )
        assert response.status_code == 404

    def test_read_all_and_clear(self, client, pending):
        auth = headers(ADMIN_ID, ALPHA_ORG_ID)
        assert client.post("/v1/notifications/read_all", headers=auth).json() == {"affected": 1}
        assert client.delete("/v1/notifications/", headers=auth).json() == {"affected": 1}
        assert client.get("/v1/notifications/", headers=auth).json() == []

    def test_custom_notification(self, client):
        response = client.post(
            "/v1/notifications/custom",
            json={
                "recipient_user_ids": [str(SUBMITTER_ID)],
                "title": "Budget freeze",
                "message": "No new orders until Monday.",
                "send_email": True,
            },
            headers=headers(ADMIN_ID, ALPHA_ORG_ID),
        )
        assert response.status_code == 201
        body = response.json()
        assert body["recipient_user_ids"] == [str(SUBMITTER_ID)]
        assert body["emails_queued"] == 1

        inbox = client.get("/v1/notifications/", headers=headers(SUBMITTER_ID, ALPHA_ORG_ID))
        assert inbox.json()[0]["title"] == "Budget freeze"

    def test_custom_notification_to_outsider(self, client):
        response = client.post(
            "/v1/notifications/custom",
            json={
                "recipient_user_ids": [str(OUTSIDER_ID)],
                "title": "Hello",
                "message": "Hi there",
            },
            headers=headers(ADMIN_ID, ALPHA_ORG_ID),
        )
        assert response.status_code == 400

    def test_submitter_cannot_send_custom(self, client):
        response = client.post(
            "/v1/notifications/custom",
            json={"recipient_user_ids": [str(REVIEWER_ID)], "title": "Hi", "message": "Hi"},
            headers=headers(SUBMITTER_ID, ALPHA_ORG_ID),
        )
        assert response.status_code == 403


class TestEmailJobsAPI:
    def test_list_queued_jobs(self, client, pending):
        response = client.get("/v1/email_jobs/", headers=headers(None, ALPHA_ORG_ID))
        jobs = response.json()
        assert len(jobs) == 3
        assert {job["status"] for job in jobs} == {"pending"}
        assert {job["body_template_id"] for job in jobs} == {"requisition_submitted"}

    def test_requeue_failed_job(self, client, db_session, pending):
        job = db_session.query(EmailJob).first()
        job.status = EmailJobStatus.FAILED.value
        job.error_message = "relay down"
        db_session.commit()

        response = client.post(
            f"/v1/email_jobs/{job.id}/requeue", headers=headers(ADMIN_ID, ALPHA_ORG_ID)
        )
        assert response.status_code == 200
        assert response.json()["status"] == "pending"
        assert response.json()["error_message"] is None

    def test_requeue_pending_job_rejected(self, client, db_session, pending):
        job = db_session.query(EmailJob).first()
        response = client.post(
            f"/v1/email_jobs/{job.id}/requeue", headers=headers(ADMIN_ID, ALPHA_ORG_ID)
        )
        assert response.status_code == 400

    def test_requeue_requires_admin(self, client, db_session, pending):
        job = db_session.query(EmailJob).first()
        response = client.post(
            f"/v1/email_jobs/{job.id}/requeue", headers=headers(REVIEWER_ID, ALPHA_ORG_ID)
        )
        assert response.status_code == 403

    def test_process_enqueues_task(self, client):
        mock_job = MagicMock()
        mock_job.job_id = "email-job-1"

        with patch(
            "reqflow.routers.email_jobs.enqueue_process_email_queue",
            new_callable=AsyncMock,
            return_value=mock_job,
        ):
            response = client.post("/v1/email_jobs/process")

        assert response.status_code == 202
        assert response.json() == {"job_id": "email-job-1"}


def test_root(client):
    response = client.get("/")
    assert response.json()["status"] == "running"
    assert response.json()["app"] == "reqflow"
