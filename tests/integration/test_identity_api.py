"""Integration tests for identity verification endpoints."""

import uuid

import pytest
from sqlalchemy import select

from civictrust.kernel.models import Notification


SUBMIT = "/api/identity/submit"
STATUS = "/api/identity/status"
QUEUE = "/api/admin/identity-verifications"


def _approve_url(verification_id) -> str:
    return f"{QUEUE}/{verification_id}/approve"


def _reject_url(verification_id) -> str:
    return f"{QUEUE}/{verification_id}/reject"


async def _submit(client, headers, email="citizen@example.com"):
    response = await client.post(SUBMIT, json={"email": email, "termsAgreed": True}, headers=headers)
    assert response.status_code in (200, 201), response.text
    return response.json()["verification"]


class TestAuthentication:

    @pytest.mark.asyncio
    async def test_submit_requires_token(self, client):
        response = await client.post(SUBMIT, json={"email": "a@example.com", "termsAgreed": True})
        assert response.status_code == 401
        assert response.json()["code"] == "unauthorized"
        assert response.headers["WWW-Authenticate"] == "Bearer"

    @pytest.mark.asyncio
    async def test_invalid_token(self, client):
        response = await client.get(STATUS, headers={"Authorization": "Bearer nope"})
        assert response.status_code == 401
        assert response.json()["code"] == "invalid_token"

    @pytest.mark.asyncio
    async def test_unknown_subject(self, client, jwt_manager):
        token, _, _ = jwt_manager.create_access_token(uuid.uuid4())
        response = await client.get(STATUS, headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_inactive_user(self, client, db_session, citizen, auth_headers):
        citizen.is_active = False
        await db_session.commit()

        response = await client.get(STATUS, headers=auth_headers(citizen))
        assert response.status_code == 403
        assert response.json()["code"] == "account_disabled"


class TestSubmit:

    @pytest.mark.asyncio
    async def test_terms_not_agreed(self, client, citizen, auth_headers):
        response = await client.post(
            SUBMIT,
            json={"email": "citizen@example.com", "termsAgreed": False},
            headers=auth_headers(citizen),
        )
        assert response.status_code == 400
        assert response.json()["code"] == "terms_not_agreed"

    @pytest.mark.asyncio
    async def test_invalid_email(self, client, citizen, auth_headers):
        response = await client.post(
            SUBMIT,
            json={"email": "nope", "termsAgreed": True},
            headers=auth_headers(citizen),
        )
        assert response.status_code == 400
        assert response.json()["code"] == "invalid_email"

    @pytest.mark.asyncio
    async def test_missing_body_field(self, client, citizen, auth_headers):
        response = await client.post(SUBMIT, json={"termsAgreed": True}, headers=auth_headers(citizen))
        assert response.status_code == 400
        assert response.json()["code"] == "validation_error"

    @pytest.mark.asyncio
    async def test_submit_created_then_existing(self, client, citizen, auth_headers):
        headers = auth_headers(citizen)
        first = await client.post(
            SUBMIT,
            json={"email": "citizen@example.com", "termsAgreed": True},
            headers=headers,
        )
        second = await client.post(
            SUBMIT,
            json={"email": "citizen@example.com", "termsAgreed": True},
            headers=headers,
        )

        assert first.status_code == 201
        assert second.status_code == 200
        body = first.json()["verification"]
        assert body["state"] == "pending"
        assert body["userId"] == str(citizen.id)
        assert body["submittedEmail"] == "citizen@example.com"
        assert second.json()["verification"]["id"] == body["id"]


class TestAdjudication:

    @pytest.mark.asyncio
    async def test_approve_requires_review_permission(self, client, citizen, auth_headers):
        verification = await _submit(client, auth_headers(citizen))

        response = await client.post(_approve_url(verification["id"]), headers=auth_headers(citizen))

        assert response.status_code == 403
        assert response.json()["code"] == "forbidden"

    @pytest.mark.asyncio
    async def test_approve_flow(self, client, citizen, reviewer, auth_headers):
        verification = await _submit(client, auth_headers(citizen))

        response = await client.post(_approve_url(verification["id"]), headers=auth_headers(reviewer))
        assert response.status_code == 200
        body = response.json()["verification"]
        assert body["state"] == "approved"
        assert body["reviewerId"] == str(reviewer.id)
        assert body["decidedAt"] is not None

        status = (await client.get(STATUS, headers=auth_headers(citizen))).json()
        assert status["isVerified"] is True
        assert status["verificationLevel"] == "government"
        assert status["permissions"] == {
            "canVote": True,
            "canComment": True,
            "canCreatePetitions": True,
            "canAccessFOI": True,
        }
        assert status["verifiedAt"] is not None

        again = await client.post(_approve_url(verification["id"]), headers=auth_headers(reviewer))
        assert again.status_code == 409
        assert again.json()["code"] == "already_decided"
        existing = again.json()["verification"]
        assert existing["id"] == verification["id"]
        assert existing["state"] == "approved"
        assert existing["decidedAt"] == body["decidedAt"]

    @pytest.mark.asyncio
    async def test_approve_unknown(self, client, reviewer, auth_headers):
        response = await client.post(_approve_url(uuid.uuid4()), headers=auth_headers(reviewer))
        assert response.status_code == 404
        assert response.json()["code"] == "not_found"

    @pytest.mark.asyncio
    async def test_reject_flow(self, client, db_session, citizen, reviewer, auth_headers):
        verification = await _submit(client, auth_headers(citizen))

        response = await client.post(
            _reject_url(verification["id"]),
            json={"reason": "Photo is unreadable"},
            headers=auth_headers(reviewer),
        )
        assert response.status_code == 200
        assert response.json()["verification"]["rejectionReason"] == "Photo is unreadable"

        status = (await client.get(STATUS, headers=auth_headers(citizen))).json()
        assert status["isVerified"] is False
        assert status["verificationLevel"] == "none"
        assert not any(status["permissions"].values())

        result = await db_session.execute(
            select(Notification).where(Notification.user_id == citizen.id)
        )
        notification = result.scalar_one()
        assert "Photo is unreadable" in notification.message
        assert notification.data["reason"] == "Photo is unreadable"

        after = await client.post(_approve_url(verification["id"]), headers=auth_headers(reviewer))
        assert after.status_code == 409
        assert after.json()["verification"]["state"] == "rejected"
        assert after.json()["verification"]["rejectionReason"] == "Photo is unreadable"

    @pytest.mark.asyncio
    async def test_reject_requires_reason(self, client, citizen, reviewer, auth_headers):
        verification = await _submit(client, auth_headers(citizen))

        response = await client.post(
            _reject_url(verification["id"]),
            json={"reason": ""},
            headers=auth_headers(reviewer),
        )
        assert response.status_code == 400
        assert response.json()["code"] == "reason_required"

    @pytest.mark.asyncio
    async def test_queue_listing(self, client, citizen, other_citizen, reviewer, auth_headers):
        first = await _submit(client, auth_headers(citizen))
        second = await _submit(client, auth_headers(other_citizen), email="neighbour@example.com")

        response = await client.get(QUEUE, params={"pageSize": 1}, headers=auth_headers(reviewer))
        assert response.status_code == 200
        page = response.json()
        assert page["total"] == 2
        assert page["pageSize"] == 1
        assert page["hasMore"] is True
        assert [v["id"] for v in page["items"]] == [first["id"]]

        response = await client.get(
            QUEUE,
            params={"page": 2, "pageSize": 1},
            headers=auth_headers(reviewer),
        )
        assert [v["id"] for v in response.json()["items"]] == [second["id"]]

    @pytest.mark.asyncio
    async def test_queue_requires_review_permission(self, client, citizen, auth_headers):
        response = await client.get(QUEUE, headers=auth_headers(citizen))
        assert response.status_code == 403


class TestNotificationsApi:

    @pytest.mark.asyncio
    async def test_list_and_mark_read(self, client, citizen, reviewer, auth_headers):
        verification = await _submit(client, auth_headers(citizen))
        await client.post(_approve_url(verification["id"]), headers=auth_headers(reviewer))

        response = await client.get("/api/notifications", headers=auth_headers(citizen))
        assert response.status_code == 200
        notifications = response.json()
        assert len(notifications) == 1
        assert notifications[0]["title"] == "Identity verification approved"
        assert notifications[0]["isRead"] is False

        # Another user's notification is invisible
        other = await client.patch(
            f"/api/notifications/{notifications[0]['id']}/read",
            headers=auth_headers(reviewer),
        )
        assert other.status_code == 404

        marked = await client.patch(
            f"/api/notifications/{notifications[0]['id']}/read",
            headers=auth_headers(citizen),
        )
        assert marked.status_code == 200
        assert marked.json()["isRead"] is True


class TestEmailCodes:

    @pytest.mark.asyncio
    async def test_send_and_verify(self, client, citizen, auth_headers, monkeypatch):
        monkeypatch.setattr(
            "civictrust.kernel.identity.identity_service.generate_code",
            lambda: "123456",
        )
        headers = auth_headers(citizen)

        sent = await client.post(
            "/api/identity/email/send-code",
            json={"email": "citizen@example.com"},
            headers=headers,
        )
        assert sent.status_code == 200
        assert sent.json()["delivered"] is False
        assert sent.json()["expiresInMinutes"] == 10

        wrong = await client.post(
            "/api/identity/email/verify-code",
            json={"email": "citizen@example.com", "code": "654321"},
            headers=headers,
        )
        assert wrong.status_code == 400
        assert wrong.json()["code"] == "invalid_code"

        right = await client.post(
            "/api/identity/email/verify-code",
            json={"email": "citizen@example.com", "code": "123456"},
            headers=headers,
        )
        assert right.status_code == 200
        assert right.json()["verificationLevel"] == "email"

        status = (await client.get(STATUS, headers=headers)).json()
        assert status["verificationLevel"] == "email"
        assert status["isVerified"] is False
