"""
Integration tests for staff invitations and password resets.

Both flows use single-use, expiring tokens; email delivery is mocked.
"""

from datetime import timedelta
from unittest.mock import AsyncMock, patch

import httpx
import pytest

from models import Doctor, InviteToken, PasswordResetToken, User
from services.email_service import EmailService
from utils.datetime_utils import utc_now
from tests.conftest import TEST_PASSWORD, auth_headers


@pytest.fixture
def mock_send_email():
    with patch.object(EmailService, "send_email", new=AsyncMock(return_value=True)) as mock:
        yield mock


class TestInvites:

    def test_admin_creates_invite(self, client, db_session, clinic, admin, admin_headers, mock_send_email):
        response = client.post("/api/auth/invite", headers=admin_headers,
                               json={"email": "NewDoc@Example.com", "role": "doctor"})

        assert response.status_code == 200
        assert response.json() == {"ok": True}

        invite = db_session.query(InviteToken).filter(InviteToken.email == "newdoc@example.com").one()
        assert invite.clinic_id == clinic.id
        assert invite.role == "DOCTOR"
        assert invite.invited_by_id == admin.id
        assert invite.is_active
        assert len(invite.token) == 40

        mock_send_email.assert_awaited_once()
        to, subject, html = mock_send_email.await_args.args[:3]
        assert to == "newdoc@example.com"
        assert clinic.name in subject
        assert invite.token in html

    def test_non_admin_cannot_invite(self, client, receptionist_headers, mock_send_email):
        response = client.post("/api/auth/invite", headers=receptionist_headers,
                               json={"email": "x@example.com", "role": "DOCTOR"})

        assert response.status_code == 403
        mock_send_email.assert_not_awaited()

    def test_invite_rejects_patient_role(self, client, admin_headers, mock_send_email):
        response = client.post("/api/auth/invite", headers=admin_headers,
                               json={"email": "x@example.com", "role": "PATIENT"})
        assert response.status_code == 400

    def test_accept_creates_doctor_in_invite_clinic(self, client, db_session, clinic, admin, mock_send_email):
        client.post("/api/auth/invite", headers=auth_headers(admin), json={"email": "doc@example.com", "role": "DOCTOR"})
        invite = db_session.query(InviteToken).one()

        response = client.post("/api/auth/invite/accept", json={
            "token": invite.token,
            "firstName": "Meredith",
            "lastName": "Grey",
            "password": "grey-sloan",
        })

        assert response.status_code == 200
        body = response.json()
        assert body["ok"] is True

        user = db_session.get(User, body["userId"])
        assert user.clinic_id == clinic.id
        assert user.role == "DOCTOR"
        assert user.email == "doc@example.com"
        assert db_session.query(Doctor).filter(Doctor.user_id == user.id).one().clinic_id == clinic.id

        db_session.refresh(invite)
        assert invite.used_at is not None

        login = client.post("/api/auth/login", json={"email": "doc@example.com", "password": "grey-sloan"})
        assert login.status_code == 200

    def test_invite_token_is_single_use(self, client, db_session, admin, mock_send_email):
        client.post("/api/auth/invite", headers=auth_headers(admin), json={"email": "rec@example.com", "role": "RECEPTIONIST"})
        token = db_session.query(InviteToken).one().token
        body = {"token": token, "firstName": "Pam", "lastName": "Beesly", "password": "reception1"}

        first = client.post("/api/auth/invite/accept", json=body)
        second = client.post("/api/auth/invite/accept", json=body)

        assert first.status_code == 200
        assert second.status_code == 400
        assert second.json() == {"error": "Invalid or expired invite"}
        assert db_session.query(User).filter(User.email == "rec@example.com").count() == 1

    def test_expired_invite_rejected(self, client, db_session, clinic):
        invite = InviteToken(token="expired-token", email="late@example.com", role="RECEPTIONIST",
                             clinic_id=clinic.id, expires_at=utc_now() - timedelta(minutes=1))
        db_session.add(invite)
        db_session.commit()

        response = client.post("/api/auth/invite/accept", json={
            "token": "expired-token", "firstName": "Late", "lastName": "Comer", "password": "too-late",
        })

        assert response.status_code == 400
        assert response.json() == {"error": "Invalid or expired invite"}

    def test_unknown_invite_rejected(self, client):
        response = client.post("/api/auth/invite/accept", json={
            "token": "nope", "firstName": "A", "lastName": "B", "password": "abcdef",
        })
        assert response.status_code == 400


class TestPasswordReset:

    def test_request_for_unknown_email_still_ok(self, client, db_session, mock_send_email):
        response = client.post("/api/auth/password-reset/request", json={"email": "ghost@example.com"})

        assert response.status_code == 200
        assert response.json() == {"ok": True}
        assert db_session.query(PasswordResetToken).count() == 0
        mock_send_email.assert_not_awaited()

    def test_request_creates_token_and_emails_link(self, client, db_session, admin, mock_send_email):
        response = client.post("/api/auth/password-reset/request", json={"email": admin.email})

        assert response.status_code == 200
        assert response.json() == {"ok": True}
        reset = db_session.query(PasswordResetToken).one()
        assert reset.user_id == admin.id
        assert reset.clinic_id == admin.clinic_id
        assert reset.is_active
        assert reset.token in mock_send_email.await_args.args[2]

    def test_request_hides_email_delivery_failure(self, client, db_session, admin):
        failure = httpx.HTTPStatusError(
            "Service Unavailable",
            request=httpx.Request("POST", "https://api.sendgrid.com/v3/mail/send"),
            response=httpx.Response(503),
        )
        with patch.object(EmailService, "send_email", new=AsyncMock(side_effect=failure)) as send:
            known = client.post("/api/auth/password-reset/request", json={"email": admin.email})
            unknown = client.post("/api/auth/password-reset/request", json={"email": "ghost@example.com"})

        assert send.await_count == 1
        assert known.status_code == unknown.status_code == 200
        assert known.json() == unknown.json() == {"ok": True}
        assert db_session.query(PasswordResetToken).count() == 1

    def test_confirm_sets_new_password_once(self, client, db_session, admin, mock_send_email):
        client.post("/api/auth/password-reset/request", json={"email": admin.email})
        token = db_session.query(PasswordResetToken).one().token

        first = client.post("/api/auth/password-reset/confirm", json={"token": token, "password": "brand-new-pass"})
        second = client.post("/api/auth/password-reset/confirm", json={"token": token, "password": "another-pass"})

        assert first.status_code == 200
        assert second.status_code == 400
        assert second.json() == {"error": "Invalid or expired token"}

        assert client.post("/api/auth/login", json={"email": admin.email, "password": TEST_PASSWORD}).status_code == 401
        assert client.post("/api/auth/login", json={"email": admin.email, "password": "brand-new-pass"}).status_code == 200

    def test_accept_alias(self, client, db_session, admin, mock_send_email):
        client.post("/api/auth/password-reset/request", json={"email": admin.email})
        token = db_session.query(PasswordResetToken).one().token

        response = client.post("/api/auth/password-reset/accept", json={"token": token, "password": "alias-pass"})

        assert response.status_code == 200

    def test_expired_token_rejected(self, client, db_session, admin):
        db_session.add(PasswordResetToken(token="old", user_id=admin.id, clinic_id=admin.clinic_id,
                                          expires_at=utc_now() - timedelta(hours=2)))
        db_session.commit()

        response = client.post("/api/auth/password-reset/confirm", json={"token": "old", "password": "whatever1"})

        assert response.status_code == 400
        assert response.json() == {"error": "Invalid or expired token"}
