"""
One-time code limits: requests per hour and failed verification attempts.
Both counters live in the database.
"""
from datetime import datetime, timedelta

from model.token import OtpAttempt, OtpRequest
from src import otp_service

from tests.conftest import TEST_OTP


def _send(client, email, otp_type="email_verification"):
    return client.post("/v1/auth/send-otp", json={"email": email, "type": otp_type})


def _verify(client, email, otp, otp_type="email_verification"):
    return client.post("/v1/auth/verify-otp", json={"email": email, "otp": otp, "type": otp_type})


class TestRateLimit:
    """At most five codes per account per hour."""

    def test_sixth_request_is_refused(self, client, user):
        for _ in range(5):
            assert _send(client, user.email).status_code == 200

        res = _send(client, user.email)
        assert res.status_code == 429
        assert res.json()["message"] == otp_service.TOO_MANY_REQUESTS

    def test_old_requests_fall_out_of_the_window(self, client, db_session, user):
        for _ in range(5):
            db_session.add(OtpRequest(
                account_type="user",
                email=user.email,
                requested_at=datetime.utcnow() - timedelta(hours=2),
            ))
        db_session.commit()

        assert _send(client, user.email).status_code == 200

    def test_unknown_otp_type(self, client, user):
        res = _send(client, user.email, otp_type="sms")
        assert res.status_code == 400
        assert res.json()["message"] == "Invalid OTP type"


class TestAttempts:
    """Three wrong codes lock verification for the attempt window."""

    def test_correct_code_verifies(self, client, user):
        _send(client, user.email)
        res = _verify(client, user.email, TEST_OTP)
        assert res.status_code == 200
        assert res.json()["verified"] is True

    def test_code_is_single_use(self, client, user):
        _send(client, user.email)
        assert _verify(client, user.email, TEST_OTP).status_code == 200
        res = _verify(client, user.email, TEST_OTP)
        assert res.status_code == 401
        assert res.json()["message"] == "OTP expired or not found"

    def test_lockout_after_three_failures(self, client, db_session, user):
        _send(client, user.email)
        for _ in range(3):
            res = _verify(client, user.email, "000000")
            assert res.status_code == 401

        # even the right code is refused now
        res = _verify(client, user.email, TEST_OTP)
        assert res.status_code == 429
        assert res.json()["message"] == otp_service.TOO_MANY_ATTEMPTS

        row = db_session.query(OtpAttempt).filter_by(email=user.email).one()
        assert row.attempts == 3

    def test_lockout_also_blocks_new_codes(self, client, user):
        _send(client, user.email)
        for _ in range(3):
            _verify(client, user.email, "000000")

        assert _send(client, user.email).status_code == 429

    def test_lockout_expires_with_the_window(self, client, db_session, user):
        _send(client, user.email)
        for _ in range(3):
            _verify(client, user.email, "000000")

        row = db_session.query(OtpAttempt).filter_by(email=user.email).one()
        row.last_attempt_at = datetime.utcnow() - timedelta(minutes=61)
        db_session.commit()

        assert _verify(client, user.email, TEST_OTP).status_code == 200

    def test_success_clears_failures(self, client, db_session, user):
        _send(client, user.email)
        _verify(client, user.email, "000000")
        _verify(client, user.email, "000000")
        assert _verify(client, user.email, TEST_OTP).status_code == 200

        assert db_session.query(OtpAttempt).filter_by(email=user.email).count() == 0

    def test_counters_are_per_otp_type(self, client, user):
        _send(client, user.email)
        for _ in range(3):
            _verify(client, user.email, "000000")

        # password reset codes are tracked separately
        assert _send(client, user.email, otp_type="password_reset").status_code == 200
        res = _verify(client, user.email, TEST_OTP, otp_type="password_reset")
        assert res.status_code == 200

    def test_unknown_account(self, client):
        res = _verify(client, "ghost@example.com", TEST_OTP)
        assert res.status_code == 404
