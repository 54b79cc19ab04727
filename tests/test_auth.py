"""
User authentication flows: OTP registration, password login, token
refresh/logout, guest access and password reset.
"""
from model.token import Token, TokenType
from model.user import User

from tests.conftest import PASSWORD, TEST_OTP


def _register(client, email="new@example.com", password=PASSWORD):
    return client.post("/v1/auth/register-with-otp", json={
        "email": email, "password": password, "name": "New Person",
    })


class TestRegistration:
    """Email + password registration confirmed with a one-time code."""

    def test_check_email(self, client, user):
        res = client.post("/v1/auth/check-email", json={"email": user.email})
        assert res.status_code == 200
        assert res.json()["exists"] is True

        res = client.post("/v1/auth/check-email", json={"email": "nobody@example.com"})
        assert res.json()["exists"] is False

    def test_register_sends_otp(self, client, db_session):
        res = _register(client)
        assert res.status_code == 201
        assert res.json()["email"] == "new@example.com"

        user = db_session.query(User).filter_by(email="new@example.com").one()
        assert user.is_otp_verified is False
        otp_rows = db_session.query(Token).filter_by(account_id=user.id, type=TokenType.EMAIL_OTP).count()
        assert otp_rows == 1

    def test_register_rejects_duplicate_email(self, client, user):
        res = _register(client, email=user.email)
        assert res.status_code == 400
        assert res.json()["message"] == "Email already taken"

    def test_register_rejects_weak_password(self, client):
        res = _register(client, password="short")
        assert res.status_code == 400
        body = res.json()
        assert body["code"] == "validation_error"
        assert body["message"] == "Invalid request"
        error = body["errors"][0]
        assert error["loc"] == ["body", "password"]
        assert "password must be at least 8 characters" in error["msg"]

    def test_register_rejects_password_without_digit(self, client):
        res = _register(client, password="lettersonly")
        assert res.status_code == 400
        assert "at least 1 letter and 1 number" in res.json()["errors"][0]["msg"]

    def test_missing_field_is_400(self, client):
        res = client.post("/v1/auth/register-with-otp", json={"email": "new@example.com"})
        assert res.status_code == 400
        assert res.json()["errors"][0]["type"] == "missing"

    def test_verify_registration_otp(self, client):
        _register(client)
        res = client.post("/v1/auth/verify-registration-otp", json={"email": "new@example.com", "otp": TEST_OTP})
        assert res.status_code == 200
        body = res.json()
        assert body["is_otp_verified"] is True
        assert body["is_email_verified"] is True

    def test_wrong_otp_is_rejected(self, client):
        _register(client)
        res = client.post("/v1/auth/verify-registration-otp", json={"email": "new@example.com", "otp": "000000"})
        assert res.status_code == 401
        assert res.json()["message"] == "Invalid OTP"

    def test_complete_registration_returns_tokens(self, client):
        _register(client)
        verified = client.post(
            "/v1/auth/verify-registration-otp", json={"email": "new@example.com", "otp": TEST_OTP}
        ).json()

        res = client.post("/v1/auth/complete-registration", json={
            "userId": verified["id"],
            "name": "New Person",
            "contactNumber": "+919876543210",
            "cityOfInterest": "Pune",
        })
        assert res.status_code == 200
        body = res.json()
        assert body["user"]["registration_status"] == "completed"
        assert body["tokens"]["access"]["token"]
        assert body["tokens"]["refresh"]["token"]

    def test_complete_registration_requires_verified_otp(self, client):
        created = _register(client).json()
        res = client.post("/v1/auth/complete-registration", json={
            "user_id": created["user_id"],
            "name": "New Person",
            "contact_number": "+919876543210",
            "city_of_interest": "Pune",
        })
        assert res.status_code == 400
        assert res.json()["message"] == "Please verify OTP first"


class TestLogin:
    """Password login, refresh and logout."""

    def test_login(self, client, user):
        res = client.post("/v1/auth/login", json={"email": user.email, "password": PASSWORD})
        assert res.status_code == 200
        assert res.json()["user"]["email"] == user.email

    def test_login_wrong_password(self, client, user):
        res = client.post("/v1/auth/login", json={"email": user.email, "password": "wrongpass1"})
        assert res.status_code == 401
        assert res.json()["message"] == "Incorrect email or password"

    def test_login_is_case_insensitive_on_email(self, client, user):
        res = client.post("/v1/auth/login", json={"email": user.email.upper(), "password": PASSWORD})
        assert res.status_code == 200

    def test_login_with_otp(self, client, user):
        res = client.post("/v1/auth/login-with-otp", json={"email": user.email, "password": PASSWORD})
        assert res.status_code == 200

        res = client.post("/v1/auth/complete-login-otp", json={"email": user.email, "otp": TEST_OTP})
        assert res.status_code == 200
        assert res.json()["tokens"]["access"]["token"]

    def test_refresh_rotates_tokens(self, client, user):
        tokens = client.post("/v1/auth/login", json={"email": user.email, "password": PASSWORD}).json()["tokens"]
        refresh = tokens["refresh"]["token"]

        res = client.post("/v1/auth/refresh-tokens", json={"refresh_token": refresh})
        assert res.status_code == 200
        assert res.json()["refresh"]["token"] != refresh

        # the old refresh token was consumed
        res = client.post("/v1/auth/refresh-tokens", json={"refresh_token": refresh})
        assert res.status_code == 401

    def test_logout_revokes_refresh_token(self, client, user):
        tokens = client.post("/v1/auth/login", json={"email": user.email, "password": PASSWORD}).json()["tokens"]
        refresh = tokens["refresh"]["token"]

        res = client.post("/v1/auth/logout", json={"refreshToken": refresh})
        assert res.status_code == 204

        res = client.post("/v1/auth/refresh-tokens", json={"refresh_token": refresh})
        assert res.status_code == 401

    def test_guest_login(self, client, db_session):
        res = client.post("/v1/auth/guest-login")
        assert res.status_code == 200
        body = res.json()
        assert body["user"]["role"] == "guest"
        assert body["user"]["account_type"] == "guest"

        guest = db_session.query(User).filter_by(role="guest").one()
        assert guest.email.endswith("@guest.zuhaush.in")
        assert guest.public_id.startswith("USR-")

        access = body["tokens"]["access"]["token"]
        me = client.get("/v1/users/me", headers={"Authorization": f"Bearer {access}"})
        assert me.status_code == 200
        assert me.json()["id"] == guest.id

    def test_each_guest_login_is_a_new_account(self, client, db_session):
        client.post("/v1/auth/guest-login")
        client.post("/v1/auth/guest-login")
        assert db_session.query(User).filter_by(role="guest").count() == 2


class TestPasswordReset:
    """Forgot password -> verify code -> reset."""

    def test_full_reset(self, client, user):
        res = client.post("/v1/auth/forgot-password", json={"email": user.email})
        assert res.status_code == 200

        res = client.post("/v1/auth/verify-forgot-password-otp", json={"email": user.email, "otp": TEST_OTP})
        assert res.status_code == 200
        assert res.json()["verified"] is True

        # verification leaves the code usable for the reset itself
        res = client.post("/v1/auth/reset-password", json={
            "email": user.email, "otp": TEST_OTP, "new_password": "newpass99",
        })
        assert res.status_code == 200

        res = client.post("/v1/auth/login", json={"email": user.email, "password": "newpass99"})
        assert res.status_code == 200
        res = client.post("/v1/auth/login", json={"email": user.email, "password": PASSWORD})
        assert res.status_code == 401

    def test_forgot_password_unknown_email(self, client):
        res = client.post("/v1/auth/forgot-password", json={"email": "ghost@example.com"})
        assert res.status_code == 404
        assert res.json()["message"] == "User not found"
