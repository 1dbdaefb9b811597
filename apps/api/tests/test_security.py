import jwt
import pytest

from caseops.core.config import settings
from caseops.core.security import create_session_token, decode_session_token


def test_round_trip_carries_subject_and_role():
    payload = decode_session_token(create_session_token("uid-admin", "admin", email="ada@example.com"))
    assert payload["sub"] == "uid-admin"
    assert payload["role"] == "admin"
    assert payload["email"] == "ada@example.com"


def test_previous_secret_still_verifies_during_rotation(monkeypatch):
    monkeypatch.setattr(settings, "JWT_SECRET", "old-secret")
    token = create_session_token("uid-admin", "admin")

    monkeypatch.setattr(settings, "JWT_SECRET", "new-secret")
    monkeypatch.setattr(settings, "JWT_SECRET_PREVIOUS", "old-secret")
    assert decode_session_token(token)["sub"] == "uid-admin"

    monkeypatch.setattr(settings, "JWT_SECRET_PREVIOUS", "")
    with pytest.raises(jwt.InvalidTokenError):
        decode_session_token(token)


def test_expired_token_is_rejected(monkeypatch):
    monkeypatch.setattr(settings, "JWT_EXPIRES_HOURS", -1)
    token = create_session_token("uid-admin", "admin")
    with pytest.raises(jwt.ExpiredSignatureError):
        decode_session_token(token)
