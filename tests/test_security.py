"""Tokens de capacidad: propósito, video, expiración."""
from datetime import timedelta

import pytest

from app.core.clock import utcnow
from app.core.errors import Forbidden, Unauthorized
from app.core.deps import optional_subject, require_admin_token
from app.core.security import (
    hash_ip,
    mint_session_token,
    mint_stream_token,
    mint_token,
    verify_session_token,
    verify_stream_token,
    verify_token,
)


def test_stream_token_valid_for_its_video():
    token = mint_stream_token("vid-1")
    claims = verify_stream_token(token, "vid-1")
    assert claims["vid"] == "vid-1"
    assert claims["purpose"] == "stream"


def test_stream_token_rejected_for_other_video():
    token = mint_stream_token("vid-1")
    with pytest.raises(Unauthorized):
        verify_stream_token(token, "vid-2")


def test_stream_token_valid_just_before_expiry():
    issued = utcnow() - timedelta(minutes=9)
    token = mint_stream_token("vid-1", now=issued)
    assert verify_stream_token(token, "vid-1")["vid"] == "vid-1"


def test_stream_token_expires_after_ttl():
    issued = utcnow() - timedelta(minutes=11)
    token = mint_stream_token("vid-1", now=issued)
    with pytest.raises(Unauthorized):
        verify_stream_token(token, "vid-1")


def test_session_token_is_not_a_stream_token():
    token = mint_session_token("admin-1", "admin")
    with pytest.raises(Unauthorized):
        verify_stream_token(token, "vid-1")


def test_stream_token_is_not_a_session_token():
    with pytest.raises(Unauthorized):
        verify_session_token(mint_stream_token("vid-1"))


@pytest.mark.parametrize("token", [None, "", "not-a-jwt", "a.b.c"])
def test_malformed_tokens_are_unauthorized(token):
    with pytest.raises(Unauthorized):
        verify_token(token, "stream")


def test_caller_cannot_override_reserved_claims():
    token = mint_token("stream", {"purpose": "session", "vid": "v"}, timedelta(minutes=1))
    assert verify_token(token, "stream", vid="v")["purpose"] == "stream"


def test_admin_role_required():
    assert require_admin_token(mint_session_token("a", "admin")).subject_id == "a"
    with pytest.raises(Forbidden):
        require_admin_token(mint_session_token("u", "viewer"))
    with pytest.raises(Unauthorized):
        require_admin_token("garbage")


def test_optional_subject_ignores_bad_tokens():
    assert optional_subject(None) is None
    assert optional_subject("Bearer garbage") is None
    assert optional_subject(f"Bearer {mint_session_token('u-9', 'viewer')}") == "u-9"


def test_hash_ip_is_one_way_and_stable():
    h = hash_ip("203.0.113.7")
    assert h == hash_ip("203.0.113.7")
    assert h != hash_ip("203.0.113.8")
    assert "203.0.113.7" not in h
    assert len(h) == 64
