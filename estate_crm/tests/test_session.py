"""Tests for session tokens, password hashing and backend mode resolution."""

from __future__ import annotations

from estate_crm.auth.session import (
    decode_session_token,
    hash_password,
    issue_session_token,
    needs_refresh,
    verify_password,
)
from estate_crm.config import BackendMode, EstateSettings, resolve_backend_mode


def _settings(**kwargs) -> EstateSettings:
    values = {"backend_url": "sqlite+aiosqlite://", "backend_anon_key": "k", "session_ttl_seconds": 3600}
    values.update(kwargs)
    return EstateSettings(**values)


def test_token_round_trip():
    s = _settings()
    token = issue_session_token(s, "auth-1", "Ana@Example.com", now=1000)
    user = decode_session_token(s, token, now=1001)
    assert user.auth_id == "auth-1"
    assert user.email == "ana@example.com"
    assert user.expires_at == 1000 + 3600


def test_token_expired():
    s = _settings()
    token = issue_session_token(s, "auth-1", "a@b.test", now=1000)
    assert decode_session_token(s, token, now=1000 + 3600) is None


def test_token_signed_with_other_key_rejected():
    token = issue_session_token(_settings(backend_anon_key="one"), "auth-1", "a@b.test")
    assert decode_session_token(_settings(backend_anon_key="two"), token) is None


def test_garbage_token_rejected():
    s = _settings()
    assert decode_session_token(s, "not-a-token") is None
    assert decode_session_token(s, "") is None


def test_needs_refresh_after_half_ttl():
    s = _settings()
    user = decode_session_token(s, issue_session_token(s, "a", "a@b.test", now=0), now=0)
    assert needs_refresh(s, user, now=1799) is False
    assert needs_refresh(s, user, now=1800) is True


def test_password_hash_verify():
    stored = hash_password("s3cret-pass")
    assert verify_password("s3cret-pass", stored)
    assert not verify_password("wrong", stored)
    assert not verify_password("s3cret-pass", "md5$garbage")


def test_backend_mode_requires_url_and_key():
    assert resolve_backend_mode(_settings()) is BackendMode.READY
    assert resolve_backend_mode(_settings(backend_url="")) is BackendMode.DEGRADED
    assert resolve_backend_mode(_settings(backend_anon_key="  ")) is BackendMode.DEGRADED


def test_domain_suffixes_parsed():
    s = _settings(tenant_domain_suffixes=".aurix.app, .example.com ,")
    assert s.domain_suffixes == [".aurix.app", ".example.com"]
