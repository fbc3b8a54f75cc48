"""Tests for the request gate: demo mode, session redirects, degraded backend."""

from __future__ import annotations

import pytest
from starlette.datastructures import URL

from estate_crm.auth.gate import ALLOW, REDIRECT, UNAVAILABLE, evaluate_gate, is_bypassed
from estate_crm.auth.session import SessionUser
from estate_crm.config import BackendMode, settings
from estate_crm.tests.conftest import session_cookie

USER = SessionUser(auth_id="abc", email="a@b.test", issued_at=0, expires_at=10**10)


def _decide(path: str, *, demo=False, mode=BackendMode.READY, user=None, fail_closed=False):
    return evaluate_gate(
        URL(f"http://test{path}"),
        demo_cookie=demo,
        mode=mode,
        session_user=user,
        fail_closed=fail_closed,
    )


class TestEvaluateGate:
    def test_no_session_redirects_to_login(self):
        decision = _decide("/dashboard")
        assert decision.action == REDIRECT
        assert decision.location == "/login"

    def test_no_session_keeps_query_on_redirect(self):
        decision = _decide("/dashboard/leads?status=nuevo")
        assert decision.location == "/login?status=nuevo"

    def test_public_and_auth_pages_allowed_without_session(self):
        for path in ("/", "/login", "/register", "/forgot-password"):
            assert _decide(path).action == ALLOW, path

    def test_session_on_auth_page_redirects_to_dashboard(self):
        decision = _decide("/login", user=USER)
        assert decision.action == REDIRECT
        assert decision.location == "/dashboard"

    def test_session_passes_through(self):
        decision = _decide("/dashboard", user=USER)
        assert decision.action == ALLOW
        assert decision.session_user == USER

    def test_demo_param_strips_and_sets_flag(self):
        decision = _decide("/dashboard?demo=true&tab=leads")
        assert decision.action == REDIRECT
        assert decision.location == "/dashboard?tab=leads"
        assert decision.set_demo_cookie is True

    def test_demo_param_other_value_ignored(self):
        assert _decide("/dashboard?demo=false").location == "/login?demo=false"

    def test_demo_cookie_allows_everything(self):
        decision = _decide("/dashboard/team", demo=True)
        assert decision.action == ALLOW
        assert decision.demo_mode is True

    def test_demo_cookie_on_login_goes_to_dashboard(self):
        decision = _decide("/login", demo=True)
        assert decision.action == REDIRECT
        assert decision.location == "/dashboard"

    def test_degraded_allows_all(self):
        assert _decide("/dashboard", mode=BackendMode.DEGRADED).action == ALLOW

    def test_degraded_fail_closed_is_unavailable(self):
        decision = _decide("/dashboard", mode=BackendMode.DEGRADED, fail_closed=True)
        assert decision.action == UNAVAILABLE

    def test_demo_checked_before_backend_mode(self):
        decision = _decide("/?demo=true", mode=BackendMode.DEGRADED, fail_closed=True)
        assert decision.action == REDIRECT
        assert decision.location == "/"


def test_bypassed_paths():
    assert is_bypassed("/static/app.css")
    assert is_bypassed("/storage/avatars/a.png")
    assert is_bypassed("/favicon.ico")
    assert is_bypassed("/images/logo.SVG")
    assert is_bypassed("/health")
    assert not is_bypassed("/healthz")
    assert not is_bypassed("/dashboard")


class TestGateMiddleware:
    @pytest.mark.asyncio
    async def test_dashboard_without_session_redirects(self, client, configured):
        resp = await client.get("/dashboard")
        assert resp.status_code == 307
        assert resp.headers["location"] == "/login"

    @pytest.mark.asyncio
    async def test_login_with_session_redirects(self, client, configured, admin):
        client.cookies.set(settings.session_cookie_name, session_cookie(admin))
        resp = await client.get("/login")
        assert resp.status_code == 307
        assert resp.headers["location"] == "/dashboard"

    @pytest.mark.asyncio
    async def test_demo_param_sets_cookie(self, client, configured):
        resp = await client.get("/dashboard?demo=true")
        assert resp.status_code == 307
        assert resp.headers["location"] == "/dashboard"
        cookie = resp.headers["set-cookie"]
        assert "demo_mode=true" in cookie
        assert "Max-Age=86400" in cookie
        assert "httponly" not in cookie.lower()

    @pytest.mark.asyncio
    async def test_tampered_session_is_rejected(self, client, configured, admin):
        client.cookies.set(settings.session_cookie_name, session_cookie(admin) + "00")
        resp = await client.get("/dashboard")
        assert resp.status_code == 307
        assert resp.headers["location"] == "/login"

    @pytest.mark.asyncio
    async def test_degraded_fail_open(self, client, unconfigured):
        resp = await client.get("/api/auth/status")
        assert resp.status_code == 200

    @pytest.mark.asyncio
    async def test_degraded_fail_closed(self, client, unconfigured, monkeypatch):
        monkeypatch.setattr(settings, "security_fail_closed", True)
        resp = await client.get("/api/auth/status")
        assert resp.status_code == 503

    @pytest.mark.asyncio
    async def test_health_bypasses_gate(self, client, configured):
        resp = await client.get("/health")
        assert resp.status_code == 200
