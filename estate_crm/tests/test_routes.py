"""HTTP tests for pages, auth routes and the JSON API."""

from __future__ import annotations

import pytest
from sqlalchemy import select

from estate_crm.config import settings
from estate_crm.context.storage import LANGUAGE_KEY, THEME_KEY
from estate_crm.models import AuditLog, Lead
from estate_crm.services import team_svc
from estate_crm.tests.conftest import make_lead, make_property, make_task, make_user, session_cookie


def _sign_in(client, user):
    client.cookies.set(settings.session_cookie_name, session_cookie(user))


def _demo(client):
    client.cookies.set(settings.demo_cookie_name, "true")


class TestAuthRoutes:
    @pytest.mark.asyncio
    async def test_status_reports_demo_cookie(self, client, configured):
        assert (await client.get("/api/auth/status")).status_code == 307
        _demo(client)
        resp = await client.get("/api/auth/status")
        assert resp.json() == {"isDemoMode": True}

    @pytest.mark.asyncio
    async def test_logout_clears_cookies(self, client, configured, tenant):
        _demo(client)
        resp = await client.get("/api/logout")
        assert resp.status_code == 307
        assert resp.headers["location"] == "/login"
        cookies = resp.headers.get_list("set-cookie")
        demo = next(c for c in cookies if c.startswith("demo_mode="))
        assert "Max-Age=0" in demo
        assert "httponly" in demo.lower()
        assert any(c.startswith(f"{settings.session_cookie_name}=") for c in cookies)

    @pytest.mark.asyncio
    async def test_logout_audits_signed_in_user(self, client, configured, db, admin):
        _sign_in(client, admin)
        resp = await client.get("/api/logout")
        assert resp.status_code == 307
        actions = (await db.execute(select(AuditLog.action))).scalars().all()
        assert actions == ["logout"]

    @pytest.mark.asyncio
    async def test_login_success(self, client, configured, db, admin):
        resp = await client.post("/login", data={"email": admin.email, "password": "correct-horse"})
        assert resp.status_code == 303
        assert resp.headers["location"] == "/dashboard"
        assert f"{settings.session_cookie_name}=" in resp.headers["set-cookie"]
        audit = (await db.execute(select(AuditLog))).scalar_one()
        assert (audit.action, audit.user_id) == ("login", admin.id)

    @pytest.mark.asyncio
    async def test_login_failure_rerenders(self, client, configured, admin):
        resp = await client.post("/login", data={"email": admin.email, "password": "wrong"})
        assert resp.status_code == 400
        assert "Invalid login credentials" in resp.text
        assert admin.email in resp.text

    @pytest.mark.asyncio
    async def test_login_unavailable_without_backend(self, client, unconfigured):
        resp = await client.post("/login", data={"email": "a@b.test", "password": "whatever"})
        assert resp.status_code == 503

    @pytest.mark.asyncio
    async def test_login_page_renders(self, client, configured, tenant):
        resp = await client.get("/login")
        assert resp.status_code == 200
        assert 'name="password"' in resp.text

    @pytest.mark.asyncio
    async def test_deactivated_user_cannot_sign_in(self, client, configured, db, tenant):
        await make_user(db, tenant, email="gone@meridian.test", password="long-enough", is_active=False)
        resp = await client.post("/login", data={"email": "gone@meridian.test", "password": "long-enough"})
        assert resp.status_code == 403
        assert "deactivated" in resp.text
        assert settings.session_cookie_name not in resp.headers.get("set-cookie", "")

    @pytest.mark.asyncio
    async def test_placeholder_pages(self, client, configured, tenant):
        assert (await client.get("/register")).status_code == 200
        assert (await client.get("/forgot-password")).status_code == 200


class TestPages:
    @pytest.mark.asyncio
    async def test_health_ready(self, client, configured):
        resp = await client.get("/health")
        assert resp.json() == {"status": "healthy", "backend": "ready", "database": "ok"}

    @pytest.mark.asyncio
    async def test_health_degraded(self, client, unconfigured):
        resp = await client.get("/health")
        assert resp.json() == {"status": "degraded", "backend": "degraded", "database": "not_configured"}

    @pytest.mark.asyncio
    async def test_landing_shows_not_configured_banner(self, client, unconfigured):
        resp = await client.get("/")
        assert resp.status_code == 200
        assert "Backend is not configured" in resp.text
        assert "Backend not configured" in resp.text

    @pytest.mark.asyncio
    async def test_landing_uses_tenant_branding(self, client, configured, tenant):
        resp = await client.get("/")
        assert "Meridian Harbor" in resp.text
        assert "#123456" in resp.text
        assert "Backend connected" in resp.text

    @pytest.mark.asyncio
    async def test_dashboard_demo(self, client, configured, db, tenant):
        await make_lead(db, tenant, "Visible Lead", budget_min=1_000_000, budget_currency="AED")
        _demo(client)
        resp = await client.get("/dashboard")
        assert resp.status_code == 200
        assert "Demo mode" in resp.text
        assert "Visible Lead" in resp.text
        assert "AED 1.0M+" in resp.text

    @pytest.mark.asyncio
    async def test_document_attrs_follow_preferences(self, client, configured, tenant):
        _demo(client)
        client.cookies.set(LANGUAGE_KEY, "ar")
        client.cookies.set(THEME_KEY, "dark")
        resp = await client.get("/dashboard")
        assert '<html lang="ar" dir="rtl" class="dark">' in resp.text


class TestApi:
    @pytest.mark.asyncio
    async def test_leads_require_session(self, client, configured, tenant):
        resp = await client.get("/api/leads")
        assert resp.status_code == 307

    @pytest.mark.asyncio
    async def test_admin_lists_and_creates_leads(self, client, configured, db, tenant, admin):
        await make_lead(db, tenant, "Existing", minutes_ago=5)
        _sign_in(client, admin)

        resp = await client.post("/api/leads", json={"full_name": "Posted Lead", "market": "dubai"})
        assert resp.status_code == 201
        assert resp.json()["status"] == "nuevo"

        body = (await client.get("/api/leads")).json()
        assert body["error"] is None
        assert [x["full_name"] for x in body["items"]] == ["Posted Lead", "Existing"]

    @pytest.mark.asyncio
    async def test_agent_sees_only_own_leads(self, client, configured, db, tenant, agent):
        await make_lead(db, tenant, "Mine", assigned_to=agent.id)
        await make_lead(db, tenant, "Someone else's")
        _sign_in(client, agent)

        body = (await client.get("/api/leads")).json()
        assert [x["full_name"] for x in body["items"]] == ["Mine"]
        assert body["items"][0]["assigned_user"]["full_name"] == "Omar Agent"

    @pytest.mark.asyncio
    async def test_agent_cannot_delete(self, client, configured, db, tenant, agent):
        lead = await make_lead(db, tenant, "Protected", assigned_to=agent.id)
        _sign_in(client, agent)
        resp = await client.delete(f"/api/leads/{lead.id}")
        assert resp.status_code == 403
        assert (await db.execute(select(Lead.id))).scalars().all() == [lead.id]

    @pytest.mark.asyncio
    async def test_status_change_and_delete(self, client, configured, db, tenant, admin):
        lead = await make_lead(db, tenant, "Moving")
        _sign_in(client, admin)

        resp = await client.patch(f"/api/leads/{lead.id}/status", json={"status": "negociacion"})
        assert resp.json() == {"success": True, "error": None}

        activities = (await client.get(f"/api/leads/{lead.id}/activities")).json()["items"]
        assert activities[0]["type"] == "status_change"
        assert activities[0]["metadata"] == {"previousStatus": "nuevo", "newStatus": "negociacion"}

        resp = await client.delete(f"/api/leads/{lead.id}")
        assert resp.status_code == 200
        resp = await client.delete(f"/api/leads/{lead.id}")
        assert resp.status_code == 400
        assert resp.json()["error"] == "Lead not found"

    @pytest.mark.asyncio
    async def test_demo_mutation_is_not_audited(self, client, configured, db, tenant):
        lead = await make_lead(db, tenant, "Demo Target")
        _demo(client)
        resp = await client.patch(f"/api/leads/{lead.id}/status", json={"status": "contactado"})
        assert resp.json()["success"] is True
        assert (await db.execute(select(AuditLog))).scalars().all() == []

    @pytest.mark.asyncio
    async def test_property_detail_formats_price(self, client, configured, db, tenant, admin):
        prop = await make_property(db, tenant, "DXB-10", price=2_500_000)
        _sign_in(client, admin)
        body = (await client.get(f"/api/properties/{prop.id}")).json()
        assert body["formatted_price"] == "AED 2.5M"
        assert (await client.get("/api/properties/00000000-0000-4000-8000-000000000000")).status_code == 404

    @pytest.mark.asyncio
    async def test_search_endpoint(self, client, configured, db, tenant, admin):
        await make_lead(db, tenant, "Searchable Sam")
        await make_task(db, tenant, "Call Sam")
        _sign_in(client, admin)

        assert (await client.get("/api/search", params={"q": "s"})).json() == {"items": []}
        items = (await client.get("/api/search", params={"q": "sam"})).json()["items"]
        assert [i["type"] for i in items] == ["lead", "task"]

    @pytest.mark.asyncio
    async def test_dashboard_stats(self, client, configured, db, tenant, admin):
        await make_lead(db, tenant, "Won", status="cerrado_ganado", market="usa")
        await make_lead(db, tenant, "Hot", status="calificado", market="dubai")
        await make_property(db, tenant, "P-1")
        _sign_in(client, admin)

        stats = (await client.get("/api/dashboard/stats")).json()
        assert stats["totalLeads"] == 2
        assert stats["qualifiedLeads"] == 1
        assert stats["closings"] == 1
        assert stats["availableProperties"] == 1

    @pytest.mark.asyncio
    async def test_dashboard_sla_alerts_and_top_agents(self, client, configured, db, tenant, admin, agent):
        await make_lead(db, tenant, "Stale", minutes_ago=40, assigned_to=agent.id, status="nuevo")
        await make_lead(db, tenant, "Won", assigned_to=agent.id, status="cerrado_ganado")
        _sign_in(client, admin)

        body = (await client.get("/api/dashboard/sla-alerts")).json()
        assert body["slaMinutes"] == 15
        assert [(a["leadName"], a["severity"], a["assignee"]) for a in body["items"]] == [
            ("Stale", "high", "Omar Agent"),
        ]

        agents = (await client.get("/api/dashboard/top-agents")).json()["items"]
        assert agents == [{"id": str(agent.id), "name": "Omar Agent", "closings": 1, "totalLeads": 2, "avatar": "OA"}]

        page = await client.get("/dashboard")
        assert "Stale" in page.text
        assert "1 closings of 2 leads" in page.text

    @pytest.mark.asyncio
    async def test_audit_log_requires_manager(self, client, configured, tenant, agent, admin):
        _sign_in(client, agent)
        assert (await client.get("/api/audit-logs")).status_code == 403

        _sign_in(client, admin)
        body = (await client.get("/api/audit-logs", params={"page": 0})).json()
        assert body["total"] == 0 and body["page"] == 1

    @pytest.mark.asyncio
    async def test_audit_log_detail(self, client, configured, db, tenant, agent, admin):
        _sign_in(client, admin)
        await client.post(f"/api/team/{agent.id}/deactivate")
        entry = (await client.get("/api/audit-logs", params={"action": "deactivate"})).json()["items"][0]

        detail = (await client.get(f"/api/audit-logs/{entry['id']}")).json()
        assert detail["resource"] == "user"
        assert detail["resource_name"] == "Omar Agent"
        assert detail["new_values"] == {"is_active": False}
        missing = await client.get("/api/audit-logs/00000000-0000-4000-8000-000000000000")
        assert missing.status_code == 404

    @pytest.mark.asyncio
    async def test_labels(self, client, configured, tenant, agent):
        _sign_in(client, agent)
        body = (await client.get("/api/labels")).json()
        assert body["roles"]["team_lead"] == "Team Lead"
        assert body["teams"]["usa_desk"] == "USA Desk"
        assert body["activityTypes"]["call"] == {"label": "Call", "icon": "Phone"}
        assert body["taskStatuses"]["in_progress"] == "In Progress"
        assert body["leadStatuses"][0] == "nuevo"

    @pytest.mark.asyncio
    async def test_profile_roundtrip(self, client, configured, tenant, admin):
        _sign_in(client, admin)
        resp = await client.patch("/api/profile", json={"full_name": "Ana Renamed"})
        assert resp.json()["success"] is True
        profile = (await client.get("/api/profile")).json()
        assert profile["full_name"] == "Ana Renamed"
        assert profile["theme"] == "system"

    @pytest.mark.asyncio
    async def test_preferences_set_cookies(self, client, configured):
        _demo(client)
        resp = await client.put("/api/preferences", json={"theme": "dark", "language": "ar"})
        assert resp.json() == {"theme": "dark", "resolvedTheme": "dark", "language": "ar", "dir": "rtl"}
        cookies = resp.headers.get_list("set-cookie")
        assert any(c.startswith(f"{THEME_KEY}=dark") for c in cookies)
        assert any(c.startswith(f"{LANGUAGE_KEY}=ar") for c in cookies)

        client.cookies.set(THEME_KEY, "dark")
        body = (await client.get("/api/preferences")).json()
        assert body["theme"] == "dark"

    @pytest.mark.asyncio
    async def test_preferences_reject_unknown_values(self, client, configured):
        _demo(client)
        resp = await client.put("/api/preferences", json={"theme": "sepia"})
        assert resp.status_code == 422


class TestDataScope:
    @pytest.mark.asyncio
    async def test_agent_cannot_reach_other_agents_lead(self, client, configured, db, tenant, agent):
        other = await make_user(db, tenant, email="other@meridian.test", role="agent")
        lead = await make_lead(db, tenant, "NotYours", assigned_to=other.id)
        _sign_in(client, agent)

        assert (await client.get(f"/api/leads/{lead.id}")).status_code == 404
        resp = await client.patch(f"/api/leads/{lead.id}/status", json={"status": "contactado"})
        assert resp.status_code == 404
        assert (await client.get(f"/api/leads/{lead.id}/activities")).status_code == 404
        assert (await client.get(f"/api/leads/{lead.id}/tasks")).status_code == 404
        resp = await client.post("/api/activities", json={"lead_id": str(lead.id), "type": "note", "title": "hi"})
        assert resp.status_code == 404

        status = (await db.execute(select(Lead.status).where(Lead.id == lead.id))).scalar_one()
        assert status == "nuevo"

    @pytest.mark.asyncio
    async def test_agent_reaches_own_lead(self, client, configured, db, tenant, agent):
        lead = await make_lead(db, tenant, "Mine", assigned_to=agent.id)
        _sign_in(client, agent)

        assert (await client.get(f"/api/leads/{lead.id}")).json()["full_name"] == "Mine"
        resp = await client.patch(f"/api/leads/{lead.id}/status", json={"status": "contactado"})
        assert resp.json() == {"success": True, "error": None}
        resp = await client.post("/api/activities", json={"lead_id": str(lead.id), "type": "note", "title": "hi"})
        assert resp.status_code == 201

    @pytest.mark.asyncio
    async def test_agent_created_lead_is_assigned_to_them(self, client, configured, tenant, agent):
        _sign_in(client, agent)
        resp = await client.post("/api/leads", json={"full_name": "Walk-in"})
        assert resp.json()["assigned_to"] == str(agent.id)
        assert [x["full_name"] for x in (await client.get("/api/leads")).json()["items"]] == ["Walk-in"]

    @pytest.mark.asyncio
    async def test_agent_tasks_scoped(self, client, configured, db, tenant, agent):
        other = await make_user(db, tenant, email="other@meridian.test", role="agent")
        theirs = await make_task(db, tenant, "Their call", assigned_to=other.id)
        mine = await make_task(db, tenant, "My call", assigned_to=agent.id)
        _sign_in(client, agent)

        assert [t["title"] for t in (await client.get("/api/tasks")).json()["items"]] == ["My call"]
        resp = await client.patch(f"/api/tasks/{theirs.id}/status", json={"status": "completed"})
        assert resp.status_code == 404
        resp = await client.patch(f"/api/tasks/{mine.id}/status", json={"status": "completed"})
        assert resp.json()["success"] is True

    @pytest.mark.asyncio
    async def test_team_lead_sees_own_team_only(self, client, configured, db, tenant):
        lead_user = await make_user(db, tenant, email="lead@meridian.test", role="team_lead",
                                    password="team-lead-pw", team="off-plan")
        mate = await make_user(db, tenant, email="mate@meridian.test", role="agent", team="off-plan")
        outsider = await make_user(db, tenant, email="out@meridian.test", role="agent", team="leasing")
        await make_lead(db, tenant, "Team Lead", assigned_to=mate.id, minutes_ago=2)
        await make_lead(db, tenant, "Own Lead", assigned_to=lead_user.id, minutes_ago=1)
        foreign = await make_lead(db, tenant, "Foreign Lead", assigned_to=outsider.id)
        foreign_task = await make_task(db, tenant, "Foreign task", assigned_to=outsider.id)
        _sign_in(client, lead_user)

        body = (await client.get("/api/leads")).json()
        assert [x["full_name"] for x in body["items"]] == ["Own Lead", "Team Lead"]
        pipeline = (await client.get("/api/pipeline")).json()
        assert [x["full_name"] for x in pipeline["nuevo"]] == ["Own Lead", "Team Lead"]

        assert (await client.get(f"/api/leads/{foreign.id}")).status_code == 404
        resp = await client.post(f"/api/leads/{foreign.id}/assign", json={"user_id": str(mate.id)})
        assert resp.status_code == 404
        assert (await client.patch(f"/api/tasks/{foreign_task.id}/status", json={"status": "completed"})).status_code == 404

    @pytest.mark.asyncio
    async def test_admin_is_unscoped(self, client, configured, db, tenant, admin, agent):
        lead = await make_lead(db, tenant, "Anyone's", assigned_to=agent.id)
        task = await make_task(db, tenant, "Anyone's task", assigned_to=agent.id)
        _sign_in(client, admin)
        assert (await client.get(f"/api/leads/{lead.id}")).status_code == 200
        assert (await client.delete(f"/api/tasks/{task.id}")).json()["success"] is True


class TestTeamAdmin:
    @pytest.mark.asyncio
    async def test_admin_manages_users(self, client, configured, db, tenant, admin, agent):
        _sign_in(client, admin)
        resp = await client.post("/api/team", json={"email": "hire@meridian.test", "full_name": "New Hire",
                                                    "role": "team_lead", "team": "secondary"})
        assert resp.status_code == 201
        hire = resp.json()
        assert (hire["role"], hire["team"], hire["is_active"]) == ("team_lead", "secondary", True)

        resp = await client.post("/api/team", json={"email": "hire@meridian.test", "full_name": "Again"})
        assert resp.status_code == 400
        assert resp.json()["detail"] == "A user with this email already exists"

        resp = await client.patch(f"/api/team/{hire['id']}", json={"phone": "+1 555 0100"})
        assert resp.json() == {"success": True, "error": None}
        assert (await client.get(f"/api/team/{hire['id']}")).json()["phone"] == "+1 555 0100"

        assert (await client.post(f"/api/team/{agent.id}/deactivate")).json()["success"] is True
        inactive = (await client.get("/api/team", params={"is_active": "false"})).json()["items"]
        assert [m["full_name"] for m in inactive] == ["Omar Agent"]
        assert (await client.post(f"/api/team/{agent.id}/reactivate")).json()["success"] is True

        stats = (await client.get("/api/team/stats")).json()
        assert stats["total"] == 3 and stats["active"] == 3

    @pytest.mark.asyncio
    async def test_deactivated_session_stops_working(self, client, configured, db, tenant, admin, agent):
        _sign_in(client, agent)
        assert (await client.get("/api/leads")).status_code == 200

        await team_svc.deactivate_user(db, tenant.id, agent.id, admin)
        resp = await client.get("/api/leads")
        assert resp.status_code == 401
        assert "deactivated" in resp.json()["detail"]

    @pytest.mark.asyncio
    async def test_agent_cannot_manage_users(self, client, configured, tenant, admin, agent):
        _sign_in(client, agent)
        assert (await client.post("/api/team", json={"email": "x@y.test", "full_name": "X"})).status_code == 403
        assert (await client.post(f"/api/team/{admin.id}/deactivate")).status_code == 403
        assert (await client.patch(f"/api/team/{admin.id}", json={"role": "agent"})).status_code == 403
