"""Tests for the lead service."""

from __future__ import annotations

import pytest
from sqlalchemy import select

from estate_crm.models import Activity, AuditLog
from estate_crm.services import lead_svc
from estate_crm.services.lead_svc import LeadFilters, format_budget_range
from estate_crm.tests.conftest import db_error, failing_execute, make_lead


@pytest.mark.asyncio
async def test_list_newest_first_with_assignee(db, tenant, agent):
    await make_lead(db, tenant, "Oldest", minutes_ago=30)
    await make_lead(db, tenant, "Newest", minutes_ago=1, assigned_to=agent.id)
    await make_lead(db, tenant, "Middle", minutes_ago=10)

    rows = await lead_svc.list_leads(db, tenant.id)
    assert [lead.full_name for lead in rows] == ["Newest", "Middle", "Oldest"]
    assert rows[0].assigned_user.full_name == "Omar Agent"
    assert rows.failed is False


@pytest.mark.asyncio
async def test_all_filter_equals_omitted(db, tenant):
    await make_lead(db, tenant, "A", status="nuevo", market="dubai")
    await make_lead(db, tenant, "B", status="calificado", market="usa", minutes_ago=5)

    default = await lead_svc.list_leads(db, tenant.id)
    with_all = await lead_svc.list_leads(db, tenant.id, LeadFilters(status="all", market="all"))
    with_blank = await lead_svc.list_leads(db, tenant.id, LeadFilters(status="", market=None))
    assert [x.id for x in default] == [x.id for x in with_all] == [x.id for x in with_blank]
    assert len(default) == 2


@pytest.mark.asyncio
async def test_filters_and_search(db, tenant):
    await make_lead(db, tenant, "Sara Khan", status="nuevo", email="sara@mail.test")
    await make_lead(db, tenant, "John Smith", status="calificado", phone="+1 555 0100")

    qualified = await lead_svc.list_leads(db, tenant.id, LeadFilters(status="calificado"))
    assert [x.full_name for x in qualified] == ["John Smith"]

    by_email = await lead_svc.list_leads(db, tenant.id, LeadFilters(search="sara@"))
    assert [x.full_name for x in by_email] == ["Sara Khan"]

    by_phone = await lead_svc.list_leads(db, tenant.id, LeadFilters(search="0100"))
    assert [x.full_name for x in by_phone] == ["John Smith"]


@pytest.mark.asyncio
async def test_tenant_isolation(db, tenant, other_tenant):
    await make_lead(db, tenant, "Mine")
    await make_lead(db, other_tenant, "Theirs")
    rows = await lead_svc.list_leads(db, tenant.id)
    assert [x.full_name for x in rows] == ["Mine"]


@pytest.mark.asyncio
async def test_list_failure_degrades_to_empty(db, tenant, monkeypatch):
    monkeypatch.setattr(db, "execute", failing_execute)
    rows = await lead_svc.list_leads(db, tenant.id)
    assert rows == []
    assert rows.failed
    assert "connection refused" in rows.error


@pytest.mark.asyncio
async def test_get_lead_missing_or_error(db, tenant, monkeypatch):
    import uuid

    assert await lead_svc.get_lead(db, tenant.id, uuid.uuid4()) is None
    monkeypatch.setattr(db, "execute", failing_execute)
    assert await lead_svc.get_lead(db, tenant.id, uuid.uuid4()) is None


@pytest.mark.asyncio
async def test_leads_by_status_in_pipeline_order(db, tenant):
    await make_lead(db, tenant, "Won", status="cerrado_ganado")
    await make_lead(db, tenant, "New", status="nuevo")
    await make_lead(db, tenant, "Custom", status="vip_hold")

    grouped = await lead_svc.leads_by_status(db, tenant.id)
    assert list(grouped) == ["nuevo", "cerrado_ganado", "vip_hold"]


@pytest.mark.asyncio
async def test_status_change_logs_activity_and_audit(db, tenant, admin):
    lead = await make_lead(db, tenant, "Lina", status="nuevo")

    result = await lead_svc.update_lead_status(db, tenant.id, lead.id, "dormido", admin)
    assert result.success and result.error is None

    refreshed = await lead_svc.get_lead(db, tenant.id, lead.id)
    assert refreshed.status == "dormido"

    activity = (await db.execute(select(Activity).where(Activity.lead_id == lead.id))).scalar_one()
    assert activity.type == "status_change"
    assert activity.metadata_json == {"previousStatus": "nuevo", "newStatus": "dormido"}
    assert activity.user_id == admin.id

    audit = (await db.execute(select(AuditLog))).scalar_one()
    assert audit.old_values == {"status": "nuevo"}
    assert audit.new_values == {"status": "dormido"}


@pytest.mark.asyncio
async def test_status_change_missing_lead(db, tenant, admin):
    import uuid

    result = await lead_svc.update_lead_status(db, tenant.id, uuid.uuid4(), "contactado", admin)
    assert result.success is False
    assert result.error == "Lead not found"


@pytest.mark.asyncio
async def test_assign_lead(db, tenant, admin, agent):
    lead = await make_lead(db, tenant, "Noor")
    result = await lead_svc.assign_lead(db, tenant.id, lead.id, agent.id, admin)
    assert result.success

    refreshed = await lead_svc.get_lead(db, tenant.id, lead.id)
    assert refreshed.assigned_to == agent.id
    activity = (await db.execute(select(Activity).where(Activity.lead_id == lead.id))).scalar_one()
    assert activity.type == "assignment"
    assert activity.title == "Assigned to Omar Agent"


@pytest.mark.asyncio
async def test_delete_lead_audited(db, tenant, admin):
    lead = await make_lead(db, tenant, "Gone Soon")
    result = await lead_svc.delete_lead(db, tenant.id, lead.id, admin)
    assert result.as_dict() == {"success": True, "error": None}
    assert await lead_svc.list_leads(db, tenant.id) == []

    audit = (await db.execute(select(AuditLog))).scalar_one()
    assert (audit.action, audit.resource, audit.resource_name) == ("delete", "lead", "Gone Soon")
    assert audit.resource_id == str(lead.id)
    assert audit.user_email == admin.email


@pytest.mark.asyncio
async def test_failed_delete_leaves_list_unchanged(db, tenant, admin, monkeypatch):
    lead = await make_lead(db, tenant, "Keeper")
    # The rollback expires every loaded object, fixtures included.
    tenant_id, lead_id = tenant.id, lead.id

    async def failing_commit():
        db_error()

    monkeypatch.setattr(db, "commit", failing_commit)
    result = await lead_svc.delete_lead(db, tenant_id, lead_id, admin)
    assert result.success is False
    assert result.error == "Failed to delete lead"

    monkeypatch.undo()
    rows = await lead_svc.list_leads(db, tenant_id)
    assert [x.full_name for x in rows] == ["Keeper"]


@pytest.mark.asyncio
async def test_create_and_update_lead(db, tenant, admin):
    lead = await lead_svc.create_lead(db, tenant.id, admin, full_name="Fresh", market="usa", bogus="x")
    assert lead is not None and lead.status == "nuevo"

    result = await lead_svc.update_lead(db, tenant.id, lead.id, admin, intent="alta")
    assert result.success
    assert (await lead_svc.get_lead(db, tenant.id, lead.id)).intent == "alta"

    actions = (await db.execute(select(AuditLog.action).order_by(AuditLog.action))).scalars().all()
    assert actions == ["create", "update"]


@pytest.mark.asyncio
async def test_lead_stats(db, tenant):
    await make_lead(db, tenant, "A", status="calificado", market="dubai")
    await make_lead(db, tenant, "B", status="calificado", market="usa")
    await make_lead(db, tenant, "C", status="nuevo", market="dubai")

    stats = await lead_svc.lead_stats(db, tenant.id)
    assert stats["total"] == 3
    assert stats["qualified"] == 2
    assert stats["byMarket"] == {"dubai": 2, "usa": 1}


def test_format_budget_range():
    assert format_budget_range(None, None, "AED") == "Not specified"
    assert format_budget_range(800_000, 1_500_000, "AED") == "AED 800k - 1.5M"
    assert format_budget_range(2_000_000, None, "USD") == "USD 2.0M+"
    assert format_budget_range(None, 500, "USD") == "Up to USD 500"
