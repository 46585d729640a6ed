import pytest

from common.core.config import settings
from packages.metering.services.reconciliation_service import reconcile_lock_key


@pytest.mark.asyncio
class TestMeteringRoutes:
    async def test_reconcile_tenant(self, client, sample_tenant, sample_knowledge_items):
        response = await client.post(
            f"/api/v1/metering/tenants/{sample_tenant.id}/reconcile"
        )

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["snapshot"]["total_bytes"] == 225
        assert data["snapshot"]["item_count"] == 3
        assert data["violation"] is None

    async def test_reconcile_unknown_tenant(self, client):
        response = await client.post("/api/v1/metering/tenants/31337/reconcile")

        assert response.status_code == 404

    async def test_reconcile_while_locked_is_conflict(
        self, client, sample_tenant, memory_lock, monkeypatch
    ):
        monkeypatch.setattr(settings, "reconcile_lock_wait_seconds", 0)
        await memory_lock.acquire_lock(reconcile_lock_key(sample_tenant.id), 60)

        response = await client.post(
            f"/api/v1/metering/tenants/{sample_tenant.id}/reconcile"
        )

        assert response.status_code == 409
        assert response.json()["error"] == "ReconciliationInProgressError"

    async def test_reconcile_all(self, client, sample_tenant, growth_tenant):
        response = await client.post("/api/v1/metering/reconcile")

        assert response.status_code == 200
        data = response.json()
        assert data["total_tenants"] == 2
        assert data["succeeded"] == 2
        assert data["failed"] == 0

    async def test_usage_reflects_last_reconciliation(
        self, client, sample_tenant, sample_knowledge_items
    ):
        before = await client.get(f"/api/v1/metering/tenants/{sample_tenant.id}/usage")
        await client.post(f"/api/v1/metering/tenants/{sample_tenant.id}/reconcile")
        after = await client.get(f"/api/v1/metering/tenants/{sample_tenant.id}/usage")

        assert before.status_code == 200
        assert before.json()["storage_bytes"] == 0
        assert before.json()["usage_computed_at"] is None
        data = after.json()
        assert data["storage_bytes"] == 225
        assert data["content_bytes"] == 10
        assert data["item_count"] == 3
        assert data["quota_bytes"] == 1_000_000_000
        assert data["limits"]["within_limits"] is True
        assert data["usage_computed_at"] is not None

    async def test_usage_unknown_tenant(self, client):
        response = await client.get("/api/v1/metering/tenants/31337/usage")

        assert response.status_code == 404
