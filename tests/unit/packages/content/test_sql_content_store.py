import pytest
from pydantic import ValidationError as PydanticValidationError

from common.core.exceptions import DataSourceError
from packages.content.models.domain.content_record import (
    ContentRecord,
    ContentRecordCreateModel,
)
from packages.content.providers.sql_content_store import SqlContentStore
from packages.content.repositories.knowledge_item_repository import (
    KnowledgeItemRepository,
)


class TestContentRecord:
    def test_none_text_reads_as_empty(self):
        record = ContentRecord.model_validate(
            {"id": 1, "tenant_id": 2, "title": None, "content": None}
        )

        assert record.title == ""
        assert record.content == ""
        assert record.analysis_key_points == []

    def test_key_points_must_be_a_list(self):
        with pytest.raises(PydanticValidationError):
            ContentRecord.model_validate(
                {"id": 1, "tenant_id": 2, "analysis_key_points": {"a": 1}}
            )


@pytest.mark.asyncio
class TestSqlContentStore:
    async def _create_items(self, tenant_id: int, count: int):
        repo = KnowledgeItemRepository()
        for i in range(count):
            await repo.create(
                ContentRecordCreateModel(tenant_id=tenant_id, content=f"item {i}")
            )

    async def test_streams_every_record_across_pages(self, sample_tenant):
        await self._create_items(sample_tenant.id, 5)
        store = SqlContentStore(batch_size=2)

        records = [r async for r in store.list_tenant_records(sample_tenant.id)]

        assert [r.content for r in records] == [f"item {i}" for i in range(5)]
        assert [r.id for r in records] == sorted(r.id for r in records)

    async def test_exact_page_multiple(self, sample_tenant):
        await self._create_items(sample_tenant.id, 4)
        store = SqlContentStore(batch_size=2)

        records = [r async for r in store.list_tenant_records(sample_tenant.id)]

        assert len(records) == 4

    async def test_only_the_tenants_records(self, sample_tenant, growth_tenant):
        await self._create_items(sample_tenant.id, 2)
        await self._create_items(growth_tenant.id, 3)

        records = [
            r async for r in SqlContentStore().list_tenant_records(growth_tenant.id)
        ]

        assert len(records) == 3
        assert {r.tenant_id for r in records} == {growth_tenant.id}

    async def test_malformed_row_becomes_data_source_error(self, monkeypatch):
        async def malformed(*args, **kwargs):
            return [ContentRecord.model_validate({"id": "not-an-id"})]

        monkeypatch.setattr(KnowledgeItemRepository, "get_batch_for_tenant", malformed)

        with pytest.raises(DataSourceError):
            [r async for r in SqlContentStore().list_tenant_records(1)]
