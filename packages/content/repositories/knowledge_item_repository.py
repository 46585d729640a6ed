from typing import Optional

from sqlalchemy import select

from common.core.otel_axiom_exporter import trace_span
from common.repositories.base import BaseRepository
from packages.content.models.database.knowledge_item import KnowledgeItemEntity
from packages.content.models.domain.content_record import ContentRecord


class KnowledgeItemRepository(BaseRepository[KnowledgeItemEntity, ContentRecord]):
    def __init__(self):
        super().__init__(KnowledgeItemEntity, ContentRecord)

    @trace_span
    async def get_batch_for_tenant(
        self, tenant_id: int, after_id: Optional[int] = None, limit: int = 500
    ) -> list[ContentRecord]:
        """One keyset page of a tenant's items, ordered by id."""
        query = select(KnowledgeItemEntity).where(
            KnowledgeItemEntity.tenant_id == tenant_id
        )
        if after_id is not None:
            query = query.where(KnowledgeItemEntity.id > after_id)
        query = query.order_by(KnowledgeItemEntity.id).limit(limit)

        async with self._get_session() as session:
            result = await session.execute(query)
            return self._entities_to_domain(result.scalars().all())
