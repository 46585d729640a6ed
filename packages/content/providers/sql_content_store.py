from typing import AsyncIterator, Optional

from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError

from common.core.config import settings
from common.core.exceptions import DataSourceError
from common.core.otel_axiom_exporter import get_logger
from packages.content.models.domain.content_record import ContentRecord
from packages.content.providers.interface import ContentStoreInterface
from packages.content.repositories.knowledge_item_repository import (
    KnowledgeItemRepository,
)

logger = get_logger(__name__)


class SqlContentStore(ContentStoreInterface):
    """
    Content store over the knowledge_items table.

    Pages by primary key, one short-lived session per page, so a large tenant
    never pins a connection for the whole scan.
    """

    def __init__(
        self,
        repo: Optional[KnowledgeItemRepository] = None,
        batch_size: Optional[int] = None,
    ):
        self.repo = repo or KnowledgeItemRepository()
        self.batch_size = batch_size or settings.reconcile_batch_size

    async def list_tenant_records(self, tenant_id: int) -> AsyncIterator[ContentRecord]:
        after_id = None
        while True:
            try:
                batch = await self.repo.get_batch_for_tenant(
                    tenant_id, after_id=after_id, limit=self.batch_size
                )
            except SQLAlchemyError as e:
                logger.error(
                    f"Content store read failed: {e}", extra={"tenant_id": tenant_id}
                )
                raise DataSourceError(f"Content store unavailable: {e}") from e
            except ValidationError as e:
                raise DataSourceError(
                    f"Malformed content record for tenant {tenant_id}: {e}"
                ) from e

            for record in batch:
                yield record

            if len(batch) < self.batch_size:
                return
            after_id = batch[-1].id
