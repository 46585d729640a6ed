from abc import ABC, abstractmethod
from typing import AsyncIterator

from packages.content.models.domain.content_record import ContentRecord


class ContentStoreInterface(ABC):
    """Read access to a tenant's stored content."""

    @abstractmethod
    def list_tenant_records(self, tenant_id: int) -> AsyncIterator[ContentRecord]:
        """
        Stream every record owned by the tenant.

        Raises:
            DataSourceError: the store is unreachable or returned malformed rows
        """
        pass
