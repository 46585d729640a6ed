"""
Usage aggregation.

Storage usage is the UTF-8 size of what a tenant has stored, recomputed from
the records on every call. It is the source of truth for billing, so nothing
here is cached.
"""

from datetime import datetime
from typing import Optional

from common.core.clock import as_utc, utcnow
from common.core.otel_axiom_exporter import trace_span, get_logger
from packages.content.models.domain.content_record import ContentRecord
from packages.content.providers.factory import get_content_store
from packages.content.providers.interface import ContentStoreInterface
from packages.metering.models.domain.usage import UsageSnapshot

logger = get_logger(__name__)

# Approximate stored size of one analysis key point
KEY_POINT_APPROX_BYTES = 20
# Fixed per-item overhead for ids, timestamps and index entries
METADATA_OVERHEAD_BYTES = 50


def utf8_len(text: str) -> int:
    return len(text.encode("utf-8"))


def record_breakdown(record: ContentRecord) -> tuple[int, int, int, int]:
    """(content, transcription, analysis, metadata) bytes for one record."""
    analysis = (
        utf8_len(record.analysis_summary)
        + len(record.analysis_key_points) * KEY_POINT_APPROX_BYTES
    )
    return (
        utf8_len(record.content),
        utf8_len(record.transcription_text),
        analysis,
        METADATA_OVERHEAD_BYTES,
    )


class UsageAggregator:
    def __init__(self, content_store: Optional[ContentStoreInterface] = None):
        self.content_store = content_store or get_content_store()

    @trace_span
    async def compute_usage(
        self, tenant_id: int, period_start: Optional[datetime] = None
    ) -> UsageSnapshot:
        """
        Compute the tenant's usage snapshot.

        Transcription seconds only count records created at or after
        ``period_start``; storage always counts everything stored. A tenant
        without records gets an all-zero snapshot.

        Raises:
            DataSourceError: the content store failed
        """
        period_start = as_utc(period_start)
        content = transcription = analysis = metadata = 0
        item_count = 0
        transcription_seconds = 0.0

        async for record in self.content_store.list_tenant_records(tenant_id):
            c, t, a, m = record_breakdown(record)
            content += c
            transcription += t
            analysis += a
            metadata += m
            item_count += 1

            if (record.duration_seconds or 0) > 0 and (
                period_start is None
                or (
                    record.created_at is not None
                    and as_utc(record.created_at) >= period_start
                )
            ):
                transcription_seconds += record.duration_seconds

        snapshot = UsageSnapshot(
            tenant_id=tenant_id,
            content_bytes=content,
            transcription_bytes=transcription,
            analysis_bytes=analysis,
            metadata_bytes=metadata,
            total_bytes=content + transcription + analysis + metadata,
            item_count=item_count,
            transcription_seconds=transcription_seconds,
            computed_at=utcnow(),
        )
        logger.debug(
            "Computed usage",
            extra={
                "tenant_id": tenant_id,
                "total_bytes": snapshot.total_bytes,
                "item_count": item_count,
            },
        )
        return snapshot
