"""
Domain models for usage metering.
"""

import math
from datetime import datetime
from enum import IntEnum
from typing import Optional

from pydantic import BaseModel, Field, model_validator

from packages.billing.models.domain.enums import UsageKind
from packages.billing.models.domain.plans import TierRecommendation, UsageLimitCheck

BYTES_PER_MIB = 1024 * 1024
BYTES_PER_GIB = 1024 * BYTES_PER_MIB


class UsageSnapshot(BaseModel):
    """
    A tenant's usage computed from its stored records at one point in time.

    Byte fields are exact integers. MB/GB values are derived for display
    only and never fed back into billing.
    """

    tenant_id: int
    content_bytes: int = Field(default=0, ge=0)
    transcription_bytes: int = Field(default=0, ge=0)
    analysis_bytes: int = Field(default=0, ge=0)
    metadata_bytes: int = Field(default=0, ge=0)
    total_bytes: int = Field(default=0, ge=0)
    item_count: int = Field(default=0, ge=0)
    transcription_seconds: float = Field(default=0.0, ge=0)
    computed_at: datetime

    @model_validator(mode="after")
    def _total_is_sum_of_breakdown(self) -> "UsageSnapshot":
        breakdown = (
            self.content_bytes
            + self.transcription_bytes
            + self.analysis_bytes
            + self.metadata_bytes
        )
        if self.total_bytes != breakdown:
            raise ValueError(
                f"total_bytes {self.total_bytes} != breakdown sum {breakdown}"
            )
        return self

    @property
    def total_mb(self) -> float:
        return self.total_bytes / BYTES_PER_MIB

    @property
    def total_gb(self) -> float:
        return self.total_bytes / BYTES_PER_GIB

    @property
    def transcription_minutes(self) -> int:
        return math.ceil(self.transcription_seconds / 60)


class ThresholdBucket(IntEnum):
    NONE = 0
    WARNING = 80
    LIMIT = 100


class Violation(BaseModel):
    """
    Usage at or above the warning threshold of one of the tenant's quotas.

    The byte fields always describe storage. A minutes violation carries
    zero overage, since transcription minutes are never billed.
    """

    kind: UsageKind = UsageKind.STORAGE
    tenant_id: int
    tier: str
    percent: float
    bucket: ThresholdBucket
    total_bytes: int
    quota_bytes: int
    overage_bytes: int
    overage_cost: float
    minutes_used: int = 0
    minutes_quota: int = 0
    period_start: datetime


class ReconciliationResult(BaseModel):
    tenant_id: int
    success: bool
    snapshot: Optional[UsageSnapshot] = None
    usage_percent: Optional[float] = None
    minutes_percent: Optional[float] = None
    violation: Optional[Violation] = None
    minutes_violation: Optional[Violation] = None
    notified: bool = False
    minutes_notified: bool = False
    error: Optional[str] = None
    error_type: Optional[str] = None


class ReconciliationSummary(BaseModel):
    total_tenants: int
    succeeded: int
    failed: int
    violations: int
    notified: int
    results: list[ReconciliationResult]

    @classmethod
    def from_results(
        cls, results: list[ReconciliationResult]
    ) -> "ReconciliationSummary":
        return cls(
            total_tenants=len(results),
            succeeded=sum(1 for r in results if r.success),
            failed=sum(1 for r in results if not r.success),
            violations=sum(
                1
                for r in results
                if r.violation is not None or r.minutes_violation is not None
            ),
            notified=sum(1 for r in results if r.notified or r.minutes_notified),
            results=results,
        )


class TenantUsageReport(BaseModel):
    """Stored usage for one tenant, as served by the usage endpoint."""

    tenant_id: int
    tier: str
    storage_bytes: int
    content_bytes: int
    transcription_bytes: int
    analysis_bytes: int
    metadata_bytes: int
    item_count: int
    transcription_minutes: int
    quota_bytes: int
    minutes_quota: int
    usage_computed_at: Optional[datetime] = None
    limits: UsageLimitCheck
    recommendations: list[TierRecommendation]
