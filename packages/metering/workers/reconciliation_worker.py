import asyncio
from typing import Optional

from common.core.config import settings
from common.core.otel_axiom_exporter import get_logger
from packages.metering.engine import MeteringEngine, get_metering_engine

logger = get_logger(__name__)


class ReconciliationWorker:
    """Periodically reconciles tenant usage.

    Runs a full pass every ``interval_seconds``. With ``tenant_id`` set only
    that tenant is reconciled, and with ``once`` the worker exits after the
    first pass.
    """

    def __init__(
        self,
        interval_seconds: Optional[int] = None,
        once: bool = False,
        tenant_id: Optional[int] = None,
        engine: Optional[MeteringEngine] = None,
    ):
        self.interval_seconds = interval_seconds or settings.reconcile_interval_seconds
        self.once = once
        self.tenant_id = tenant_id
        self.engine = engine
        self.running = False
        self.passes_completed = 0
        self._wake_event: Optional[asyncio.Event] = None

    def wake(self) -> None:
        """Interrupt the sleep between passes."""
        if self._wake_event is not None:
            self._wake_event.set()

    async def run_pass(self) -> None:
        if self.tenant_id is not None:
            result = await self.engine.reconcile_one(self.tenant_id)
            logger.info(
                f"Reconciled tenant {self.tenant_id}",
                extra={
                    "tenant_id": self.tenant_id,
                    "usage_percent": result.usage_percent,
                    "minutes_percent": result.minutes_percent,
                    "notified": result.notified,
                    "minutes_notified": result.minutes_notified,
                },
            )
        else:
            summary = await self.engine.reconcile_all()
            logger.info(
                f"Reconciled {summary.total_tenants} tenants "
                f"({summary.failed} failed, {summary.notified} notified)"
            )
        self.passes_completed += 1

    async def start(self):
        if self.running:
            logger.warning("Reconciliation worker is already running")
            return

        if self.engine is None:
            self.engine = get_metering_engine()
        self._wake_event = asyncio.Event()
        self.running = True
        logger.info(
            f"Reconciliation worker started (interval={self.interval_seconds}s, "
            f"once={self.once}, tenant_id={self.tenant_id})"
        )

        while self.running:
            try:
                await self.run_pass()
            except Exception as e:
                if self.once:
                    raise
                # A failed pass is retried on the next tick
                logger.error(f"Reconciliation pass failed: {e}", exc_info=True)

            if self.once:
                break

            try:
                await asyncio.wait_for(
                    self._wake_event.wait(), timeout=self.interval_seconds
                )
            except asyncio.TimeoutError:
                pass
            self._wake_event.clear()

        self.running = False

    async def stop(self):
        self.running = False
        self.wake()
        logger.info(
            f"Reconciliation worker stopped after {self.passes_completed} passes"
        )
