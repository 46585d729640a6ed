import argparse
import sys

from common.core.config import settings
from common.workers.launcher import WorkerLauncher
from packages.metering.workers.reconciliation_worker import ReconciliationWorker


def setup_cli():
    """Setup CLI arguments and return parsed args with factory parameters."""
    parser = argparse.ArgumentParser(description="Tenant Usage Reconciliation Worker")
    parser.add_argument(
        "--interval-seconds",
        type=int,
        default=settings.reconcile_interval_seconds,
        help=f"Seconds between reconciliation passes (default: {settings.reconcile_interval_seconds})",
    )
    parser.add_argument(
        "--once",
        action="store_true",
        help="Run a single pass and exit",
    )
    parser.add_argument(
        "--tenant-id",
        type=int,
        default=None,
        help="Reconcile only this tenant",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default="INFO",
        help="Log level (default: INFO)",
    )

    args = parser.parse_args()

    factory_args = ()
    factory_kwargs = {
        "interval_seconds": args.interval_seconds,
        "once": args.once,
        "tenant_id": args.tenant_id,
    }

    return args, factory_args, factory_kwargs


def main():
    """Main entry point with command-line argument support."""
    return WorkerLauncher().run_with_cli(
        worker_factory=ReconciliationWorker,
        worker_name="Reconciliation Worker",
        cli_setup_func=setup_cli,
    )


if __name__ == "__main__":
    sys.exit(main())
