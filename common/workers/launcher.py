"""
Common worker launcher utilities to reduce boilerplate code across workers.
"""

import asyncio
import logging
import signal
from typing import Optional, Any, Callable

from common.core.otel_axiom_exporter import _initialize_telemetry, get_logger


class WorkerLauncher:
    """Handles telemetry setup, signals and the start/stop lifecycle of a worker.

    A worker is any object exposing ``running``, ``async start()`` and
    ``async stop()``.
    """

    def __init__(self):
        self.logger = get_logger(__name__)
        self.worker_instance: Optional[Any] = None

    def _request_shutdown(self, signum: int) -> None:
        self.logger.info(f"Received signal {signum}, initiating graceful shutdown...")
        if self.worker_instance:
            self.worker_instance.running = False
            wake = getattr(self.worker_instance, "wake", None)
            if wake is not None:
                wake()

    def _register_signal_handlers(self):
        """Register signal handlers for graceful shutdown."""
        loop = asyncio.get_running_loop()
        for signum in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(signum, self._request_shutdown, signum)
            except NotImplementedError:
                # Windows event loops
                signal.signal(signum, lambda s, _f: self._request_shutdown(s))

    async def _run_worker_async(self, worker_instance: Any, worker_name: str) -> int:
        """Run worker with common lifecycle management. Returns an exit code."""
        self.worker_instance = worker_instance
        self._register_signal_handlers()

        exit_code = 0
        try:
            self.logger.info(f"Starting {worker_name}...")
            await worker_instance.start()
        except Exception as e:
            self.logger.error(f"Worker failed with error: {e}", exc_info=True)
            exit_code = 1
        finally:
            try:
                self.logger.info("Performing worker cleanup...")
                await worker_instance.stop()
                self.logger.info("Worker shutdown complete")
            except Exception as cleanup_error:
                self.logger.error(f"Error during cleanup: {cleanup_error}")
        return exit_code

    def run(
        self,
        worker_factory: Callable,
        worker_name: str,
        factory_args: tuple = (),
        factory_kwargs: Optional[dict] = None,
    ) -> int:
        """
        Main entry point to run a worker.

        Args:
            worker_factory: Function/class that creates the worker instance
            worker_name: Human readable name for logging
            factory_args: Args to pass to worker factory
            factory_kwargs: Kwargs to pass to worker factory
        """
        if factory_kwargs is None:
            factory_kwargs = {}

        _initialize_telemetry()

        self.logger.info(f"Configuring {worker_name}...")
        worker_instance = worker_factory(*factory_args, **factory_kwargs)

        try:
            return asyncio.run(self._run_worker_async(worker_instance, worker_name))
        except KeyboardInterrupt:
            self.logger.info("Final keyboard interrupt caught, exiting...")
            return 0

    def run_with_cli(
        self,
        worker_factory: Callable,
        worker_name: str,
        cli_setup_func: Optional[Callable] = None,
    ) -> int:
        """
        Run worker with CLI argument parsing support.

        Args:
            worker_factory: Function/class that creates the worker instance
            worker_name: Human readable name for logging
            cli_setup_func: Function that sets up argument parser and returns (args, factory_args, factory_kwargs)
        """
        if cli_setup_func:
            args, factory_args, factory_kwargs = cli_setup_func()

            # Update logging level if provided in args
            if getattr(args, "log_level", None):
                logging.getLogger().setLevel(getattr(logging, args.log_level))
        else:
            factory_args, factory_kwargs = (), {}

        return self.run(
            worker_factory=worker_factory,
            worker_name=worker_name,
            factory_args=factory_args,
            factory_kwargs=factory_kwargs,
        )
