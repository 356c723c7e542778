"""Retry sweep runner.

SWEEP_INTERVAL_SECONDS > 0: sweep, then sleep the interval, until SIGINT/SIGTERM.
SWEEP_INTERVAL_SECONDS <= 0: sweep once and exit (for an external cron).
"""
import asyncio
import signal
from typing import Any

from loguru import logger

from linklog.app.application.sweep_service import SweepReport
from linklog.app.composition import AppDependencies, create_app_dependencies
from linklog.app.config.settings import Settings
from linklog.app.core import SERVICE_NAME


def _log(event: str, **kwargs: Any) -> None:
    logger.bind(service_name=SERVICE_NAME, event=event, **kwargs).info("")


async def sweep_once(dependencies: AppDependencies) -> SweepReport:
    try:
        return await dependencies.sweep_service.run()
    except Exception as e:
        logger.exception("sweep failed: {}", e)
        return SweepReport()


async def run_sweeper(settings: Settings | None = None) -> None:
    dependencies = create_app_dependencies(settings)
    await dependencies.connect()
    interval = dependencies.settings.sweep_interval_seconds
    try:
        if interval <= 0:
            await sweep_once(dependencies)
            return

        shutdown = asyncio.Event()

        def request_shutdown() -> None:
            if not shutdown.is_set():
                _log("shutdown_signal")
                shutdown.set()

        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, request_shutdown)
            except NotImplementedError:
                pass

        _log("sweeper_started", interval_seconds=interval)
        while not shutdown.is_set():
            await sweep_once(dependencies)
            try:
                await asyncio.wait_for(shutdown.wait(), timeout=interval)
            except asyncio.TimeoutError:
                pass
    finally:
        await dependencies.close()
        _log("sweeper_stopped")


def main() -> None:
    try:
        asyncio.run(run_sweeper())
    except KeyboardInterrupt:
        _log("sweeper_interrupted")
    except Exception as e:
        logger.exception("sweeper failed: {}", e)
        raise


if __name__ == "__main__":
    main()
