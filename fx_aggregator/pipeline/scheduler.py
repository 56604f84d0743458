"""Timer that triggers the pipeline once per interval."""

from __future__ import annotations

import threading
from datetime import datetime, timedelta
from typing import Callable

from fx_aggregator.pipeline.runner import PipelineRunner, RunReport
from fx_aggregator.utils.clock import as_aware_utc, utc_now
from fx_aggregator.utils.logger import get_logger

LOGGER = get_logger(__name__)

HOURLY = 3600


def seconds_until_next_run(
    now: datetime, interval_seconds: int = HOURLY, *, align_to_interval: bool = True
) -> float:
    """Return the delay before the next trigger.

    With alignment the trigger lands on the next multiple of
    ``interval_seconds`` since midnight UTC (the top of the hour for the default
    interval).
    """

    if not align_to_interval:
        return float(interval_seconds)
    current = as_aware_utc(now)
    midnight = current.replace(hour=0, minute=0, second=0, microsecond=0)
    elapsed = (current - midnight).total_seconds()
    remainder = elapsed % interval_seconds
    return float(interval_seconds - remainder)


class HourlyScheduler:
    """Background thread calling :meth:`PipelineRunner.run` on a fixed cadence.

    Overlapping cycles are prevented by the runner's own single-flight guard;
    a tick that finds the runner busy is logged and skipped.
    """

    def __init__(
        self,
        runner: PipelineRunner,
        *,
        interval_seconds: int = HOURLY,
        align_to_interval: bool = True,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")
        self.runner = runner
        self.interval_seconds = interval_seconds
        self.align_to_interval = align_to_interval
        self._clock = clock
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None
        self.last_report: RunReport | None = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def next_delay(self) -> float:
        return seconds_until_next_run(
            self._clock(), self.interval_seconds, align_to_interval=self.align_to_interval
        )

    def tick(self) -> RunReport | None:
        """Trigger one run; errors are logged so the loop keeps going."""

        try:
            self.last_report = self.runner.run()
        except Exception:
            LOGGER.exception("Error during scheduled forex rate aggregation")
            return None
        return self.last_report

    def run_forever(self) -> None:
        LOGGER.info("Scheduler started with a %ss interval", self.interval_seconds)
        while not self._stop.is_set():
            delay = self.next_delay()
            LOGGER.debug(
                "Next aggregation run at %s", self._clock() + timedelta(seconds=delay)
            )
            if self._stop.wait(delay):
                break
            self.tick()
        LOGGER.info("Scheduler stopped")

    def start(self) -> None:
        if self.running:
            raise RuntimeError("Scheduler is already running")
        self._stop.clear()
        self._thread = threading.Thread(
            target=self.run_forever, name="fx-aggregator-scheduler", daemon=True
        )
        self._thread.start()

    def stop(self, timeout: float | None = None) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None


__all__ = ["HOURLY", "HourlyScheduler", "seconds_until_next_run"]
