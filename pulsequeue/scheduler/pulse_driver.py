"""
Pulse Driver

APScheduler-backed fixed-rate pulse source feeding the root ticker.

Author: PulseQueue Project
License: MIT
"""

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger

from ..interruptor.ticker import Ticker
from ..utils.logger import get_logger

logger = get_logger(__name__)

JOB_ID = 'pulse'


class PulseDriver:
    """
    Calls ``tick()`` on the root ticker at a fixed interval.

    Features:
    - Single instance per pulse (a slow cascade delays, never overlaps)
    - Missed pulses are coalesced rather than replayed
    - Pause/resume without losing the ticker's counters
    """

    def __init__(self, root: Ticker, interval_seconds: float = 1.0):
        """
        Initialize pulse driver.

        Args:
            root: Ticker receiving every pulse
            interval_seconds: Seconds between pulses
        """
        if interval_seconds <= 0:
            raise ValueError(f"Pulse interval must be positive: {interval_seconds}")

        self.root = root
        self.interval_seconds = interval_seconds
        self.scheduler = BackgroundScheduler(
            timezone='UTC',
            job_defaults={
                'coalesce': True,  # late pulses collapse into one
                'max_instances': 1  # never overlap a slow cascade
            }
        )
        self.pulses = 0

        logger.info(f"PulseDriver initialized (root={root.name}, interval={interval_seconds}s)")

    @property
    def running(self) -> bool:
        return self.scheduler.running

    def start(self):
        """Start emitting pulses."""
        if self.scheduler.running:
            logger.warning("Pulse driver already running")
            return

        self.scheduler.add_job(
            func=self.pulse,
            trigger=IntervalTrigger(seconds=self.interval_seconds),
            id=JOB_ID,
            name=f"Pulse: {self.root.name}",
            replace_existing=True
        )
        self.scheduler.start()
        logger.info("Pulse driver started")

    def stop(self, wait: bool = True):
        """Stop emitting pulses; stops the whole tree."""
        if not self.scheduler.running:
            return

        self.scheduler.shutdown(wait=wait)
        logger.info(f"Pulse driver stopped after {self.pulses} pulses")

    def pulse(self):
        """Deliver one pulse to the root ticker."""
        self.pulses += 1
        try:
            self.root.tick()
        except Exception as e:
            # tick() isolates its target; this only guards the scheduler thread
            logger.error(f"Error delivering pulse to '{self.root.name}': {e}", exc_info=True)

    def pause(self):
        self.scheduler.pause()
        logger.info("Pulse driver paused")

    def resume(self):
        self.scheduler.resume()
        logger.info("Pulse driver resumed")

    def get_status(self) -> dict:
        job = self.scheduler.get_job(JOB_ID) if self.scheduler.running else None
        next_run = job.next_run_time if job else None
        return {
            'running': self.scheduler.running,
            'interval_seconds': self.interval_seconds,
            'pulses': self.pulses,
            'next_pulse': next_run.isoformat() if next_run else None,
            'root': self.root.name,
            'root_counter': self.root.counter,
            'root_threshold': self.root.threshold
        }
