"""Reminder Scheduler.

Each run selects confirmed, not yet notified appointments that start inside
``[now + lead, now + lead + window)`` and hands them to the notifier. An
appointment is claimed (``notified`` set) before the notifier is called, so
concurrent or repeated runs never notify it twice; a failed delivery is not
retried (at-most-once).
"""

import logging
import threading
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Optional

from scheduling.core import config
from scheduling.core.clock import SystemClock
from scheduling.database import serialized_write, storage_errors
from scheduling.engine.notifications import LoggingNotifier, build_reminder
from scheduling.repository import ScheduleRepository

logger = logging.getLogger(__name__)


@dataclass
class ReminderRun:
    window_start: datetime
    window_end: datetime
    selected: int = 0
    sent: int = 0
    failed: int = 0
    without_contact: int = 0


class ReminderScheduler:
    def __init__(
        self,
        session_factory: Callable,
        notifier=None,
        clock=None,
        lead_minutes: int = config.REMINDER_LEAD_MINUTES,
        window_minutes: int = config.REMINDER_WINDOW_MINUTES,
    ):
        self.session_factory = session_factory
        self.notifier = notifier or LoggingNotifier()
        self.clock = clock or SystemClock()
        self.lead = timedelta(minutes=lead_minutes)
        self.window = timedelta(minutes=window_minutes)

    def reminder_window(self, now: datetime) -> tuple[datetime, datetime]:
        window_start = now + self.lead
        return window_start, window_start + self.window

    def run_once(self) -> ReminderRun:
        window_start, window_end = self.reminder_window(self.clock.now())
        run = ReminderRun(window_start=window_start, window_end=window_end)

        db = self.session_factory()
        try:
            repository = ScheduleRepository(db)
            with storage_errors():
                due = repository.find_due_reminders(window_start, window_end)
                notices = [build_reminder(appointment) for appointment in due]
            run.selected = len(notices)

            for notice in notices:
                with serialized_write(db):
                    claimed = repository.set_notified(notice.appointment_id)
                if not claimed:
                    continue

                if not notice.has_contact:
                    run.without_contact += 1
                    logger.info('Appointment %s has no client contact; marked notified', notice.appointment_id)
                    continue

                try:
                    delivered = self.notifier.send(notice)
                except Exception:
                    logger.exception('Reminder delivery raised for appointment %s', notice.appointment_id)
                    delivered = False

                if delivered:
                    run.sent += 1
                else:
                    run.failed += 1
                    logger.warning('Reminder for appointment %s was not delivered', notice.appointment_id)
        finally:
            db.close()

        if run.selected:
            logger.info(
                'Reminder run %s-%s: %d selected, %d sent, %d failed',
                window_start.strftime('%Y-%m-%d %H:%M'),
                window_end.strftime('%H:%M'),
                run.selected,
                run.sent,
                run.failed,
            )
        return run


class PeriodicTask:
    """Runs ``func`` every ``interval_seconds`` on a background thread.

    A tick that fires while the previous run is still going is skipped.
    ``stop`` lets an in-flight run finish.
    """

    def __init__(self, func: Callable[[], object], interval_seconds: float, name: str = 'periodic-task'):
        self.func = func
        self.interval_seconds = interval_seconds
        self.name = name
        self._run_lock = threading.Lock()
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def tick(self) -> bool:
        if not self._run_lock.acquire(blocking=False):
            logger.warning('%s: previous run still in progress, skipping', self.name)
            return False
        try:
            self.func()
        except Exception:
            # Storage failures are retried on the next tick.
            logger.exception('%s: run failed', self.name)
        finally:
            self._run_lock.release()
        return True

    def _loop(self) -> None:
        while not self._stop_event.wait(self.interval_seconds):
            self.tick()

    def start(self) -> None:
        if self.is_running:
            return
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._loop, name=self.name, daemon=True)
        self._thread.start()
        logger.info('%s started (every %ss)', self.name, self.interval_seconds)

    def stop(self, timeout: Optional[float] = None) -> None:
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None
        logger.info('%s stopped', self.name)
