import logging
import threading
import time
from typing import Callable, Optional

logger = logging.getLogger(__name__)


def _spawn_thread(target, *args):
    worker = threading.Thread(target=target, args=args, daemon=True)
    worker.start()
    return worker


class TimerHandle:
    """A one-shot scheduled callback that can be cancelled until it runs."""

    def __init__(self, delay: float, callback: Callable, args=()):
        self.delay = delay
        self.deadline = time.time() + delay
        self._callback = callback
        self._args = args
        self._lock = threading.Lock()
        self._cancelled = False
        self._fired = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    @property
    def fired(self) -> bool:
        return self._fired

    def cancel(self) -> None:
        with self._lock:
            self._cancelled = True

    def run(self) -> bool:
        """Invoke the callback unless cancelled or already run."""
        with self._lock:
            if self._cancelled or self._fired:
                return False
            self._fired = True
        self._callback(*self._args)
        return True


class TaskScheduler:
    """Runs TimerHandles on background tasks.

    ``spawn`` and ``sleep`` default to plain threads and ``time.sleep``; the
    app factory passes ``socketio.start_background_task`` / ``socketio.sleep``
    so timers cooperate with whichever async mode Socket.IO picked.
    """

    # Longest single sleep of a waiting timer; a cancelled timer's task ends
    # within this long
    poll_interval = 1.0

    def __init__(self, spawn: Optional[Callable] = None, sleep: Optional[Callable] = None, log=None,
                 poll_interval: Optional[float] = None):
        self.spawn = spawn or _spawn_thread
        self.sleep = sleep or time.sleep
        self.logger = log or logger
        if poll_interval is not None:
            self.poll_interval = poll_interval

    def call_later(self, delay: float, callback: Callable, *args) -> TimerHandle:
        handle = TimerHandle(delay, callback, args)
        self.logger.info(f"[timer-set] delay={delay}s deadline={handle.deadline}")
        self.spawn(self._worker, handle)
        return handle

    def _worker(self, handle: TimerHandle) -> None:
        while True:
            if handle.cancelled:
                self.logger.info("[timer-abort] cancelled before firing")
                return
            remaining = handle.deadline - time.time()
            if remaining <= 0:
                break
            self.sleep(min(self.poll_interval, remaining))
        self.logger.info(f"[timer-fire] deadline={handle.deadline}")
        try:
            handle.run()
        except Exception:
            self.logger.exception("[timer-error] callback failed")


def start_stale_room_sweeper(app, registry, scheduler: TaskScheduler, stop_event: Optional[threading.Event] = None):
    """Start the background loop that drops empty rooms past their threshold.

    - No-ops in TESTING mode unless ENABLE_SCHEDULER_IN_TESTS is set
    - Runs every STALE_ROOM_SWEEP_INTERVAL_SEC for the life of the process,
      or until ``stop_event`` is set
    """
    if app.config.get('TESTING') and not app.config.get('ENABLE_SCHEDULER_IN_TESTS'):
        return None

    interval = float(app.config.get('STALE_ROOM_SWEEP_INTERVAL_SEC', 1800))
    threshold = float(app.config.get('STALE_ROOM_THRESHOLD_SEC', 1800))
    if interval <= 0:
        return None

    def _sweeper():
        while stop_event is None or not stop_event.is_set():
            scheduler.sleep(interval)
            if stop_event is not None and stop_event.is_set():
                return
            try:
                removed = registry.sweep_stale(threshold_sec=threshold)
            except Exception:
                app.logger.exception("[sweep-error] stale room sweep failed")
                continue
            if removed:
                app.logger.info(f"[sweep] removed {len(removed)} stale room(s): {', '.join(removed)}")

    app.logger.info(f"[sweep-start] interval={interval}s threshold={threshold}s")
    return scheduler.spawn(_sweeper)
