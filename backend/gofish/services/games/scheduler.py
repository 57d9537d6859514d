import logging
import threading
import time
from typing import Callable, Dict, Optional

logger = logging.getLogger(__name__)


class ScheduledTask:
    def __init__(self, key: str, delay: float, fn: Callable[[], None]):
        self.key = key
        self.delay = delay
        self.fn = fn
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class TaskScheduler:
    """Runs at most one delayed task per key.

    ``start_task`` and ``sleep`` default to plain threads; the app wires in
    ``socketio.start_background_task`` and ``socketio.sleep``. With
    ``inline=True`` tasks run synchronously in the caller, skipping the delay.
    """

    def __init__(self, start_task=None, sleep=None, inline: bool = False):
        self._start_task = start_task or _start_thread
        self._sleep = sleep or time.sleep
        self.inline = inline
        self._pending: Dict[str, ScheduledTask] = {}
        self._lock = threading.Lock()

    def schedule(self, key: str, delay: float, fn: Callable[[], None]) -> Optional[ScheduledTask]:
        with self._lock:
            if key in self._pending:
                logger.info(f"[timer-skip] key={key} already scheduled")
                return None
            task = ScheduledTask(key, delay, fn)
            self._pending[key] = task
        logger.debug(f"[timer-set] key={key} delay={delay}s")
        if self.inline:
            self._run(task, wait=False)
        else:
            self._start_task(self._run, task)
        return task

    def cancel(self, key: str) -> bool:
        with self._lock:
            task = self._pending.pop(key, None)
        if task is None:
            return False
        task.cancel()
        logger.info(f"[timer-cancel] key={key}")
        return True

    def is_pending(self, key: str) -> bool:
        with self._lock:
            return key in self._pending

    def _run(self, task: ScheduledTask, wait: bool = True) -> None:
        if wait and task.delay > 0:
            self._sleep(task.delay)
        with self._lock:
            # Release the key before firing so the task may schedule its own follow-up
            if self._pending.get(task.key) is not task:
                task.cancelled = True
            else:
                del self._pending[task.key]
        if task.cancelled:
            logger.info(f"[timer-abort] key={task.key} cancelled")
            return
        logger.debug(f"[timer-fire] key={task.key}")
        try:
            task.fn()
        except Exception:
            logger.exception(f"[timer-error] key={task.key}")
            if self.inline:
                raise


def _start_thread(fn, *args):
    thread = threading.Thread(target=fn, args=args, daemon=True)
    thread.start()
    return thread
