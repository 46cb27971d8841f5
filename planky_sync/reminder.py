"""Due-date reminder: announces undone tasks that are due today.

Runs beside the poller in ``planky watch``. It reads the task file from
disk every cycle, so it sees what the last save wrote and never touches
the engine's in-memory tasks.
"""

import threading
from typing import Callable, List, Optional, Set, Tuple

from planky_sync.config import REMIND_INTERVAL, TASKS_FILE
from planky_sync.models import Task
from planky_sync.models.task import today as local_today
from planky_sync.task_store import TaskStore


def due_today(tasks: List[Task], today: Optional[str] = None) -> List[Task]:
    """Undone tasks whose due date (or its date part) is *today*."""
    day = today or local_today()
    return [t for t in tasks
            if not t.done and t.due_date and t.due_date[:10] == day]


def reminder_text(task: Task) -> str:
    return f'"{task.description}" is due today! Don\'t forget!'


def _print_reminder(task: Task):
    print(f"[REMIND] {reminder_text(task)}")


class DueReminder:
    """Checks the task file every *interval* seconds.

    *notify* is called once per task and day with the due ``Task``.
    """

    def __init__(self, path: Optional[str] = None,
                 interval: float = REMIND_INTERVAL,
                 notify: Optional[Callable[[Task], None]] = None,
                 debug: bool = False):
        self.path = path or TASKS_FILE
        self.interval = interval
        self.notify = notify or _print_reminder
        self.debug = debug
        self._announced: Set[Tuple[str, str, str]] = set()
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def _dbg(self, msg: str):
        if self.debug:
            print(f"[REMIND] {msg}")

    def start(self):
        if self._thread is None:
            self._thread = threading.Thread(
                target=self._run, name='planky-reminder', daemon=True)
            self._thread.start()

    def stop(self, timeout: Optional[float] = None):
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def _run(self):
        while not self._stop.is_set():
            self.check_once()
            self._stop.wait(self.interval)

    def check_once(self, today: Optional[str] = None) -> List[Task]:
        """Reload the task file and notify every task not yet announced today."""
        day = today or local_today()
        fresh = []
        for task in due_today(TaskStore(self.path).load(), day):
            key = (day, task.project, task.description)
            if key in self._announced:
                continue
            self._announced.add(key)
            fresh.append(task)
            self.notify(task)
        self._dbg(f"{len(fresh)} new reminder(s) for {day}")
        return fresh
