"""planky-sync: an offline-first to-do list kept in sync with Planka boards."""

from planky_sync.config import (
    PLANKY_HOME, TASKS_FILE, PENDING_OPS_FILE, SESSION_FILE, POLL_INTERVAL,
    REMIND_INTERVAL, PlankaConfig, load_session_config, save_session_config,
)
from planky_sync.models import (
    TaskStatus, PendingOpKind, Board, BoardLists, RemoteCard, Delta, Task,
    PendingOperation,
)
from planky_sync.planka_api import PlankaAPI, PlankaError, NotConfiguredError, connect
from planky_sync.task_store import TaskStore
from planky_sync.board_lists import BoardListCache
from planky_sync.pending_queue import PendingQueue
from planky_sync.poller import BackgroundPoller
from planky_sync.reminder import DueReminder, due_today
from planky_sync.reconcile import apply_delta, SyncReport
from planky_sync.engine import SyncEngine
from planky_sync.cli import main
