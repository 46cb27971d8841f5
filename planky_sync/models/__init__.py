"""Data models shared by the store, the queue, the poller and the engine."""

from planky_sync.models.enums import TaskStatus, PendingOpKind
from planky_sync.models.remote import Board, BoardLists, RemoteCard, Delta
from planky_sync.models.task import Task
from planky_sync.models.pending_op import PendingOperation

__all__ = [
    "TaskStatus",
    "PendingOpKind",
    "Board",
    "BoardLists",
    "RemoteCard",
    "Delta",
    "Task",
    "PendingOperation",
]
