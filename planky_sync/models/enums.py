"""Status and operation-kind enumerations."""

from enum import Enum


class TaskStatus(Enum):
    """Column a task is shown in. Derived, never stored."""
    TODO = "To Do"
    DOING = "Doing"
    DONE = "Done"


class PendingOpKind(Enum):
    """Kind of outbound mutation waiting in the pending-operation queue."""
    CREATE = "create"
    MOVE = "move"
    UPDATE = "update"
    DELETE = "delete"
