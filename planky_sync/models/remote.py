"""Value types crossing the Planka client boundary, plus inbound deltas."""

from dataclasses import dataclass
from typing import Optional

from planky_sync.models.enums import TaskStatus


@dataclass(frozen=True)
class Board:
    id: str
    name: str
    project_id: Optional[str] = None
    project_name: Optional[str] = None


@dataclass(frozen=True)
class BoardLists:
    """The three canonical list ids of one board."""
    board_id: str
    todo_list_id: str
    doing_list_id: str
    done_list_id: str

    def list_for(self, role: TaskStatus) -> str:
        if role is TaskStatus.DOING:
            return self.doing_list_id
        if role is TaskStatus.DONE:
            return self.done_list_id
        return self.todo_list_id


@dataclass(frozen=True)
class RemoteCard:
    id: str
    name: str
    due: Optional[str] = None       # raw remote timestamp
    created: Optional[str] = None   # raw remote timestamp


@dataclass(frozen=True)
class Delta:
    """Snapshot of one remote card as seen by the background poller."""
    project: str
    card_id: str
    name: str
    list_id: str
    done: bool = False
    due: Optional[str] = None
    created: Optional[str] = None
