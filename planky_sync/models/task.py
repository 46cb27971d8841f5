"""Task dataclass: one local to-do item, optionally linked to a Planka card."""

from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional

from planky_sync.models.enums import TaskStatus
from planky_sync.models.remote import BoardLists


def today() -> str:
    return datetime.now().strftime('%Y-%m-%d')


@dataclass
class Task:
    description: str
    project: str
    due_date: Optional[str] = None
    created_date: str = field(default_factory=today)
    done: bool = False
    card_id: Optional[str] = None
    list_id: Optional[str] = None
    board_id: Optional[str] = None
    dirty: bool = False        # unpublished local edits, remote reads must not overwrite

    @property
    def is_linked(self) -> bool:
        return self.card_id is not None

    def status(self, lists: Optional[BoardLists] = None) -> TaskStatus:
        """Column for this task given the board's cached list ids.

        Without cached lists only the completion flag is known.
        """
        in_doing = lists is not None and self.list_id == lists.doing_list_id
        in_done = lists is not None and self.list_id == lists.done_list_id
        if not self.done and in_doing:
            return TaskStatus.DOING
        if self.done or in_done:
            return TaskStatus.DONE
        return TaskStatus.TODO

    def desired_list(self, lists: BoardLists) -> str:
        """List id the card should live in for the current local state."""
        if self.done:
            return lists.done_list_id
        if self.list_id == lists.doing_list_id:
            return lists.doing_list_id
        return lists.todo_list_id

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Task":
        return cls(**{
            k: v for k, v in data.items()
            if k in cls.__dataclass_fields__
        })

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
