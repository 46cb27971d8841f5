"""PendingOperation dataclass: one outbound mutation not yet confirmed remotely."""

import time
import uuid
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, Optional

from planky_sync.models.enums import PendingOpKind, TaskStatus


@dataclass
class PendingOperation:
    kind: str
    project: str
    card_id: Optional[str] = None
    list_id: Optional[str] = None
    name: Optional[str] = None
    due: Optional[str] = None
    # column role ("To Do" / "Doing" / "Done") when list ids were unknown
    role: Optional[str] = None
    ts: float = field(default_factory=time.time)
    # removal key; ``ts`` alone collides for ops queued within one clock tick
    op_id: str = field(default_factory=lambda: uuid.uuid4().hex)

    def __post_init__(self):
        if isinstance(self.kind, PendingOpKind):
            self.kind = self.kind.value
        else:
            # files written by older builds stored "Create", "Move", ...
            self.kind = PendingOpKind(str(self.kind).lower()).value

    @property
    def op_kind(self) -> PendingOpKind:
        return PendingOpKind(self.kind)

    @property
    def target_role(self) -> Optional[TaskStatus]:
        return TaskStatus(self.role) if self.role else None

    @classmethod
    def create(cls, project: str, name: str,
               due: Optional[str] = None) -> "PendingOperation":
        return cls(PendingOpKind.CREATE, project, name=name, due=due)

    @classmethod
    def move(cls, project: str, card_id: str, list_id: Optional[str] = None,
             role: Optional[TaskStatus] = None) -> "PendingOperation":
        return cls(PendingOpKind.MOVE, project, card_id=card_id,
                   list_id=list_id, role=role.value if role else None)

    @classmethod
    def update(cls, project: str, card_id: str, name: Optional[str] = None,
               due: Optional[str] = None) -> "PendingOperation":
        return cls(PendingOpKind.UPDATE, project, card_id=card_id,
                   name=name, due=due)

    @classmethod
    def delete(cls, project: str, card_id: str) -> "PendingOperation":
        return cls(PendingOpKind.DELETE, project, card_id=card_id)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PendingOperation":
        return cls(**{
            k: v for k, v in data.items()
            if k in cls.__dataclass_fields__
        })

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
