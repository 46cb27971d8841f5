"""Pending-operation queue: local mutations that still have to reach Planka.

The queue is a single insertion-ordered list persisted as JSON after every
change. ``flush`` replays it against a client; an operation leaves the
queue only once its remote call succeeds, and failed operations stay put
for the next flush, indefinitely.
"""

import json
import os
from pathlib import Path
from typing import List, Optional

from planky_sync.board_lists import BoardListCache
from planky_sync.config import PENDING_OPS_FILE
from planky_sync.models import PendingOperation, PendingOpKind, Task, TaskStatus
from planky_sync.planka_api import PlankaError


class PendingQueue:

    def __init__(self, path: Optional[str] = None, debug: bool = False):
        self.path = Path(path or PENDING_OPS_FILE)
        self.debug = debug
        self.ops: List[PendingOperation] = self._load()

    def _dbg(self, msg: str):
        if self.debug:
            print(f"[QUEUE] {msg}")

    # -- persistence ----------------------------------------------------------

    def _load(self) -> List[PendingOperation]:
        if not self.path.exists():
            return []
        try:
            with open(self.path, 'r') as f:
                return [PendingOperation.from_dict(d) for d in json.load(f)]
        except (OSError, ValueError, TypeError, AttributeError) as exc:
            print(f"[QUEUE] Warning: could not load {self.path}: {exc}")
            return []

    def save(self):
        """Persist the whole queue. Errors are reported, never raised."""
        temp_file = self.path.with_suffix('.json.tmp')
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(temp_file, 'w') as f:
                json.dump([op.to_dict() for op in self.ops], f)
            os.replace(temp_file, self.path)
        except OSError as exc:
            print(f"[QUEUE] Warning: could not save {self.path}: {exc}")

    # -- queue ----------------------------------------------------------------

    def __len__(self) -> int:
        return len(self.ops)

    def __iter__(self):
        return iter(list(self.ops))

    def enqueue(self, op: PendingOperation):
        self.ops.append(op)
        self._dbg(f"queued {op.kind} for '{op.name or op.card_id}' ({len(self.ops)} pending)")
        self.save()

    def _remove(self, op: PendingOperation) -> bool:
        for i, queued in enumerate(self.ops):
            if queued.op_id == op.op_id:
                del self.ops[i]
                return True
        return False

    def flush(self, client, tasks: List[Task],
              board_lists: BoardListCache) -> int:
        """Replay every queued operation in insertion order.

        Returns the number of operations that succeeded and were removed.
        With no client (no Planka session) nothing is attempted.
        """
        if client is None or not self.ops:
            return 0
        removed = 0
        for op in list(self.ops):
            try:
                self._apply(op, client, tasks, board_lists)
            except PlankaError as exc:
                self._dbg(f"{op.kind} for '{op.name or op.card_id}' failed, kept: {exc}")
                continue
            if self._remove(op):
                removed += 1
        if removed:
            self.save()
        return removed

    def discard(self, op: PendingOperation) -> bool:
        """Drop *op* without replaying it."""
        if not self._remove(op):
            return False
        self._dbg(f"discarded {op.kind} for '{op.name or op.card_id}'")
        self.save()
        return True

    def queued_create(self, project: str, name: str) -> Optional[PendingOperation]:
        """The queued Create a flush would match to the unlinked task *name*."""
        for op in self.ops:
            if op.op_kind is PendingOpKind.CREATE and op.project == project \
                    and op.name == name:
                return op
        return None

    # -- per-kind replay ------------------------------------------------------

    @staticmethod
    def _role(op: PendingOperation) -> Optional[TaskStatus]:
        try:
            return op.target_role
        except ValueError as exc:
            raise PlankaError(f"unknown column role {op.role!r}") from exc

    def _apply(self, op: PendingOperation, client, tasks: List[Task],
               board_lists: BoardListCache):
        kind = op.op_kind
        if kind is PendingOpKind.CREATE:
            self._replay_create(op, client, tasks, board_lists)
        elif kind is PendingOpKind.MOVE:
            list_id = op.list_id
            if list_id is None and op.role and op.card_id:
                list_id = board_lists.get(op.project, client).list_for(
                    self._role(op))
            if not (op.card_id and list_id):
                raise PlankaError("move operation is missing card or list id")
            client.move_card(op.card_id, list_id)
            for task in tasks:
                if task.project == op.project and task.card_id == op.card_id:
                    task.list_id = list_id
                    task.dirty = False
                    break
        elif kind is PendingOpKind.UPDATE:
            if not op.card_id:
                raise PlankaError("update operation is missing card id")
            client.update_card(op.card_id, op.name, op.due or None,
                               clear_due=op.due == '')
        elif kind is PendingOpKind.DELETE:
            if not op.card_id:
                raise PlankaError("delete operation is missing card id")
            client.delete_card(op.card_id)

    def _replay_create(self, op: PendingOperation, client, tasks: List[Task],
                       board_lists: BoardListCache):
        if not op.name:
            raise PlankaError("create operation is missing a name")
        role = self._role(op)
        lists = board_lists.get(op.project, client)
        card_id = client.create_card(lists.todo_list_id, op.name, op.due)
        task = next((t for t in tasks
                     if t.project == op.project and t.card_id is None
                     and t.description == op.name), None)
        if task is None:
            return
        # read the wanted column before the new identity overwrites it
        wants_doing = not task.done and (
            task.list_id == lists.doing_list_id
            or role is TaskStatus.DOING)
        wants_done = task.done
        task.card_id = card_id
        task.list_id = lists.todo_list_id
        task.board_id = lists.board_id
        task.dirty = False
        target = None
        if wants_doing:
            target = lists.doing_list_id
        elif wants_done:
            target = lists.done_list_id
        if target is None or target == lists.todo_list_id:
            return
        try:
            client.move_card(card_id, target)
            task.list_id = target
        except PlankaError as exc:
            print(f"[QUEUE] Warning: created '{op.name}' but could not move it: {exc}")
            task.dirty = True
            self.ops.append(PendingOperation.move(op.project, card_id, target))
