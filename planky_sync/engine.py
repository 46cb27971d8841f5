"""Sync engine: owns the task list and drives every kind of reconciliation.

Everything here runs on one thread. User actions change tasks right away
and call Planka inline when a session is available; when the call fails,
or cannot be attempted at all, the task is marked dirty and the mutation
goes to the pending queue. ``tick`` drains poller deltas and then flushes
that queue. ``sync_all_projects`` is the explicit full two-way sync.
"""

import queue
from functools import partial
from typing import Callable, List, Optional

from planky_sync.board_lists import BoardListCache
from planky_sync.config import DEFAULT_PROJECT, SESSION_FILE
from planky_sync.models import (
    BoardLists, PendingOperation, PendingOpKind, Task, TaskStatus,
)
from planky_sync.models.task import today
from planky_sync.pending_queue import PendingQueue
from planky_sync.planka_api import PlankaError, connect
from planky_sync.poller import BackgroundPoller
from planky_sync.reconcile import (
    SyncReport, apply_delta, fetch_snapshot, pull_project, push_project,
)
from planky_sync.task_store import TaskStore

_STATUS_ORDER = {TaskStatus.DOING: 0, TaskStatus.TODO: 1, TaskStatus.DONE: 2}


class SyncEngine:

    def __init__(self, store: Optional[TaskStore] = None,
                 pending: Optional[PendingQueue] = None,
                 connect_fn: Optional[Callable] = None,
                 debug: bool = False):
        self.debug = debug
        self.store = store or TaskStore()
        self.pending = pending or PendingQueue(debug=debug)
        self.connect_fn = connect_fn or partial(connect, SESSION_FILE, debug=debug)
        self.tasks: List[Task] = self.store.load()
        self.board_lists = BoardListCache()
        self.projects: List[str] = []
        self.current_project = self.store.current_project or DEFAULT_PROJECT
        self.message: Optional[str] = None
        self.inbound: Optional[queue.Queue] = None
        self.poller: Optional[BackgroundPoller] = None
        self.refresh_projects()

    def _dbg(self, msg: str):
        if self.debug:
            print(f"[SYNC] {msg}")

    # -- session / persistence ------------------------------------------------

    def ensure_client(self):
        """A fresh client built from the session file; raises ``PlankaError``."""
        return self.connect_fn()

    def _client_or_none(self):
        try:
            return self.ensure_client()
        except PlankaError as exc:
            self.message = str(exc)
            return None

    def _lists_or_none(self, client, project: str) -> Optional[BoardLists]:
        try:
            return self.board_lists.get(project, client)
        except PlankaError as exc:
            self.message = str(exc)
            return None

    def save(self) -> bool:
        """Write tasks to disk. Failures are reported; memory is left as is."""
        try:
            self.store.save(self.tasks, self.current_project)
            return True
        except OSError as exc:
            self.message = f"Failed to save todos: {exc}"
            print(f"[SYNC] {self.message}")
            return False

    # -- background channel ---------------------------------------------------

    def start_background_sync(self, interval: Optional[float] = None) -> BackgroundPoller:
        if self.poller is None:
            kwargs = {'debug': self.debug}
            if interval is not None:
                kwargs['interval'] = interval
            self.poller = BackgroundPoller(self.connect_fn, **kwargs)
            self.inbound = self.poller.start()
        return self.poller

    def stop_background_sync(self, timeout: Optional[float] = None):
        if self.poller is not None:
            self.poller.stop(timeout)

    def drain_inbound(self) -> int:
        """Apply every delta already waiting in the channel, without blocking."""
        if self.inbound is None:
            return 0
        applied = 0
        while True:
            try:
                delta = self.inbound.get_nowait()
            except queue.Empty:
                break
            apply_delta(self.tasks, delta)
            applied += 1
            if delta.project not in self.projects:
                self.projects.append(delta.project)
        return applied

    def process_pending_ops(self) -> int:
        if not len(self.pending):
            return 0
        try:
            client = self.ensure_client()
        except PlankaError as exc:
            self._dbg(f"pending ops kept, no client: {exc}")
            return 0
        removed = self.pending.flush(client, self.tasks, self.board_lists)
        if removed:
            self._dbg(f"flushed {removed} pending op(s), {len(self.pending)} left")
        return removed

    def tick(self):
        """One main-loop step: drain deltas, then flush the pending queue.

        The flush makes blocking network calls on the calling thread.
        """
        self.drain_inbound()
        self.process_pending_ops()

    # -- projects -------------------------------------------------------------

    def refresh_projects(self):
        names = sorted({t.project for t in self.tasks if t.project})
        self.projects = names or [DEFAULT_PROJECT]
        if self.current_project not in self.projects:
            self.current_project = self.projects[0]

    def _resolve_current_lists(self):
        if self.current_project in self.board_lists:
            return
        try:
            self.board_lists.get(self.current_project, self.ensure_client())
        except PlankaError as exc:
            self._dbg(f"lists for '{self.current_project}' unresolved: {exc}")

    def set_current_project(self, name: str):
        name = name.strip()
        if not name:
            return
        if name not in self.projects:
            self.projects.append(name)
        self.current_project = name
        self._resolve_current_lists()

    def _step_project(self, step: int):
        if not self.projects:
            self.projects = [DEFAULT_PROJECT]
        if self.current_project in self.projects:
            pos = self.projects.index(self.current_project)
            self.current_project = self.projects[(pos + step) % len(self.projects)]
        else:
            self.current_project = self.projects[0]
        self._resolve_current_lists()

    def next_project(self):
        self._step_project(1)

    def prev_project(self):
        self._step_project(-1)

    # -- views ----------------------------------------------------------------

    def status_of(self, task: Task) -> TaskStatus:
        return task.status(self.board_lists.peek(task.project))

    def visible_tasks(self, query: Optional[str] = None) -> List[Task]:
        """Current project's tasks, Doing first, then To Do, then Done."""
        q = query.lower() if query else None
        shown = []
        for task in self.tasks:
            if task.project != self.current_project:
                continue
            if q and q not in task.description.lower() \
                    and q not in (task.due_date or '').lower():
                continue
            shown.append(task)
        # stable: keeps insertion order inside each column
        return sorted(shown, key=lambda t: _STATUS_ORDER[self.status_of(t)])

    # -- user actions ---------------------------------------------------------

    def add_task(self, description: str, due: Optional[str] = None) -> Task:
        if not description.strip():
            raise ValueError("Description cannot be empty.")
        project = self.current_project
        task = Task(description=description, project=project, due_date=due,
                    created_date=today())
        self.message = None
        client = self._client_or_none()
        lists = self._lists_or_none(client, project) if client else None
        created = False
        if lists is not None:
            try:
                task.card_id = client.create_card(lists.todo_list_id,
                                                  description, due)
                task.list_id = lists.todo_list_id
                task.board_id = lists.board_id
                created = True
            except PlankaError as exc:
                self.message = f"Planka create card failed: {exc}"
        if not created:
            task.dirty = True
            self.pending.enqueue(PendingOperation.create(project, description, due))
        self.tasks.append(task)
        if project not in self.projects:
            self.projects.append(project)
        return task

    def edit_task(self, task: Task, description: str, due: Optional[str] = None):
        if not description.strip():
            raise ValueError("Description cannot be empty.")
        old_description = task.description
        clear_due = due is None and task.due_date is not None
        task.description = description
        task.due_date = due
        if task.card_id is None:
            # the queued create finds its task by name, so it must follow the edit
            op = self.pending.queued_create(task.project, old_description)
            if op is not None:
                op.name = description
                op.due = due
                self.pending.save()
            return
        client = self._client_or_none()
        if client is not None:
            try:
                client.update_card(task.card_id, description, due,
                                   clear_due=clear_due)
                return
            except PlankaError as exc:
                self.message = f"Planka update failed: {exc}"
        task.dirty = True
        # an empty due tells the flush to clear the remote one
        self.pending.enqueue(PendingOperation.update(
            task.project, task.card_id, description, '' if clear_due else due))

    def _queued_role(self, task: Task) -> Optional[str]:
        """Column role the queue will put *task* in, when it names one."""
        if task.card_id is None:
            op = self.pending.queued_create(task.project, task.description)
            return op.role if op is not None else None
        role = None
        for op in self.pending:
            if op.op_kind is PendingOpKind.MOVE and op.project == task.project \
                    and op.card_id == task.card_id and op.role:
                role = op.role
        return role

    def _move(self, task: Task, role: TaskStatus):
        """Move *task*'s card to the list of *role*, queueing the move on failure.

        Without resolvable lists the queued move names the role and the
        list id is looked up when the queue is flushed.
        """
        client = self._client_or_none()
        lists = self.board_lists.peek(task.project)
        if lists is None and client is not None:
            lists = self._lists_or_none(client, task.project)
        if client is not None and lists is not None:
            target = lists.list_for(role)
            try:
                client.move_card(task.card_id, target)
                task.list_id = target
                return
            except PlankaError as exc:
                self.message = f"Planka move to {role.value} failed: {exc}"
        task.dirty = True
        if lists is not None:
            op = PendingOperation.move(task.project, task.card_id,
                                       lists.list_for(role))
        else:
            op = PendingOperation.move(task.project, task.card_id, role=role)
        self.pending.enqueue(op)

    def toggle_done(self, task: Task):
        task.done = not task.done
        if task.card_id is None:
            task.dirty = True
            return
        self._move(task, TaskStatus.DONE if task.done else TaskStatus.TODO)

    def toggle_doing(self, task: Task):
        lists = self.board_lists.peek(task.project)
        if lists is None:
            client = self._client_or_none()
            lists = self._lists_or_none(client, task.project) if client else None
        if lists is not None:
            in_doing = task.list_id == lists.doing_list_id and not task.done
        else:
            in_doing = not task.done \
                and self._queued_role(task) == TaskStatus.DOING.value
        role = TaskStatus.TODO if in_doing else TaskStatus.DOING
        task.done = False
        if task.card_id is None:
            task.dirty = True
            if lists is not None:
                # the queued create reads list_id to decide where the card goes
                task.list_id = lists.list_for(role)
                return
            op = self.pending.queued_create(task.project, task.description)
            if op is not None:
                op.role = role.value if role is TaskStatus.DOING else None
                self.pending.save()
            return
        self._move(task, role)

    def delete_task(self, task: Task):
        self.tasks.remove(task)
        if task.card_id is None:
            # never reached Planka; a leftover create would bring it back
            op = self.pending.queued_create(task.project, task.description)
            if op is not None:
                self.pending.discard(op)
            return
        client = self._client_or_none()
        if client is not None:
            try:
                client.delete_card(task.card_id)
                return
            except PlankaError as exc:
                self.message = f"Planka delete failed: {exc}"
        self.pending.enqueue(PendingOperation.delete(task.project, task.card_id))

    # -- full sync ------------------------------------------------------------

    def _refresh_boards(self, client, report: SyncReport) -> List[str]:
        try:
            boards = client.list_boards()
        except PlankaError as exc:
            report.errors.append(str(exc))
            return []
        names = [b.name for b in boards]
        if names:
            self.projects = names
            if self.current_project not in names:
                self.current_project = names[0]
        report.boards = len(names)
        return names

    def _sync_project(self, client, project: str, report: SyncReport,
                      push: bool):
        try:
            lists = self.board_lists.get(project, client)
        except PlankaError as exc:
            report.errors.append(str(exc))
            return
        errors_before = len(report.errors)
        snapshot = fetch_snapshot(client, lists, report)
        complete = len(report.errors) == errors_before
        pull_project(self.tasks, project, lists, snapshot, report)
        if push:
            push_project(client, self.tasks, project, lists, snapshot, report,
                         complete=complete)

    def sync_all_projects(self) -> Optional[SyncReport]:
        """Pull every board into local tasks, then push local differences."""
        try:
            client = self.ensure_client()
        except PlankaError as exc:
            self.message = str(exc)
            return None
        report = SyncReport()
        for project in self._refresh_boards(client, report):
            self._sync_project(client, project, report, push=True)
        self.message = report.summary()
        print(f"[SYNC] {self.message}")
        return report

    def sync_current_project(self) -> Optional[SyncReport]:
        """Pull the current board only; nothing is pushed."""
        try:
            client = self.ensure_client()
        except PlankaError as exc:
            self.message = str(exc)
            return None
        report = SyncReport()
        self._refresh_boards(client, report)
        self._sync_project(client, self.current_project, report, push=False)
        self.message = report.summary()
        return report
