"""Merging remote state into local tasks.

Two paths exist:

* ``apply_delta`` handles one card reported by the background poller. A
  task with unpublished local edits (``dirty``) is never overwritten.
* ``pull_project`` / ``push_project`` make up the explicit full sync. The
  pull overwrites linked tasks unconditionally, the push creates, moves
  and updates cards for whatever still differs. Push failures are only
  reported; the pending queue is not involved because anything left
  unsynced is still visible as a difference on the next full sync.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional

from planky_sync.dates import format_remote_created, format_remote_due
from planky_sync.models import BoardLists, Delta, RemoteCard, Task
from planky_sync.models.task import today
from planky_sync.planka_api import PlankaError


def find_linked(tasks: List[Task], project: str, card_id: str) -> Optional[Task]:
    for task in tasks:
        if task.project == project and task.card_id == card_id:
            return task
    return None


def apply_delta(tasks: List[Task], delta: Delta) -> Optional[Task]:
    """Apply one poller delta. Returns the touched task, ``None`` if suppressed."""
    task = find_linked(tasks, delta.project, delta.card_id)
    if task is not None:
        if task.dirty:
            return None
        task.description = delta.name
        task.done = delta.done
        task.due_date = format_remote_due(delta.due)
        if delta.created:
            task.created_date = format_remote_created(delta.created)
        task.list_id = delta.list_id
        return task
    task = Task(
        description=delta.name,
        project=delta.project,
        due_date=format_remote_due(delta.due),
        created_date=format_remote_created(delta.created) if delta.created else today(),
        done=delta.done,
        card_id=delta.card_id,
        list_id=delta.list_id,
    )
    tasks.append(task)
    return task


# -- full sync ----------------------------------------------------------------

@dataclass
class RemoteEntry:
    card: RemoteCard
    done: bool
    list_id: str


@dataclass
class SyncReport:
    boards: int = 0
    pulled: int = 0
    inserted: int = 0
    created: int = 0
    moved: int = 0
    updated: int = 0
    orphaned: int = 0
    errors: List[str] = field(default_factory=list)

    def summary(self) -> str:
        text = (f"Synced {self.boards} board(s): {self.pulled} updated locally, "
                f"{self.inserted} new locally, {self.created} created, "
                f"{self.moved} moved, {self.updated} updated remotely")
        if self.orphaned:
            text += f"; {self.orphaned} card(s) missing on Planka"
        if self.errors:
            text += f"; {len(self.errors)} error(s), last: {self.errors[-1]}"
        return text


def fetch_snapshot(client, lists: BoardLists,
                   report: Optional[SyncReport] = None) -> Dict[str, RemoteEntry]:
    """All cards of the three canonical lists keyed by card id."""
    snapshot: Dict[str, RemoteEntry] = {}
    columns = [
        (lists.todo_list_id, False),
        (lists.doing_list_id, False),
        (lists.done_list_id, True),
    ]
    for list_id, done in columns:
        try:
            cards = client.list_cards(list_id)
        except PlankaError as exc:
            if report is not None:
                report.errors.append(str(exc))
            continue
        for card in cards:
            snapshot[card.id] = RemoteEntry(card, done, list_id)
    return snapshot


def pull_project(tasks: List[Task], project: str, lists: BoardLists,
                 snapshot: Dict[str, RemoteEntry], report: SyncReport):
    """Overwrite linked tasks from *snapshot* and insert remote-only cards."""
    local = {t.card_id: t for t in tasks
             if t.project == project and t.card_id is not None}
    for card_id, entry in snapshot.items():
        task = local.get(card_id)
        if task is None:
            tasks.append(Task(
                description=entry.card.name,
                project=project,
                due_date=format_remote_due(entry.card.due),
                created_date=format_remote_created(entry.card.created),
                done=entry.done,
                card_id=card_id,
                list_id=entry.list_id,
                board_id=lists.board_id,
            ))
            report.inserted += 1
            continue
        task.description = entry.card.name
        task.done = entry.done
        task.due_date = format_remote_due(entry.card.due)
        if entry.card.created:
            task.created_date = format_remote_created(entry.card.created)
        task.list_id = entry.list_id
        task.board_id = lists.board_id
        task.dirty = False
        report.pulled += 1


def push_project(client, tasks: List[Task], project: str, lists: BoardLists,
                 snapshot: Dict[str, RemoteEntry], report: SyncReport,
                 complete: bool = True):
    """Create unlinked tasks remotely and correct list/name/due differences.

    A linked task whose card is not in *snapshot* is left alone: it counts
    as orphaned when the snapshot is *complete*, otherwise one of the list
    fetches failed and the card may simply not have been seen.
    """
    for task in [t for t in tasks if t.project == project]:
        if task.card_id is None:
            target = task.desired_list(lists)
            try:
                task.card_id = client.create_card(target, task.description,
                                                  task.due_date)
            except PlankaError as exc:
                report.errors.append(f"Planka create card failed: {exc}")
                continue
            task.list_id = target
            task.board_id = lists.board_id
            task.dirty = False
            report.created += 1
            continue

        remote = snapshot.get(task.card_id)
        if remote is None:
            if complete:
                report.orphaned += 1
            continue
        desired = task.desired_list(lists)
        if remote.list_id != desired:
            try:
                client.move_card(task.card_id, desired)
                task.list_id = desired
                report.moved += 1
            except PlankaError as exc:
                report.errors.append(f"Planka move failed: {exc}")
        name_changed = remote.card.name != task.description
        due_changed = format_remote_due(remote.card.due) != task.due_date
        if name_changed or due_changed:
            try:
                client.update_card(
                    task.card_id,
                    task.description if name_changed else None,
                    task.due_date if due_changed else None,
                    clear_due=due_changed and task.due_date is None,
                )
                report.updated += 1
            except PlankaError as exc:
                report.errors.append(f"Planka update failed: {exc}")
