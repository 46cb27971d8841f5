"""Tests for delta application and the full-sync pull/push steps."""

import copy
from datetime import datetime

from planky_sync.models import Delta, Task
from planky_sync.reconcile import (
    SyncReport, apply_delta, fetch_snapshot, pull_project, push_project,
)
from tests.conftest import INBOX


def delta(**overrides):
    fields = dict(project='Inbox', card_id='c1', name='Write report v2',
                  list_id='doing-list', done=False, due='2025-06-20',
                  created='2025-01-05')
    fields.update(overrides)
    return Delta(**fields)


class TestApplyDelta:

    def test_dirty_task_is_never_overwritten(self):
        task = Task('Write report', 'Inbox', due_date='2025-07-01',
                    card_id='c1', list_id='todo-list', dirty=True)
        tasks = [task]

        assert apply_delta(tasks, delta(done=True, list_id='done-list')) is None

        assert task.description == 'Write report'
        assert task.due_date == '2025-07-01'
        assert task.done is False
        assert task.list_id == 'todo-list'
        assert len(tasks) == 1

    def test_clean_task_takes_remote_state(self):
        task = Task('Write report', 'Inbox', created_date='2024-12-31',
                    card_id='c1', list_id='todo-list')
        apply_delta([task], delta())
        assert task.description == 'Write report v2'
        assert task.due_date == '2025-06-20'
        assert task.created_date == '2025-01-05'
        assert task.list_id == 'doing-list'
        assert task.done is False

    def test_missing_created_keeps_local_creation_date(self):
        task = Task('x', 'Inbox', created_date='2024-12-31', card_id='c1')
        apply_delta([task], delta(created=None))
        assert task.created_date == '2024-12-31'

    def test_unknown_card_is_inserted(self):
        tasks = []
        apply_delta(tasks, delta(created=None, done=True, list_id='done-list'))
        assert len(tasks) == 1
        task = tasks[0]
        assert task.card_id == 'c1'
        assert task.project == 'Inbox'
        assert task.done is True
        assert task.dirty is False
        assert task.created_date == datetime.now().strftime('%Y-%m-%d')

    def test_identity_includes_project(self):
        other = Task('Same id, other board', 'Work', card_id='c1')
        tasks = [other]
        apply_delta(tasks, delta())
        assert len(tasks) == 2
        assert other.description == 'Same id, other board'

    def test_applying_twice_equals_applying_once(self):
        once = [Task('Write report', 'Inbox', card_id='c1')]
        twice = copy.deepcopy(once)
        d = delta()
        apply_delta(once, d)
        apply_delta(twice, d)
        apply_delta(twice, d)
        assert once == twice

        inserted_once, inserted_twice = [], []
        apply_delta(inserted_once, delta(card_id='c9'))
        apply_delta(inserted_twice, delta(card_id='c9'))
        apply_delta(inserted_twice, delta(card_id='c9'))
        assert inserted_once == inserted_twice

    def test_unparsable_due_clears_due(self):
        task = Task('x', 'Inbox', due_date='2025-01-01', card_id='c1')
        apply_delta([task], delta(due='whenever'))
        assert task.due_date is None


class TestFullSyncSteps:

    def test_snapshot_tags_lists(self, client):
        client.add_card('todo-list', 'c1', 'a')
        client.add_card('doing-list', 'c2', 'b')
        client.add_card('done-list', 'c3', 'c')
        snap = fetch_snapshot(client, INBOX)
        assert {k: (v.list_id, v.done) for k, v in snap.items()} == {
            'c1': ('todo-list', False),
            'c2': ('doing-list', False),
            'c3': ('done-list', True),
        }

    def test_snapshot_records_list_errors(self, client):
        client.fail.add('list_cards')
        report = SyncReport()
        assert fetch_snapshot(client, INBOX, report) == {}
        assert len(report.errors) == 3

    def test_pull_ignores_dirty_flag(self, client):
        client.add_card('done-list', 'c1', 'Remote name')
        task = Task('Local name', 'Inbox', card_id='c1', list_id='todo-list',
                    dirty=True)
        report = SyncReport()
        pull_project([task], 'Inbox', INBOX, fetch_snapshot(client, INBOX), report)
        assert task.description == 'Remote name'
        assert task.done is True
        assert task.board_id == 'b1'
        assert task.dirty is False
        assert report.pulled == 1

    def test_push_creates_in_list_matching_local_state(self, client):
        tasks = [
            Task('plain', 'Inbox'),
            Task('started', 'Inbox', list_id='doing-list'),
            Task('finished', 'Inbox', done=True),
            Task('elsewhere', 'Work'),
        ]
        report = SyncReport()
        push_project(client, tasks, 'Inbox', INBOX, {}, report)
        assert [t.list_id for t in tasks[:3]] == ['todo-list', 'doing-list', 'done-list']
        assert all(t.card_id for t in tasks[:3])
        assert tasks[3].card_id is None
        assert report.created == 3

    def test_push_moves_and_updates_differences(self, client):
        client.add_card('todo-list', 'c1', 'Old name', due='2025-06-20')
        snap = fetch_snapshot(client, INBOX)
        task = Task('New name', 'Inbox', due_date='2025-06-20', done=True,
                    card_id='c1', list_id='todo-list')
        report = SyncReport()
        push_project(client, [task], 'Inbox', INBOX, snap, report)
        assert client.calls_to('move_card') == [('move_card', 'c1', 'done-list')]
        assert client.calls_to('update_card') == [('update_card', 'c1', 'New name', None)]
        assert task.list_id == 'done-list'
        assert (report.moved, report.updated) == (1, 1)

    def test_push_failures_are_reported_not_raised(self, client):
        client.fail.update({'create_card', 'move_card'})
        client.add_card('todo-list', 'c1', 'x')
        snap = fetch_snapshot(client, INBOX)
        tasks = [Task('new', 'Inbox'), Task('x', 'Inbox', done=True, card_id='c1')]
        report = SyncReport()
        push_project(client, tasks, 'Inbox', INBOX, snap, report)
        assert tasks[0].card_id is None
        assert len(report.errors) == 2
        assert 'error' in report.summary()

    def test_card_missing_from_complete_snapshot_is_orphaned(self, client):
        task = Task('Gone remotely', 'Inbox', card_id='c5', list_id='todo-list')
        report = SyncReport()
        push_project(client, [task], 'Inbox', INBOX, fetch_snapshot(client, INBOX),
                     report)
        assert client.calls_to('move_card') == []
        assert report.orphaned == 1
        assert report.errors == []
        assert 'missing on Planka' in report.summary()

    def test_card_missing_from_partial_snapshot_is_skipped(self, client):
        task = Task('Unseen', 'Inbox', card_id='c5', list_id='doing-list')
        report = SyncReport()
        push_project(client, [task], 'Inbox', INBOX, {}, report, complete=False)
        assert client.calls_to('move_card') == []
        assert report.orphaned == 0

    def test_push_clears_remote_due(self, client):
        client.add_card('todo-list', 'c1', 'Buy milk', due='2025-06-20')
        task = Task('Buy milk', 'Inbox', card_id='c1', list_id='todo-list')
        report = SyncReport()
        push_project(client, [task], 'Inbox', INBOX, fetch_snapshot(client, INBOX),
                     report)
        assert client.calls_to('update_card') == [
            ('update_card', 'c1', None, None, 'clear_due')]
        assert client.find('c1')[1].due is None

        report = SyncReport()
        push_project(client, [task], 'Inbox', INBOX, fetch_snapshot(client, INBOX),
                     report)
        assert report.updated == 0
