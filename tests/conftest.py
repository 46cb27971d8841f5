"""Shared fixtures: an in-memory Planka board and temp-dir backed stores."""

import dataclasses
from typing import Dict, List, Optional

import pytest

from planky_sync.board_lists import BoardListCache
from planky_sync.engine import SyncEngine
from planky_sync.models import Board, BoardLists, RemoteCard
from planky_sync.pending_queue import PendingQueue
from planky_sync.planka_api import PlankaError
from planky_sync.task_store import TaskStore

INBOX = BoardLists(board_id='b1', todo_list_id='todo-list',
                   doing_list_id='doing-list', done_list_id='done-list')
WORK = BoardLists(board_id='b2', todo_list_id='w-todo',
                  doing_list_id='w-doing', done_list_id='w-done')


class FakeBoardClient:
    """Planka stand-in holding boards and cards in memory.

    Put a method name in ``fail`` to make every call to it raise
    ``PlankaError``. Every call is recorded in ``calls``.
    """

    def __init__(self, boards: Optional[Dict[str, BoardLists]] = None):
        self.boards: Dict[str, BoardLists] = dict(boards or {'Inbox': INBOX})
        self.cards: Dict[str, List[RemoteCard]] = {}
        for lists in self.boards.values():
            for list_id in (lists.todo_list_id, lists.doing_list_id,
                            lists.done_list_id):
                self.cards.setdefault(list_id, [])
        self.fail = set()
        self.calls = []
        self._next_id = 1

    def _record(self, name, *args):
        self.calls.append((name,) + args)
        if name in self.fail:
            raise PlankaError(f"{name} unavailable")

    def calls_to(self, name):
        return [c for c in self.calls if c[0] == name]

    def add_card(self, list_id, card_id, name, due=None, created=None):
        card = RemoteCard(id=card_id, name=name, due=due, created=created)
        self.cards[list_id].append(card)
        return card

    def find(self, card_id):
        for list_id, cards in self.cards.items():
            for card in cards:
                if card.id == card_id:
                    return list_id, card
        return None, None

    # -- client contract ------------------------------------------------------

    def list_boards(self):
        self._record('list_boards')
        return [Board(id=l.board_id, name=n) for n, l in self.boards.items()]

    def resolve_lists(self, board_name):
        self._record('resolve_lists', board_name)
        if board_name not in self.boards:
            raise PlankaError(f"Board '{board_name}' not found on Planka")
        return self.boards[board_name]

    def list_cards(self, list_id):
        self._record('list_cards', list_id)
        return list(self.cards.get(list_id, []))

    def create_card(self, list_id, name, due=None):
        self._record('create_card', list_id, name, due)
        card_id = f"c{self._next_id}"
        self._next_id += 1
        self.add_card(list_id, card_id, name, due=due)
        return card_id

    def move_card(self, card_id, list_id):
        self._record('move_card', card_id, list_id)
        old_list, card = self.find(card_id)
        if card is None:
            raise PlankaError(f"card {card_id} not found")
        self.cards[old_list].remove(card)
        self.cards[list_id].append(card)

    def update_card(self, card_id, name=None, due=None, clear_due=False):
        if clear_due:
            self._record('update_card', card_id, name, due, 'clear_due')
        else:
            self._record('update_card', card_id, name, due)
        list_id, card = self.find(card_id)
        if card is None:
            raise PlankaError(f"card {card_id} not found")
        changes = {}
        if name is not None:
            changes['name'] = name
        if due is not None:
            changes['due'] = due
        elif clear_due:
            changes['due'] = None
        cards = self.cards[list_id]
        cards[cards.index(card)] = dataclasses.replace(card, **changes)

    def delete_card(self, card_id):
        self._record('delete_card', card_id)
        list_id, card = self.find(card_id)
        if card is None:
            raise PlankaError(f"card {card_id} not found")
        self.cards[list_id].remove(card)


@pytest.fixture
def client():
    return FakeBoardClient()


@pytest.fixture
def tasks_path(tmp_path):
    return tmp_path / "todos.json"


@pytest.fixture
def pending_path(tmp_path):
    return tmp_path / "pending_ops.json"


@pytest.fixture
def pending(pending_path):
    return PendingQueue(str(pending_path))


@pytest.fixture
def board_lists():
    return BoardListCache()


@pytest.fixture
def make_engine(tasks_path, pending_path):
    """Build an engine on temp files; ``client=None`` means no session."""
    def _make(client=None):
        def connect():
            if client is None:
                raise PlankaError("Planka config not set. Run 'planky login'.")
            return client
        return SyncEngine(store=TaskStore(str(tasks_path)),
                          pending=PendingQueue(str(pending_path)),
                          connect_fn=connect)
    return _make
