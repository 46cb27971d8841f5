"""Background poller: fetches every board and reports cards as deltas.

The poller runs on its own daemon thread and only ever writes to its
outbound ``queue.Queue``. It never touches tasks or the pending queue;
the engine drains the channel on its own thread.
"""

import queue
import threading
from typing import Callable, Optional

from planky_sync.config import POLL_INTERVAL
from planky_sync.models import Delta


class BackgroundPoller:
    """Polls Planka every *interval* seconds and emits one ``Delta`` per card.

    *connect* is called at the start of every cycle and must return a fresh
    client, re-reading the session file so that a login done after start-up
    is picked up. Any error simply skips that board or list until the next
    cycle; there is no backoff.
    """

    def __init__(self, connect: Callable, interval: float = POLL_INTERVAL,
                 channel: Optional[queue.Queue] = None, debug: bool = False):
        self.connect = connect
        self.interval = interval
        self.channel = channel if channel is not None else queue.Queue()
        self.debug = debug
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def _dbg(self, msg: str):
        if self.debug:
            print(f"[POLL] {msg}")

    # -- lifecycle ------------------------------------------------------------

    def start(self) -> queue.Queue:
        """Start the worker thread once; returns the delta channel."""
        if self._thread is None:
            self._thread = threading.Thread(
                target=self._run, name='planky-poller', daemon=True)
            self._thread.start()
        return self.channel

    def stop(self, timeout: Optional[float] = None):
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def _run(self):
        while not self._stop.is_set():
            self.poll_once()
            # wakes early on stop()
            self._stop.wait(self.interval)

    # -- one cycle ------------------------------------------------------------

    def poll_once(self) -> int:
        """Fetch all boards once and emit their cards. Returns deltas emitted."""
        try:
            client = self.connect()
            boards = client.list_boards()
        except Exception as exc:
            self._dbg(f"no session this cycle: {exc}")
            return 0

        emitted = 0
        for board in boards:
            try:
                lists = client.resolve_lists(board.name)
            except Exception as exc:
                self._dbg(f"skipping board '{board.name}': {exc}")
                continue
            columns = [
                (lists.todo_list_id, False),
                (lists.doing_list_id, False),
                (lists.done_list_id, True),
            ]
            seen_lists = set()
            for list_id, done in columns:
                # a board without Doing reuses its To Do list id
                if list_id in seen_lists:
                    continue
                seen_lists.add(list_id)
                try:
                    cards = client.list_cards(list_id)
                except Exception as exc:
                    self._dbg(f"skipping list {list_id} of '{board.name}': {exc}")
                    continue
                for card in cards:
                    self.channel.put(Delta(
                        project=board.name, card_id=card.id, name=card.name,
                        list_id=list_id, done=done, due=card.due,
                        created=card.created,
                    ))
                    emitted += 1
        self._dbg(f"emitted {emitted} deltas from {len(boards)} boards")
        return emitted
