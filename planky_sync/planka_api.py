"""Planka REST API helper used by the sync engine and the background poller."""

import re
from typing import Any, Dict, List, Optional

import requests

from planky_sync.config import PlankaConfig, load_session_config, save_session_config
from planky_sync.dates import due_to_utc_iso
from planky_sync.models import Board, BoardLists, RemoteCard


class PlankaError(Exception):
    """A Planka call could not be made or did not succeed."""


class NotConfiguredError(PlankaError):
    """No Planka session is configured yet."""


def _norm(name: Optional[str]) -> str:
    return re.sub(r'\s+', '', (name or '').lower())


def _item_id(data: Dict[str, Any]) -> str:
    try:
        return data['item']['id']
    except (KeyError, TypeError) as exc:
        raise PlankaError(f"Malformed Planka response: missing {exc}") from exc


def login(server_url: str, email_or_username: str, password: str) -> str:
    """Exchange credentials for an access token."""
    url = f"{server_url.rstrip('/')}/api/access-tokens"
    payload = {'emailOrUsername': email_or_username, 'password': password,
               'withHttpOnlyToken': False}
    try:
        resp = requests.post(url, json=payload, timeout=30)
    except requests.RequestException as exc:
        raise PlankaError(f"Login request failed: {exc}") from exc
    if not resp.ok:
        raise PlankaError(f"Login failed: HTTP {resp.status_code} - {resp.text[:200]}")
    try:
        return resp.json()['item']
    except (ValueError, KeyError, TypeError) as exc:
        raise PlankaError(f"Login parse failed: {exc}") from exc


class PlankaAPI:
    """Lightweight wrapper around the Planka REST API."""

    def __init__(self, server_url: str, token: str, debug: bool = False):
        self.base = f"{server_url.rstrip('/')}/api"
        self.headers = {'Authorization': f'Bearer {token}'}
        self.debug = debug

    @classmethod
    def from_config(cls, cfg: PlankaConfig, save_path: Optional[str] = None,
                    debug: bool = False) -> "PlankaAPI":
        """Build a client, logging in first when the config has no token yet.

        A freshly obtained token is written back to the session file.
        """
        if not cfg.server_url.strip():
            raise NotConfiguredError("Planka server URL is empty")
        if not cfg.token:
            cfg.token = login(cfg.server_url, cfg.email_or_username,
                              cfg.password)
            try:
                save_session_config(cfg, save_path)
            except OSError as exc:
                print(f"[PLANKA] Warning: could not save session: {exc}")
        return cls(cfg.server_url, cfg.token, debug=debug)

    def _dbg(self, msg: str):
        if self.debug:
            print(f"[PLANKA] {msg}")

    def _call(self, method: str, path: str,
              json: Optional[Dict] = None) -> Dict[str, Any]:
        url = f"{self.base}{path}"
        self._dbg(f"{method} {url} {json or ''}")
        try:
            resp = requests.request(method, url, headers=self.headers,
                                    json=json, timeout=30)
            resp.raise_for_status()
            self._dbg(f"-> {resp.status_code}")
            return resp.json() if resp.content else {}
        except requests.RequestException as exc:
            raise PlankaError(f"{method} {path} failed: {exc}") from exc
        except ValueError as exc:
            raise PlankaError(f"{method} {path} returned invalid JSON: {exc}") from exc

    # -- boards ---------------------------------------------------------------

    def list_boards(self) -> List[Board]:
        data = self._call('GET', '/projects')
        included = data.get('included') or {}
        try:
            project_names = {p['id']: p.get('name') for p in data.get('items', [])}
            return [
                Board(id=b['id'], name=b['name'], project_id=b.get('projectId'),
                      project_name=project_names.get(b.get('projectId')))
                for b in included.get('boards', [])
            ]
        except (KeyError, TypeError) as exc:
            raise PlankaError(f"Malformed board listing: missing {exc}") from exc

    def resolve_lists(self, board_name: str) -> BoardLists:
        """Find the To Do / Doing / Done lists of the board named *board_name*.

        Names match case- and whitespace-insensitively by substring. A board
        without a Doing list uses its To Do list for Doing.
        """
        board = next((b for b in self.list_boards() if b.name == board_name), None)
        if board is None:
            raise PlankaError(f"Board '{board_name}' not found on Planka")
        data = self._call('GET', f'/boards/{board.id}')
        lists = (data.get('included') or {}).get('lists', [])

        def find(key: str) -> Optional[str]:
            for lst in sorted(lists, key=lambda l: l.get('position') or 0):
                if key in _norm(lst.get('name')):
                    return lst['id']
            return None

        todo, doing, done = find('todo'), find('doing'), find('done')
        if todo is None or done is None:
            raise PlankaError(
                f"Board '{board_name}' needs lists named 'To Do' and 'Done'")
        return BoardLists(board_id=board.id, todo_list_id=todo,
                          doing_list_id=doing or todo, done_list_id=done)

    def create_board(self, project_id: str, name: str) -> str:
        data = self._call('POST', f'/projects/{project_id}/boards',
                          json={'name': name, 'position': 65535})
        return _item_id(data)

    def create_project(self, name: str) -> str:
        data = self._call('POST', '/projects',
                          json={'name': name, 'type': 'private'})
        return _item_id(data)

    # -- cards ----------------------------------------------------------------

    def list_cards(self, list_id: str) -> List[RemoteCard]:
        data = self._call('GET', f'/lists/{list_id}/cards')
        try:
            return [
                RemoteCard(id=c['id'], name=c.get('name', ''),
                           due=c.get('dueDate'), created=c.get('createdAt'))
                for c in data.get('items', [])
            ]
        except (KeyError, TypeError) as exc:
            raise PlankaError(f"Malformed card listing: missing {exc}") from exc

    def get_card(self, card_id: str) -> Dict:
        return self._call('GET', f'/cards/{card_id}').get('item', {})

    def create_card(self, list_id: str, name: str,
                    due: Optional[str] = None) -> str:
        body = {'type': 'project', 'name': name, 'position': 65535}
        if due:
            body['dueDate'] = self._wire_due(due)
        data = self._call('POST', f'/lists/{list_id}/cards', json=body)
        return _item_id(data)

    def move_card(self, card_id: str, list_id: str):
        self._call('PATCH', f'/cards/{card_id}',
                   json={'listId': list_id, 'position': 65535})

    def update_card(self, card_id: str, name: Optional[str] = None,
                    due: Optional[str] = None, clear_due: bool = False):
        """Patch the given fields; *clear_due* sends an explicit null due."""
        body = {}
        if name is not None:
            body['name'] = name
        if due is not None:
            body['dueDate'] = self._wire_due(due)
        elif clear_due:
            body['dueDate'] = None
        if body:
            self._call('PATCH', f'/cards/{card_id}', json=body)

    def delete_card(self, card_id: str):
        self._call('DELETE', f'/cards/{card_id}')

    # -- comments -------------------------------------------------------------

    def get_comments(self, card_id: str) -> List[Dict]:
        data = self._call('GET', f'/cards/{card_id}/comments')
        users = {u['id']: u.get('name') or u.get('username')
                 for u in (data.get('included') or {}).get('users', [])}
        return [
            {'id': c['id'], 'text': c.get('text', ''),
             'user_name': users.get(c.get('userId')),
             'created_at': c.get('createdAt')}
            for c in data.get('items', [])
        ]

    def add_comment(self, card_id: str, text: str) -> str:
        data = self._call('POST', f'/cards/{card_id}/comments',
                          json={'text': text})
        return _item_id(data)

    @staticmethod
    def _wire_due(due: str) -> str:
        try:
            return due_to_utc_iso(due)
        except ValueError as exc:
            raise PlankaError(str(exc)) from exc


def connect(session_path: Optional[str] = None, debug: bool = False) -> PlankaAPI:
    """Reload the session file and build a client from it.

    Called afresh on every use so that a login performed elsewhere is seen.
    """
    cfg = load_session_config(session_path)
    if cfg is None:
        raise NotConfiguredError("Planka config not set. Run 'planky login'.")
    return PlankaAPI.from_config(cfg, session_path, debug=debug)
