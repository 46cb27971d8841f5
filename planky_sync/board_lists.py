"""Per-project cache of the To Do / Doing / Done list ids."""

from typing import Dict, Optional

from planky_sync.models import BoardLists


class BoardListCache:
    """Maps a project (board name) to its resolved ``BoardLists``.

    Entries are resolved lazily through the client on first need and reused
    until ``refresh`` re-resolves them.
    """

    def __init__(self):
        self._by_project: Dict[str, BoardLists] = {}

    def peek(self, project: str) -> Optional[BoardLists]:
        return self._by_project.get(project)

    def get(self, project: str, client) -> BoardLists:
        """Cached lists for *project*, resolving them with *client* if needed.

        Propagates the client's error when resolution fails.
        """
        lists = self._by_project.get(project)
        if lists is None:
            lists = client.resolve_lists(project)
            self._by_project[project] = lists
        return lists

    def refresh(self, project: str, client) -> BoardLists:
        lists = client.resolve_lists(project)
        self._by_project[project] = lists
        return lists

    def put(self, project: str, lists: BoardLists):
        self._by_project[project] = lists

    def __contains__(self, project: str) -> bool:
        return project in self._by_project
