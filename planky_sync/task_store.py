"""Durable task store: the whole task collection in one pretty-printed JSON file."""

import json
import os
from pathlib import Path
from typing import List, Optional

from planky_sync.config import TASKS_FILE
from planky_sync.models import Task


class TaskStore:
    """Loads and saves the task collection (plus the last current project)."""

    def __init__(self, path: Optional[str] = None):
        self.path = Path(path or TASKS_FILE)
        self.current_project: Optional[str] = None

    def load(self) -> List[Task]:
        """Read all tasks. A missing or unreadable file yields an empty list."""
        if not self.path.exists():
            return []
        try:
            with open(self.path, 'r') as f:
                data = json.load(f)
            project = data.get('current_project')
            self.current_project = project if isinstance(project, str) else None
            return [Task.from_dict(t) for t in data.get('todos', [])]
        except (OSError, ValueError, TypeError, AttributeError) as exc:
            print(f"[STORE] Warning: could not load {self.path}: {exc}")
            return []

    def save(self, tasks: List[Task], current_project: Optional[str] = None):
        """Overwrite the file with *tasks*.

        Writes a temporary sibling first and renames it into place, so a
        crash mid-write leaves the previous version intact. Raises
        ``OSError`` on failure.
        """
        if current_project is not None:
            self.current_project = current_project
        self.path.parent.mkdir(parents=True, exist_ok=True)
        data = {
            'current_project': self.current_project,
            'todos': [t.to_dict() for t in tasks],
        }
        temp_file = self.path.with_suffix('.json.tmp')
        try:
            with open(temp_file, 'w') as f:
                json.dump(data, f, indent=2)
            os.replace(temp_file, self.path)
        except Exception:
            if temp_file.exists():
                temp_file.unlink()
            raise
