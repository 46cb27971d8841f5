"""Environment variables, path constants and the Planka session file.

All configuration is loaded once at import time from environment
variables (with optional ``.env`` file support via *python-dotenv*).
The session file (``planka.json``) is the only piece re-read at runtime:
the background poller reloads it every cycle so a login performed after
start-up takes effect without a restart.
"""

import json
import os
from dataclasses import asdict, dataclass
from typing import Optional

from dotenv import load_dotenv

load_dotenv()


def _default_home() -> str:
    base = os.getenv('XDG_CONFIG_HOME') or os.path.join(
        os.path.expanduser('~'), '.config')
    return os.path.join(base, 'Planky')


# -- Filesystem paths ---------------------------------------------------------
PLANKY_HOME = os.getenv('PLANKY_HOME', _default_home())
TASKS_FILE = os.path.join(PLANKY_HOME, 'todos.json')
PENDING_OPS_FILE = os.path.join(PLANKY_HOME, 'pending_ops.json')
SESSION_FILE = os.path.join(PLANKY_HOME, 'planka.json')

# -- Sync ---------------------------------------------------------------------
POLL_INTERVAL = int(os.getenv('PLANKY_POLL_INTERVAL', '15'))
REMIND_INTERVAL = int(os.getenv('PLANKY_REMIND_INTERVAL', '60'))
DEFAULT_PROJECT = os.getenv('PLANKY_DEFAULT_PROJECT', 'Inbox')

# -- Planka -------------------------------------------------------------------
PLANKA_SERVER_URL = os.getenv('PLANKA_SERVER_URL')
PLANKA_USERNAME = os.getenv('PLANKA_USERNAME')
PLANKA_PASSWORD = os.getenv('PLANKA_PASSWORD')


@dataclass
class PlankaConfig:
    server_url: str = ''
    email_or_username: str = ''
    password: str = ''
    token: Optional[str] = None


def load_session_config(path: Optional[str] = None) -> Optional[PlankaConfig]:
    """Read the Planka session file, falling back to ``PLANKA_*`` env vars.

    Returns ``None`` when neither source names a server.
    """
    path = path or SESSION_FILE
    if os.path.exists(path):
        try:
            with open(path, 'r') as f:
                data = json.load(f)
            return PlankaConfig(**{
                k: v for k, v in data.items()
                if k in PlankaConfig.__dataclass_fields__
            })
        except (OSError, ValueError, TypeError, AttributeError) as exc:
            print(f"[CONFIG] Warning: could not read {path}: {exc}")
    if PLANKA_SERVER_URL:
        return PlankaConfig(
            server_url=PLANKA_SERVER_URL,
            email_or_username=PLANKA_USERNAME or '',
            password=PLANKA_PASSWORD or '',
        )
    return None


def save_session_config(cfg: PlankaConfig, path: Optional[str] = None):
    path = path or SESSION_FILE
    os.makedirs(os.path.dirname(path) or '.', exist_ok=True)
    with open(path, 'w') as f:
        json.dump(asdict(cfg), f, indent=2)
