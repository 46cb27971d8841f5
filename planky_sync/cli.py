"""CLI entry point: a thin command surface over the sync engine."""

import argparse
import getpass
import sys
import time

from planky_sync.config import (
    POLL_INTERVAL, SESSION_FILE, PlankaConfig, load_session_config,
    save_session_config,
)
from planky_sync.dates import parse_due_date
from planky_sync.engine import SyncEngine
from planky_sync.models import TaskStatus
from planky_sync.planka_api import PlankaAPI, PlankaError
from planky_sync.reminder import DueReminder, due_today, reminder_text

_MARKS = {TaskStatus.TODO: '[ ]', TaskStatus.DOING: '[~]', TaskStatus.DONE: '[x]'}


def _print_tasks(engine: SyncEngine, query=None):
    tasks = engine.visible_tasks(query)
    print(f"== {engine.current_project} ({len(tasks)} tasks, "
          f"{len(engine.pending)} pending sync) ==")
    for i, task in enumerate(tasks, 1):
        due = f"  (due {task.due_date})" if task.due_date else ''
        flag = ' *' if task.dirty or task.card_id is None else ''
        print(f"{i:3d}. {_MARKS[engine.status_of(task)]} {task.description}{due}{flag}")


def _pick(engine: SyncEngine, index: int):
    tasks = engine.visible_tasks()
    if not 1 <= index <= len(tasks):
        print(f"ERROR: no task #{index} in '{engine.current_project}'")
        sys.exit(1)
    return tasks[index - 1]


def _parse_due(text):
    if not text:
        return None
    try:
        return parse_due_date(text)
    except ValueError as exc:
        print(f"ERROR: {exc}")
        sys.exit(1)


def cmd_login(args):
    cfg = load_session_config() or PlankaConfig()
    cfg.server_url = args.url or cfg.server_url or input('Planka URL: ').strip()
    cfg.email_or_username = (args.username or cfg.email_or_username
                             or input('Email or username: ').strip())
    cfg.password = getpass.getpass('Password: ')
    cfg.token = None
    try:
        PlankaAPI.from_config(cfg, SESSION_FILE, debug=args.debug)
    except PlankaError as exc:
        print(f"Planka login failed: {exc}")
        sys.exit(1)
    save_session_config(cfg, SESSION_FILE)
    print("Planka login successful")
    engine = SyncEngine(debug=args.debug)
    engine.sync_current_project()
    engine.save()
    print(engine.message)


def _run(args, action):
    """Flush pending work, run *action* on the engine, then save."""
    engine = SyncEngine(debug=args.debug)
    if args.project:
        engine.set_current_project(args.project)
    engine.tick()
    try:
        action(engine)
    except ValueError as exc:
        print(f"ERROR: {exc}")
        sys.exit(1)
    engine.save()
    if engine.message:
        print(engine.message)


def cmd_list(args):
    _run(args, lambda e: _print_tasks(e, args.search))


def cmd_add(args):
    due = _parse_due(args.due)
    _run(args, lambda e: e.add_task(' '.join(args.description), due))


def cmd_edit(args):
    def action(engine):
        task = _pick(engine, args.index)
        description = args.description or task.description
        due = _parse_due(args.due) if args.due is not None else task.due_date
        engine.edit_task(task, description, due)
    _run(args, action)


def cmd_done(args):
    _run(args, lambda e: e.toggle_done(_pick(e, args.index)))


def cmd_doing(args):
    _run(args, lambda e: e.toggle_doing(_pick(e, args.index)))


def cmd_rm(args):
    _run(args, lambda e: e.delete_task(_pick(e, args.index)))


def cmd_sync(args):
    _run(args, lambda e: e.sync_all_projects())


def cmd_pending(args):
    def action(engine):
        for op in engine.pending:
            target = op.name or op.card_id
            print(f"{time.strftime('%Y-%m-%d %H:%M:%S', time.localtime(op.ts))} "
                  f"{op.kind:<6} {op.project}: {target}")
        print(f"{len(engine.pending)} operation(s) pending")
    _run(args, action)


def cmd_remind(args):
    def action(engine):
        due = due_today(engine.tasks)
        for task in due:
            print(f"{task.project}: {reminder_text(task)}")
        if not due:
            print("Nothing due today")
    _run(args, action)


def cmd_watch(args):
    engine = SyncEngine(debug=args.debug)
    if args.project:
        engine.set_current_project(args.project)
    engine.start_background_sync(args.interval)
    reminder = DueReminder(str(engine.store.path), debug=args.debug)
    reminder.start()
    print("Watching Planka. Press Ctrl+C to stop.")
    try:
        while True:
            engine.tick()
            _print_tasks(engine)
            time.sleep(args.interval)
    except KeyboardInterrupt:
        print("\nStopping...")
    finally:
        reminder.stop(timeout=5)
        engine.stop_background_sync(timeout=5)
        engine.save()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='planky', description='Offline-first to-do list synced with Planka')
    parser.add_argument('--debug', action='store_true',
                        help='Enable debug output')
    parser.add_argument('-p', '--project',
                        help='Project (board) to work on')
    sub = parser.add_subparsers(dest='command', required=True)

    p = sub.add_parser('login', help='Log in to a Planka server')
    p.add_argument('--url', help='Planka server URL')
    p.add_argument('--username', help='Email or username')
    p.set_defaults(func=cmd_login)

    p = sub.add_parser('list', help='Show tasks of the current project')
    p.add_argument('-s', '--search', help='Filter by description or due date')
    p.set_defaults(func=cmd_list)

    p = sub.add_parser('add', help='Add a task')
    p.add_argument('description', nargs='+')
    p.add_argument('--due', help="e.g. 'tomorrow', 'next fri 15:00', '2025-06-01'")
    p.set_defaults(func=cmd_add)

    p = sub.add_parser('edit', help='Edit a task')
    p.add_argument('index', type=int)
    p.add_argument('-d', '--description')
    p.add_argument('--due')
    p.set_defaults(func=cmd_edit)

    for name, func, text in (('done', cmd_done, 'Toggle a task done'),
                             ('doing', cmd_doing, 'Toggle a task in progress'),
                             ('rm', cmd_rm, 'Delete a task')):
        p = sub.add_parser(name, help=text)
        p.add_argument('index', type=int)
        p.set_defaults(func=func)

    p = sub.add_parser('sync', help='Full two-way sync of every board')
    p.set_defaults(func=cmd_sync)

    p = sub.add_parser('pending', help='Show queued operations')
    p.set_defaults(func=cmd_pending)

    p = sub.add_parser('remind', help='Show tasks due today in every project')
    p.set_defaults(func=cmd_remind)

    p = sub.add_parser('watch', help='Poll Planka and keep syncing')
    p.add_argument('--interval', type=int, default=POLL_INTERVAL,
                   help=f'Seconds between polls (default: {POLL_INTERVAL})')
    p.set_defaults(func=cmd_watch)
    return parser


def main(argv=None):
    args = build_parser().parse_args(argv)
    args.func(args)
