#!/usr/bin/env python3
"""
TASKBOARD - CLI Interface
=========================
Command-line tool for a three-column task board stored in a CSV file.

Usage:
    taskboard add Buy milk
    taskboard list
    taskboard list --status doing --json
    taskboard move todo 1 doing
    taskboard edit doing 1 Buy oat milk
    taskboard remove done 2 --yes
    taskboard export tasks.json

The tasks file is --file, else $TASKBOARD_FILE, else ./tasks.csv.
"""

import argparse
import json
import logging
import os
import sys

from .manager import TaskManager
from .persistence import decode_tasks, export_json
from .schema import TaskStatus, TaskValidationError

DEFAULT_TASKS_FILE = "tasks.csv"

STATUS_ALIASES = {
    "t": TaskStatus.TODO,
    "todo": TaskStatus.TODO,
    "to-do": TaskStatus.TODO,
    "ip": TaskStatus.DOING,
    "in-progress": TaskStatus.DOING,
    "doing": TaskStatus.DOING,
    "d": TaskStatus.DONE,
    "done": TaskStatus.DONE,
}


def parse_status(text: str) -> TaskStatus:
    """argparse type for status arguments (names or aliases, any case)"""
    alias = STATUS_ALIASES.get(text.strip().lower())
    if alias is not None:
        return alias
    try:
        return TaskStatus.from_name(text)
    except ValueError:
        choices = ", ".join(sorted(STATUS_ALIASES))
        raise argparse.ArgumentTypeError(f"invalid status {text!r} (choose from {choices})")


def build_parser(default_file: str) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="taskboard",
        description="TASKBOARD - To Do / Doing / Done task tracker",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  taskboard add Write report           Add a task to To Do
  taskboard list                       Show the whole board
  taskboard list --status done --json  Show Done as JSON
  taskboard move todo 1 doing          Move To Do #1 to Doing
  taskboard edit doing 1 New text      Change the description of Doing #1
  taskboard remove done 1 --yes        Remove Done #1 without asking
  taskboard export board.json          Write a JSON copy of the board
        """
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # ADD command
    add_parser = subparsers.add_parser("add", help="Add a task to To Do")
    add_parser.add_argument("description", nargs="+", help="Task description")
    add_parser.add_argument("--file", default=default_file, help="Tasks file")

    # LIST command
    list_parser = subparsers.add_parser("list", help="Show tasks")
    list_parser.add_argument("--status", type=parse_status, help="Only this status")
    list_parser.add_argument("--json", action="store_true", help="Output as JSON")
    list_parser.add_argument("--file", default=default_file, help="Tasks file")

    # MOVE command
    move_parser = subparsers.add_parser("move", help="Move a task to another status")
    move_parser.add_argument("status", type=parse_status, help="Current status")
    move_parser.add_argument("position", type=int, help="Task number within that status")
    move_parser.add_argument("new_status", type=parse_status, help="Destination status")
    move_parser.add_argument("--file", default=default_file, help="Tasks file")

    # EDIT command
    edit_parser = subparsers.add_parser("edit", help="Change a task description")
    edit_parser.add_argument("status", type=parse_status, help="Current status")
    edit_parser.add_argument("position", type=int, help="Task number within that status")
    edit_parser.add_argument("description", nargs="+", help="New description")
    edit_parser.add_argument("--file", default=default_file, help="Tasks file")

    # REMOVE command
    remove_parser = subparsers.add_parser("remove", help="Remove a task")
    remove_parser.add_argument("status", type=parse_status, help="Current status")
    remove_parser.add_argument("position", type=int, help="Task number within that status")
    remove_parser.add_argument("-y", "--yes", action="store_true", help="Don't ask for confirmation")
    remove_parser.add_argument("--file", default=default_file, help="Tasks file")

    # EXPORT command
    export_parser = subparsers.add_parser("export", help="Write the board as JSON")
    export_parser.add_argument("path", help="JSON output file")
    export_parser.add_argument("--file", default=default_file, help="Tasks file")

    return parser


def main(argv=None):
    default_file = os.environ.get("TASKBOARD_FILE") or DEFAULT_TASKS_FILE
    parser = build_parser(default_file)
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    # Load board
    tasks_file = args.file
    # Skipped lines and read errors are already logged by decode_tasks
    loaded = decode_tasks(tasks_file)
    if loaded.error and args.command not in ("list", "export"):
        # Saving a partial board would drop the unread tasks
        print(f"❌ Not changing {tasks_file}: it could not be read completely", file=sys.stderr)
        return 1

    manager = TaskManager.from_partitions(loaded.partitions)

    # Execute command
    if args.command == "add":
        try:
            task = manager.create(" ".join(args.description))
        except TaskValidationError as e:
            print(f"❌ {e}")
            return 1
        if not manager.save(tasks_file):
            print(f"❌ Could not save {tasks_file}")
            return 1
        print(f"✅ Added to {TaskStatus.TODO.label}: {task.description}")

    elif args.command == "list":
        if args.json:
            statuses = [args.status] if args.status is not None else list(TaskStatus)
            data = {
                status.name: [t.model_dump(mode="json") for t in manager.list_by_status(status)]
                for status in statuses
            }
            print(json.dumps(data, indent=2, ensure_ascii=False))
        else:
            print(manager.get_status_report(args.status))

    elif args.command == "move":
        task = manager.find_by_position(args.status, args.position)
        if task is None:
            print(f"❌ No task #{args.position} in {args.status.label}")
            return 1
        if task.status == args.new_status:
            print(f"Task \"{task.description}\" is already in {args.new_status.label}")
            return 0
        if not manager.move(task, args.new_status):
            print(f"❌ Could not move: {task.description}")
            return 1
        if not manager.save(tasks_file):
            print(f"❌ Could not save {tasks_file}")
            return 1
        print(f"➡️ Moved \"{task.description}\" from {args.status.label} to {args.new_status.label}")

    elif args.command == "edit":
        task = manager.find_by_position(args.status, args.position)
        if task is None:
            print(f"❌ No task #{args.position} in {args.status.label}")
            return 1
        try:
            renamed = manager.rename(task, " ".join(args.description))
        except TaskValidationError as e:
            print(f"❌ {e}")
            return 1
        if not renamed:
            print(f"❌ Could not edit task #{args.position}")
            return 1
        if not manager.save(tasks_file):
            print(f"❌ Could not save {tasks_file}")
            return 1
        print(f"✏️ Updated: {task.description}")

    elif args.command == "remove":
        task = manager.find_by_position(args.status, args.position)
        if task is None:
            print(f"❌ No task #{args.position} in {args.status.label}")
            return 1
        if not args.yes:
            answer = input(f"Remove \"{task.description}\" permanently? (y/N): ")
            if answer.strip().lower() not in ("y", "yes"):
                print("Removal cancelled")
                return 0
        if not manager.remove(task):
            print(f"❌ Could not remove: {task.description}")
            return 1
        if not manager.save(tasks_file):
            print(f"❌ Could not save {tasks_file}")
            return 1
        print(f"🗑️ Removed: {task.description}")

    elif args.command == "export":
        if not export_json(manager.list_all(), args.path):
            print(f"❌ Could not export to {args.path}")
            return 1
        print(f"✅ Exported {len(manager)} tasks to {args.path}")

    return 0


if __name__ == "__main__":
    sys.exit(main())
