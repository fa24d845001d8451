"""
TASKBOARD - Console Task Board
==============================

Three-column task tracking (To Do, Doing, Done) persisted to a CSV file.

Usage:
    from taskboard import TaskManager, TaskStatus, decode_tasks

    manager = TaskManager.from_file("tasks.csv")
    task = manager.create("Buy milk")
    manager.move(task, TaskStatus.DOING)
    manager.move(task, TaskStatus.DONE)   # stamps completed_at
    manager.save("tasks.csv")

    # Inspect a file, including skipped lines
    result = decode_tasks("tasks.csv")
    for warning in result.warnings:
        print(warning)
"""

from .schema import (
    Task,
    TaskStatus,
    TaskValidationError,
    STATUS_LABELS,
)

from .persistence import (
    DecodeResult,
    LineWarning,
    decode_tasks,
    encode_tasks,
    export_json,
)

from .manager import TaskManager

__version__ = "1.0.0"
__all__ = [
    "TaskManager",
    "Task",
    "TaskStatus",
    "TaskValidationError",
    "STATUS_LABELS",
    "DecodeResult",
    "LineWarning",
    "decode_tasks",
    "encode_tasks",
    "export_json",
]
