"""
TASKBOARD - Task Manager
========================
Owns the board: creates, moves, removes and lists tasks.

Tasks live in one ordered list and each carries its own status; the
per-status partitions are filtered views of that list, so a task can never
sit in a partition that disagrees with its status. Persistence is explicit
(see ``save`` / ``from_file``).
"""

import logging
from pathlib import Path
from types import MappingProxyType
from typing import Dict, Iterable, List, Mapping, Optional, Tuple, Union

from .schema import Task, TaskStatus, clean_description
from .persistence import decode_tasks, encode_tasks

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("taskboard")


class TaskManager:
    """
    Single-session task store.

    Not thread-safe: one interactive session, one store, one file.
    """

    def __init__(
        self,
        todo: Optional[Iterable[Task]] = None,
        doing: Optional[Iterable[Task]] = None,
        done: Optional[Iterable[Task]] = None,
    ):
        self._tasks: List[Task] = []
        self._add_initial(TaskStatus.TODO, todo or ())
        self._add_initial(TaskStatus.DOING, doing or ())
        self._add_initial(TaskStatus.DONE, done or ())

    @classmethod
    def from_partitions(cls, partitions: Mapping[TaskStatus, Iterable[Task]]) -> "TaskManager":
        """Build a store from a status -> tasks mapping (e.g. a decoded file)"""
        return cls(
            todo=partitions.get(TaskStatus.TODO, ()),
            doing=partitions.get(TaskStatus.DOING, ()),
            done=partitions.get(TaskStatus.DONE, ()),
        )

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> "TaskManager":
        """Load a store from a tasks file; problems are logged, never raised"""
        return cls.from_partitions(decode_tasks(path).partitions)

    def _add_initial(self, expected: TaskStatus, tasks: Iterable[Task]) -> None:
        for task in tasks:
            if task in self._tasks:
                logger.warning(f"⚠️ Duplicate task id {task.id} ignored: {task.description}")
                continue
            if task.status != expected:
                logger.warning(
                    f"⚠️ Task {task.id} supplied as {expected.name} "
                    f"but has status {task.status.name}; keeping {task.status.name}"
                )
            self._tasks.append(task)

    # ========================================
    # PERSISTENCE OPERATIONS
    # ========================================

    def save(self, path: Union[str, Path]) -> bool:
        """Write the board to a tasks file"""
        return encode_tasks(self.list_all(), path)

    # ========================================
    # TASK OPERATIONS
    # ========================================

    def create(self, description: str) -> Task:
        """Add a new task to To Do"""
        task = Task(description=clean_description(description))
        self._tasks.append(task)
        logger.info(f"✅ Created task: {task.description} ({task.id})")
        return task

    def find_by_position(self, status: TaskStatus, position: int) -> Optional[Task]:
        """Task at a 1-based display position within a status, or None"""
        tasks = self.list_by_status(status)
        if 1 <= position <= len(tasks):
            return tasks[position - 1]
        return None

    def remove(self, task: Task) -> bool:
        """Remove a task; fails if it is not stored under ``task.status``"""
        index = self._index_of(task)
        if index is None:
            logger.warning(f"⚠️ Task {task.id} not found in {task.status.label}")
            return False

        del self._tasks[index]
        logger.info(f"🗑️ Removed task: {task.description} ({task.id})")
        return True

    def move(self, task: Task, new_status: TaskStatus) -> bool:
        """Move a task to the end of another status.

        Moving into DONE stamps the completion time; moving out clears it.
        """
        if task.status == new_status:
            logger.info(f"Task {task.id} is already in {new_status.label}")
            return False

        index = self._index_of(task)
        if index is None:
            logger.warning(f"⚠️ Task {task.id} not found in {task.status.label}")
            return False

        old_status = task.status
        del self._tasks[index]
        task.transition_to(new_status)
        self._tasks.append(task)

        logger.info(
            f"➡️ Moved task: {task.description} "
            f"({old_status.label} -> {new_status.label})"
        )
        return True

    def rename(self, task: Task, description: str) -> bool:
        """Change a stored task's description"""
        description = clean_description(description)
        index = self._index_of(task)
        if index is None:
            logger.warning(f"⚠️ Task {task.id} not found in {task.status.label}")
            return False

        stored = self._tasks[index]
        stored.rename(description)
        if task is not stored:
            task.rename(description)
        logger.info(f"✏️ Renamed task {task.id}: {description}")
        return True

    # ========================================
    # QUERIES
    # ========================================

    def list_by_status(self, status: TaskStatus) -> Tuple[Task, ...]:
        return tuple(t for t in self._tasks if t.status == status)

    def list_all(self) -> Mapping[TaskStatus, Tuple[Task, ...]]:
        """Read-only view of every status, in board order"""
        return MappingProxyType({status: self.list_by_status(status) for status in TaskStatus})

    @property
    def status_summary(self) -> Dict[str, int]:
        summary = {status.name: 0 for status in TaskStatus}
        for task in self._tasks:
            summary[task.status.name] += 1
        return summary

    def __len__(self) -> int:
        return len(self._tasks)

    # ========================================
    # HELPER METHODS
    # ========================================

    def _index_of(self, task: Task) -> Optional[int]:
        """Index of the stored task with this id, only if stored under task.status"""
        for i, stored in enumerate(self._tasks):
            if stored == task:
                return i if stored.status == task.status else None
        return None

    # ========================================
    # REPORTING
    # ========================================

    def get_status_report(self, status: Optional[TaskStatus] = None) -> str:
        """Generate human-readable board listing with 1-based positions"""
        status_icons = {
            TaskStatus.TODO: "⬜",
            TaskStatus.DOING: "🔵",
            TaskStatus.DONE: "✅",
        }
        statuses = [status] if status is not None else list(TaskStatus)

        lines: List[str] = []
        for current in statuses:
            tasks = self.list_by_status(current)
            lines.append(f"{status_icons[current]} {current.label} ({len(tasks)})")
            if not tasks:
                lines.append("   (no tasks)")
            for position, task in enumerate(tasks, start=1):
                lines.append(f"   {position}. {task}")
            lines.append("")

        if status is None and not self._tasks:
            lines.append("No tasks on the board.")

        return "\n".join(lines).rstrip("\n")
