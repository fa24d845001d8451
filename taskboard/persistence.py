"""
TASKBOARD - CSV Persistence
===========================
One task per line, no header:

    id,status,description,createdAtEpochMillis,completedAtEpochMillis

Commas inside a description are written as spaces (lossy, no quoting).
Newlines inside a description are not escaped and will corrupt the file.
Loading is tolerant: a malformed line is skipped and reported, never fatal.
"""

import json
import logging
import os
import tempfile
import uuid
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Sequence, Union

from pydantic import BaseModel, Field, ValidationError

from .schema import Task, TaskStatus

logger = logging.getLogger("taskboard")

SEPARATOR = ","
FIELD_COUNT = 5
EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

PathLike = Union[str, Path]
TaskCollection = Mapping[TaskStatus, Sequence[Task]]


class CsvRecordError(ValueError):
    """A persisted line could not be turned into a Task"""


def empty_partitions() -> Dict[TaskStatus, List[Task]]:
    return {status: [] for status in TaskStatus}


class LineWarning(BaseModel):
    """A skipped line and why it was skipped"""
    line_number: int
    line: str
    reason: str

    def __str__(self) -> str:
        return f"line {self.line_number} skipped: {self.line!r} ({self.reason})"


class DecodeResult(BaseModel):
    """Outcome of loading a tasks file"""
    partitions: Dict[TaskStatus, List[Task]] = Field(default_factory=empty_partitions)
    warnings: List[LineWarning] = Field(default_factory=list)
    error: Optional[str] = None  # File-level failure; partitions hold what was read

    @property
    def task_count(self) -> int:
        return sum(len(tasks) for tasks in self.partitions.values())


# ============================================================
# TIMESTAMPS
# ============================================================

def to_epoch_millis(moment: datetime) -> int:
    return (moment - EPOCH) // timedelta(milliseconds=1)


def from_epoch_millis(millis: int) -> datetime:
    return EPOCH + timedelta(milliseconds=millis)


# ============================================================
# ENCODE
# ============================================================

def format_record(task: Task) -> str:
    """Format a task as one CSV line (without the newline)"""
    completed = to_epoch_millis(task.completed_at) if task.completed_at else ""
    return SEPARATOR.join([
        str(task.id),
        task.status.name,
        task.description.replace(SEPARATOR, " "),
        str(to_epoch_millis(task.created_at)),
        str(completed),
    ])


def encode_tasks(collection: TaskCollection, path: PathLike) -> bool:
    """Write every task in the collection to ``path``.

    Every line is formatted before anything touches disk, then written to a
    sibling temp file that replaces ``path`` in one step, so a failed save
    leaves the previous file as it was. Returns False (after logging) on failure.
    """
    path = Path(path)
    try:
        lines = [format_record(task) + "\n" for tasks in collection.values() for task in tasks]
    except (TypeError, ValueError, OverflowError) as e:
        logger.error(f"❌ Could not format tasks for {path}: {e}")
        return False

    tmp_name = None
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with tempfile.NamedTemporaryFile(
            "w", encoding="utf-8", newline="\n", dir=path.parent,
            prefix=f".{path.name}.", suffix=".tmp", delete=False,
        ) as f:
            tmp_name = f.name
            f.writelines(lines)
        os.replace(tmp_name, path)
    except OSError as e:
        logger.error(f"❌ Could not save tasks to {path}: {e}")
        if tmp_name is not None and os.path.exists(tmp_name):
            os.remove(tmp_name)
        return False

    logger.info(f"✅ Saved {len(lines)} tasks to {path}")
    return True


# ============================================================
# DECODE
# ============================================================

def _parse_millis(raw: str, field: str) -> datetime:
    try:
        millis = int(raw.strip())
    except ValueError:
        raise CsvRecordError(f"{field} is not an integer: {raw.strip()!r}") from None
    try:
        return from_epoch_millis(millis)
    except OverflowError:
        raise CsvRecordError(f"{field} is out of range: {millis}") from None


def parse_record(line: str) -> Task:
    """Parse one CSV line into a Task, raising CsvRecordError when malformed"""
    parts = line.split(SEPARATOR, FIELD_COUNT - 1)
    if len(parts) < 4:
        raise CsvRecordError(f"expected at least 4 fields, found {len(parts)}")

    try:
        task_id = uuid.UUID(parts[0].strip())
    except ValueError:
        raise CsvRecordError(f"invalid id: {parts[0].strip()!r}") from None

    try:
        status = TaskStatus.from_name(parts[1])
    except ValueError as e:
        raise CsvRecordError(str(e)) from None

    description = parts[2].strip()
    created_at = _parse_millis(parts[3], "createdAt")

    completed_at = None
    if len(parts) == FIELD_COUNT and parts[4].strip():
        completed_at = _parse_millis(parts[4], "completedAt")

    if not description:
        raise CsvRecordError("description is empty")

    try:
        return Task(
            id=task_id,
            description=description,
            status=status,
            created_at=created_at,
            completed_at=completed_at,
        )
    except ValidationError as e:
        raise CsvRecordError(f"invalid task: {e.errors()[0]['msg']}") from None


def decode_lines(lines, result: Optional[DecodeResult] = None) -> DecodeResult:
    """Fold lines into a DecodeResult, skipping (and recording) bad ones"""
    if result is None:
        result = DecodeResult()
    for line_number, raw in enumerate(lines, start=1):
        line = raw.rstrip("\r\n")
        if not line.strip():
            continue
        try:
            task = parse_record(line)
        except CsvRecordError as e:
            warning = LineWarning(line_number=line_number, line=line, reason=str(e))
            logger.warning(f"⚠️ Skipping {warning}")
            result.warnings.append(warning)
            continue
        logger.debug(f"Line {line_number}: {task.status.name} {task.id}")
        result.partitions[task.status].append(task)
    return result


def decode_tasks(path: PathLike) -> DecodeResult:
    """Load tasks from ``path``.

    A missing file is a first run and yields empty partitions. A read failure
    on an existing file is logged and recorded in ``error``; whatever was
    decoded before the failure is kept.
    """
    path = Path(path)
    result = DecodeResult()

    if not path.exists():
        logger.info(f"📂 No tasks file at {path}, starting with an empty board")
        return result

    try:
        with open(path, "r", encoding="utf-8") as f:
            decode_lines(f, result)
    except (OSError, UnicodeDecodeError) as e:
        result.error = f"Could not read {path}: {e}"
        logger.error(f"❌ {result.error}")
        return result

    logger.info(
        f"📂 Loaded {result.task_count} tasks from {path}"
        f" ({len(result.warnings)} lines skipped)"
    )
    return result


# ============================================================
# JSON EXPORT (write-only)
# ============================================================

def export_json(collection: TaskCollection, path: PathLike) -> bool:
    """Write the collection as JSON. There is no matching loader."""
    path = Path(path)
    data = {
        "tasks": [
            task.model_dump(mode="json")
            for tasks in collection.values()
            for task in tasks
        ]
    }
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2, ensure_ascii=False)
    except OSError as e:
        logger.error(f"❌ Could not export tasks to {path}: {e}")
        return False

    logger.info(f"✅ Exported {len(data['tasks'])} tasks to {path}")
    return True
