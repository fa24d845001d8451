"""
TASKBOARD - Task Schema Definition
==================================
Three-column task board: To Do, Doing, Done.
Tasks are identified by UUID and persisted between runs.
"""

from enum import Enum
from typing import Optional
from datetime import datetime, timezone
from pydantic import BaseModel, Field, field_validator, model_validator
import uuid


class TaskValidationError(ValueError):
    """Caller-supplied task data violates an invariant"""


class TaskStatus(str, Enum):
    """Task lifecycle states, in board order"""
    TODO = "TODO"     # Not started
    DOING = "DOING"   # Currently being worked on
    DONE = "DONE"     # Finished

    @property
    def label(self) -> str:
        return STATUS_LABELS[self]

    @classmethod
    def from_name(cls, text: str) -> "TaskStatus":
        """Parse a persisted status name (case-insensitive)"""
        wanted = text.strip().upper()
        for status in cls:
            if status.name == wanted:
                return status
        raise ValueError(f"Unknown status: {text!r}")


STATUS_LABELS = {
    TaskStatus.TODO: "To Do",
    TaskStatus.DOING: "Doing",
    TaskStatus.DONE: "Done",
}


def to_utc_millis(moment: datetime) -> datetime:
    """UTC, truncated to whole milliseconds (the persisted precision). Naive means UTC."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    else:
        moment = moment.astimezone(timezone.utc)
    return moment.replace(microsecond=moment.microsecond - moment.microsecond % 1000)


def utc_now() -> datetime:
    return to_utc_millis(datetime.now(timezone.utc))


def clean_description(description: Optional[str]) -> str:
    if description is None or not description.strip():
        raise TaskValidationError("Task description cannot be empty")
    return description.strip()


class Task(BaseModel):
    """Individual task on the board.

    Equality and hashing use ``id`` only: two Task values with the same id are
    the same task, whatever their other fields say.
    """
    id: uuid.UUID = Field(default_factory=uuid.uuid4, frozen=True)
    description: str
    status: TaskStatus = TaskStatus.TODO

    # Timestamps
    created_at: datetime = Field(default_factory=utc_now, frozen=True)
    completed_at: Optional[datetime] = None  # Only while status is DONE

    @field_validator("description", mode="before")
    @classmethod
    def validate_description(cls, value):
        if not isinstance(value, str):
            return value
        return clean_description(value)

    @field_validator("created_at", "completed_at", mode="after")
    @classmethod
    def validate_timestamp(cls, value: Optional[datetime]) -> Optional[datetime]:
        return to_utc_millis(value) if value is not None else None

    @model_validator(mode="after")
    def sync_completion(self) -> "Task":
        self._sync_completion()
        return self

    def __setattr__(self, name: str, value) -> None:
        # Direct assignment gets the same rules as construction
        if name == "description":
            value = clean_description(value)
        elif name == "status":
            value = TaskStatus(value)
        elif name in ("created_at", "completed_at") and value is not None:
            value = to_utc_millis(value)
        super().__setattr__(name, value)
        if name in ("status", "completed_at"):
            self._sync_completion()

    def _sync_completion(self) -> None:
        """completed_at is present iff status is DONE"""
        if self.status != TaskStatus.DONE:
            if self.completed_at is not None:
                self.completed_at = None
        elif self.completed_at is None:
            self.completed_at = self.created_at

    def rename(self, description: str) -> None:
        """Replace the description (same rules as at creation)"""
        self.description = clean_description(description)

    def transition_to(self, status: TaskStatus, at: Optional[datetime] = None) -> None:
        """Set status and completion time together so they never disagree"""
        self.status = status
        if status == TaskStatus.DONE:
            self.completed_at = at or utc_now()
        else:
            self.completed_at = None

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Task):
            return NotImplemented
        return self.id == other.id

    def __hash__(self) -> int:
        return hash(self.id)

    def __str__(self) -> str:
        created = self.created_at.astimezone().strftime("%d/%m/%Y %H:%M:%S")
        text = f"{self.description} (created {created}"
        if self.completed_at:
            done = self.completed_at.astimezone().strftime("%d/%m/%Y %H:%M:%S")
            text += f", completed {done}"
        return f"{text}, status: {self.status.label})"
