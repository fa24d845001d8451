# tests/test_persistence.py

import json
import logging
import uuid
from datetime import datetime, timezone
from pathlib import Path

import pytest

from taskboard import Task, TaskManager, TaskStatus, decode_tasks, encode_tasks, export_json
from taskboard.persistence import (
    CsvRecordError,
    decode_lines,
    format_record,
    from_epoch_millis,
    parse_record,
    to_epoch_millis,
)

TASK_ID = "3f2b8a9e-6c1d-4e5f-9a7b-1c2d3e4f5a6b"
CREATED_MS = 1714000000123
COMPLETED_MS = 1714000999456


def build_board() -> TaskManager:
    manager = TaskManager()
    manager.create("Buy milk")
    doing = manager.create("Write report")
    done = manager.create("File taxes")
    manager.create("Call mom")
    manager.move(doing, TaskStatus.DOING)
    manager.move(done, TaskStatus.DONE)
    return manager


def test_epoch_millis_conversion() -> None:
    moment = datetime(2024, 4, 25, 12, 0, 0, 123000, tzinfo=timezone.utc)
    assert from_epoch_millis(to_epoch_millis(moment)) == moment
    assert to_epoch_millis(from_epoch_millis(CREATED_MS)) == CREATED_MS


def test_format_record() -> None:
    task = parse_record(f"{TASK_ID},DONE,Ship it,{CREATED_MS},{COMPLETED_MS}")
    assert format_record(task) == f"{TASK_ID},DONE,Ship it,{CREATED_MS},{COMPLETED_MS}"

    task.transition_to(TaskStatus.TODO)
    assert format_record(task) == f"{TASK_ID},TODO,Ship it,{CREATED_MS},"


def test_format_record_replaces_separator() -> None:
    manager = TaskManager()
    task = manager.create("eggs, milk,bread")
    assert format_record(task).split(",")[2] == "eggs  milk bread"


def test_round_trip(tasks_file: Path) -> None:
    manager = build_board()

    assert encode_tasks(manager.list_all(), tasks_file) is True
    result = decode_tasks(tasks_file)

    assert result.error is None
    assert result.warnings == []
    for status in TaskStatus:
        original = manager.list_by_status(status)
        decoded = result.partitions[status]
        assert [t.id for t in decoded] == [t.id for t in original]
        for before, after in zip(original, decoded):
            assert after.description == before.description
            assert after.status == before.status
            assert after.created_at == before.created_at
            assert after.completed_at == before.completed_at


def test_encoded_file_has_no_header(tasks_file: Path) -> None:
    manager = build_board()
    manager.save(tasks_file)

    lines = tasks_file.read_text(encoding="utf-8").splitlines()
    assert len(lines) == 4
    assert all(len(line.split(",")) == 5 for line in lines)
    assert tasks_file.read_text(encoding="utf-8").endswith("\n")


def test_missing_file_is_an_empty_board(tmp_path: Path) -> None:
    result = decode_tasks(tmp_path / "nope" / "tasks.csv")

    assert result.error is None
    assert result.warnings == []
    assert set(result.partitions) == set(TaskStatus)
    assert all(tasks == [] for tasks in result.partitions.values())


def test_malformed_line_is_skipped_with_one_warning(tasks_file: Path, caplog) -> None:
    tasks_file.write_text(
        f"{TASK_ID},TODO,Valid task,{CREATED_MS},\n"
        "broken,line\n",
        encoding="utf-8",
    )

    with caplog.at_level(logging.WARNING, logger="taskboard"):
        result = decode_tasks(tasks_file)

    assert result.task_count == 1
    (task,) = result.partitions[TaskStatus.TODO]
    assert str(task.id) == TASK_ID
    assert len(result.warnings) == 1
    warning = result.warnings[0]
    assert warning.line_number == 2
    assert warning.line == "broken,line"
    assert "broken,line" in caplog.text


def test_blank_lines_are_skipped_silently(tasks_file: Path) -> None:
    tasks_file.write_text(
        f"\n   \n{TASK_ID},doing,Spaced out,{CREATED_MS}\n\n",
        encoding="utf-8",
    )

    result = decode_tasks(tasks_file)

    assert result.warnings == []
    (task,) = result.partitions[TaskStatus.DOING]
    assert task.description == "Spaced out"
    assert task.completed_at is None


@pytest.mark.parametrize(
    "line",
    [
        f"{TASK_ID},TODO,too few",
        f"not-a-uuid,TODO,Task,{CREATED_MS},",
        f"{TASK_ID},FINISHED,Task,{CREATED_MS},",
        f"{TASK_ID},To Do,Task,{CREATED_MS},",
        f"{TASK_ID},TODO,Task,yesterday,",
        f"{TASK_ID},TODO,   ,{CREATED_MS},",
        f"{TASK_ID},DONE,Task,{CREATED_MS},soon",
        f"{TASK_ID},TODO,Task,99999999999999999999,",
    ],
)
def test_rejected_lines(line: str) -> None:
    with pytest.raises(CsvRecordError):
        parse_record(line)

    result = decode_lines([line])
    assert result.task_count == 0
    assert len(result.warnings) == 1


def test_decoded_fields() -> None:
    task = parse_record(f" {TASK_ID} , done ,  Ship it  ,{CREATED_MS},{COMPLETED_MS}")

    assert task.id == uuid.UUID(TASK_ID)
    assert task.status == TaskStatus.DONE
    assert task.description == "Ship it"
    assert to_epoch_millis(task.created_at) == CREATED_MS
    assert to_epoch_millis(task.completed_at) == COMPLETED_MS


def test_fifth_field_keeps_extra_separators() -> None:
    # split stops at five fields, so a trailing comma run lands in field five
    line = f"{TASK_ID},TODO,Task,{CREATED_MS},,"
    with pytest.raises(CsvRecordError):
        parse_record(line)


def test_decode_preserves_ids_across_save_and_load(tasks_file: Path) -> None:
    manager = build_board()
    ids = {t.id for tasks in manager.list_all().values() for t in tasks}
    manager.save(tasks_file)

    reloaded = TaskManager.from_file(tasks_file)
    assert {t.id for tasks in reloaded.list_all().values() for t in tasks} == ids


def test_unreadable_file_is_reported(tmp_path: Path) -> None:
    # a directory exists but cannot be read as a file
    result = decode_tasks(tmp_path)

    assert result.error is not None
    assert result.task_count == 0


def test_undecodable_file_keeps_partial_result(tasks_file: Path) -> None:
    good = f"{TASK_ID},TODO,Readable,{CREATED_MS},\n".encode("utf-8") * 1000
    tasks_file.write_bytes(good + b"\xff\xfe broken bytes\n")

    result = decode_tasks(tasks_file)

    assert result.error is not None
    assert 0 < len(result.partitions[TaskStatus.TODO]) <= 1000


def test_encode_failure_returns_false(tmp_path: Path) -> None:
    manager = build_board()
    assert encode_tasks(manager.list_all(), tmp_path) is False


def test_encode_creates_parent_directories(tmp_path: Path) -> None:
    target = tmp_path / "nested" / "dir" / "tasks.csv"
    assert encode_tasks(build_board().list_all(), target) is True
    assert target.exists()


def test_export_json(tmp_path: Path) -> None:
    manager = build_board()
    target = tmp_path / "board.json"

    assert export_json(manager.list_all(), target) is True

    data = json.loads(target.read_text(encoding="utf-8"))
    assert len(data["tasks"]) == 4
    statuses = sorted(t["status"] for t in data["tasks"])
    assert statuses == ["DOING", "DONE", "TODO", "TODO"]
    done = next(t for t in data["tasks"] if t["status"] == "DONE")
    assert done["completed_at"] is not None
    assert export_json(manager.list_all(), tmp_path) is False


def test_done_line_without_completion_uses_created_at() -> None:
    task = parse_record(f"{TASK_ID},DONE,Task,{CREATED_MS},")

    assert task.status == TaskStatus.DONE
    assert task.completed_at == task.created_at
    assert to_epoch_millis(task.completed_at) == CREATED_MS


def test_naive_timestamps_are_saved_as_utc(tasks_file: Path) -> None:
    legacy = Task(description="legacy", created_at=datetime(2024, 1, 1, 12, 0, 0, 123456))
    manager = TaskManager(todo=[legacy])

    assert manager.save(tasks_file) is True

    (task,) = decode_tasks(tasks_file).partitions[TaskStatus.TODO]
    assert task.created_at == datetime(2024, 1, 1, 12, 0, 0, 123000, tzinfo=timezone.utc)


def test_failed_replace_keeps_previous_file(tasks_file: Path, monkeypatch) -> None:
    build_board().save(tasks_file)
    before = tasks_file.read_text(encoding="utf-8")

    def fail(src, dst):
        raise OSError("disk full")

    monkeypatch.setattr("taskboard.persistence.os.replace", fail)
    assert TaskManager().save(tasks_file) is False

    assert tasks_file.read_text(encoding="utf-8") == before
    assert list(tasks_file.parent.iterdir()) == [tasks_file]


def test_failed_format_keeps_previous_file(tasks_file: Path, monkeypatch) -> None:
    manager = build_board()
    manager.save(tasks_file)
    before = tasks_file.read_text(encoding="utf-8")

    def fail(task):
        raise TypeError("can't subtract offset-naive and offset-aware datetimes")

    monkeypatch.setattr("taskboard.persistence.format_record", fail)
    assert manager.save(tasks_file) is False

    assert tasks_file.read_text(encoding="utf-8") == before
