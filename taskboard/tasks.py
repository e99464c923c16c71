"""Task records and the per-user task service built on the key-value store."""

from __future__ import annotations

import logging
import secrets
import time
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Any, Callable

from taskboard.errors import BadRequest, NotFound
from taskboard.kv_store import KeyValueStore
from taskboard.payload import (
    _ensure_payload_dict,
    _reject_unknown_fields,
    _require_fields,
)
from taskboard.task_report import build_task_report

logger = logging.getLogger(__name__)

TASK_STATUSES = ("pending", "in-progress", "completed")
TASK_PRIORITIES = ("low", "medium", "high")
EDITABLE_FIELDS = {"title", "description", "status", "priority", "dueDate"}
SERVER_FIELDS = {"id", "createdAt"}
REQUIRED_CREATE_FIELDS = ["title", "status", "priority", "dueDate"]


class TaskDecodeError(ValueError):
    """Raised when a stored value is not a well-formed task."""


@dataclass(frozen=True)
class Task:
    id: str
    title: str
    description: str
    status: str
    priority: str
    due_date: str
    created_at: str

    def to_dict(self) -> dict[str, str]:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "status": self.status,
            "priority": self.priority,
            "dueDate": self.due_date,
            "createdAt": self.created_at,
        }


def task_prefix(user_id: str) -> str:
    return f"user:{user_id}:task:"


def task_key(user_id: str, task_id: str) -> str:
    return f"{task_prefix(user_id)}{task_id}"


def decode_task(raw: Any) -> Task:
    """Decode a stored value into a Task, raising TaskDecodeError if malformed."""
    if not isinstance(raw, dict):
        raise TaskDecodeError(f"expected an object, got {type(raw).__name__}")
    for name in ("id", "createdAt"):
        value = raw.get(name)
        if not isinstance(value, str) or not value:
            raise TaskDecodeError(f"{name} is missing")
    try:
        fields = _validate_fields(
            {name: raw[name] for name in EDITABLE_FIELDS if name in raw}
        )
        _require_fields(fields, REQUIRED_CREATE_FIELDS)
    except BadRequest as exc:
        raise TaskDecodeError(str(exc)) from exc
    return Task(
        id=raw["id"],
        title=fields["title"],
        description=fields.get("description", ""),
        status=fields["status"],
        priority=fields["priority"],
        due_date=fields["dueDate"],
        created_at=raw["createdAt"],
    )


def _validate_fields(fields: dict[str, Any]) -> dict[str, Any]:
    validated: dict[str, Any] = {}
    for name, value in fields.items():
        if name == "title":
            if not isinstance(value, str) or not value.strip():
                raise BadRequest("title must be a non-empty string.", "INVALID_TITLE")
        elif name == "description":
            if value is None:
                value = ""
            if not isinstance(value, str):
                raise BadRequest("description must be a string.", "INVALID_TYPE")
        elif name == "status":
            if value not in TASK_STATUSES:
                raise BadRequest(
                    f"status must be one of: {', '.join(TASK_STATUSES)}.",
                    "INVALID_STATUS",
                )
        elif name == "priority":
            if value not in TASK_PRIORITIES:
                raise BadRequest(
                    f"priority must be one of: {', '.join(TASK_PRIORITIES)}.",
                    "INVALID_PRIORITY",
                )
        elif name == "dueDate":
            if not isinstance(value, str) or not _is_iso_date(value):
                raise BadRequest(
                    "dueDate must be a calendar date (YYYY-MM-DD).",
                    "INVALID_DATE",
                )
        validated[name] = value
    return validated


def _is_iso_date(value: str) -> bool:
    try:
        date.fromisoformat(value)
    except ValueError:
        return False
    return True


def _validate_task_id(task_id: Any) -> str:
    if not isinstance(task_id, str) or not task_id.strip():
        raise BadRequest("Task id is required.", "MISSING_ID")
    if ":" in task_id:
        raise BadRequest("Task id contains invalid characters.", "INVALID_ID")
    return task_id


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _format_timestamp(moment: datetime) -> str:
    return (
        moment.astimezone(timezone.utc)
        .isoformat(timespec="milliseconds")
        .replace("+00:00", "Z")
    )


def new_task_id() -> str:
    """Millisecond timestamp plus a random suffix; unique, roughly sortable."""
    return f"{time.time_ns() // 1_000_000}-{secrets.token_hex(4)}"


class TaskService:
    """CRUD over tasks stored under ``user:<user_id>:task:<task_id>`` keys.

    ``user_id`` must always come from the verified identity of the caller;
    every key is re-derived from it.
    """

    def __init__(
        self,
        store: KeyValueStore,
        *,
        clock: Callable[[], datetime] | None = None,
        id_factory: Callable[[], str] | None = None,
    ) -> None:
        self._store = store
        self._clock = clock or _utc_now
        self._id_factory = id_factory or new_task_id

    def list_tasks(self, user_id: str) -> list[Task]:
        prefix = task_prefix(user_id)
        tasks: list[Task] = []
        for raw in self._store.get_by_prefix(prefix):
            try:
                tasks.append(decode_task(raw))
            except TaskDecodeError as exc:
                logger.warning("Skipping malformed task under %s: %s", prefix, exc)
        logger.info("Found %d tasks for user %s", len(tasks), user_id)
        return tasks

    def create_task(self, user_id: str, fields: Any) -> Task:
        payload = _ensure_payload_dict(fields)
        # Server-assigned fields in the body are ignored.
        payload = {k: v for k, v in payload.items() if k not in SERVER_FIELDS}
        _reject_unknown_fields(payload, EDITABLE_FIELDS)
        _require_fields(payload, REQUIRED_CREATE_FIELDS)
        validated = _validate_fields(payload)

        task = Task(
            id=self._id_factory(),
            title=validated["title"],
            description=validated.get("description", ""),
            status=validated["status"],
            priority=validated["priority"],
            due_date=validated["dueDate"],
            created_at=_format_timestamp(self._clock()),
        )
        self._store.set(task_key(user_id, task.id), task.to_dict())
        logger.info("Created task %s for user %s", task.id, user_id)
        return task

    def update_task(self, user_id: str, task_id: str, fields: Any) -> Task:
        task_id = _validate_task_id(task_id)
        payload = _ensure_payload_dict(fields)
        key = task_key(user_id, task_id)
        raw = self._store.get(key)
        if raw is None:
            raise NotFound("Task not found", "TASK_NOT_FOUND")
        try:
            existing = decode_task(raw)
        except TaskDecodeError as exc:
            logger.warning("Stored task %s is malformed: %s", key, exc)
            raise NotFound("Task not found", "TASK_NOT_FOUND") from exc

        payload = {k: v for k, v in payload.items() if k not in SERVER_FIELDS}
        _reject_unknown_fields(payload, EDITABLE_FIELDS)
        validated = _validate_fields(payload)

        merged = {**existing.to_dict(), **validated, "id": task_id}
        task = decode_task(merged)
        self._store.set(key, task.to_dict())
        logger.info("Updated task %s for user %s", task_id, user_id)
        return task

    def delete_task(self, user_id: str, task_id: str) -> None:
        task_id = _validate_task_id(task_id)
        self._store.delete(task_key(user_id, task_id))
        logger.info("Deleted task %s for user %s", task_id, user_id)

    def report(self, user_id: str, today: date | None = None) -> dict[str, Any]:
        """Aggregate counts over the caller's tasks for dashboards."""
        tasks = self.list_tasks(user_id)
        return build_task_report(tasks, today or self._clock().date())
