"""Task CRUD endpoints."""

from __future__ import annotations

import logging
from typing import Any

from fastapi import Request

from taskboard.api_router import api_router
from taskboard.errors import InternalError
from taskboard.kv_store import StoreError
from taskboard.user_scope import get_request_user_id, get_task_service

logger = logging.getLogger(__name__)


@api_router.get("/tasks")
def list_tasks(request: Request) -> dict[str, Any]:
    """Return every task owned by the caller."""
    user_id = get_request_user_id(request)
    service = get_task_service(request)
    try:
        tasks = service.list_tasks(user_id)
    except StoreError as exc:
        logger.error("Error fetching tasks for user %s: %s", user_id, exc)
        raise InternalError(f"Failed to fetch tasks: {exc}") from exc
    return {"tasks": [task.to_dict() for task in tasks]}


@api_router.get("/tasks/report")
def task_report(request: Request) -> dict[str, Any]:
    """Return aggregate counts over the caller's tasks."""
    user_id = get_request_user_id(request)
    service = get_task_service(request)
    try:
        report = service.report(user_id)
    except StoreError as exc:
        logger.error("Error building report for user %s: %s", user_id, exc)
        raise InternalError(f"Failed to build report: {exc}") from exc
    return {"report": report}


@api_router.post("/tasks")
def create_task(payload: dict[str, Any], request: Request) -> dict[str, Any]:
    """Create a task with a server-assigned id and creation time."""
    user_id = get_request_user_id(request)
    service = get_task_service(request)
    try:
        task = service.create_task(user_id, payload)
    except StoreError as exc:
        logger.error("Error creating task for user %s: %s", user_id, exc)
        raise InternalError(f"Failed to create task: {exc}") from exc
    return {"task": task.to_dict()}


@api_router.put("/tasks/{task_id}")
def update_task(
    task_id: str, payload: dict[str, Any], request: Request
) -> dict[str, Any]:
    """Shallow-merge the supplied fields over an existing task."""
    user_id = get_request_user_id(request)
    service = get_task_service(request)
    try:
        task = service.update_task(user_id, task_id, payload)
    except StoreError as exc:
        logger.error("Error updating task %s: %s", task_id, exc)
        raise InternalError(f"Failed to update task: {exc}") from exc
    return {"task": task.to_dict()}


@api_router.delete("/tasks/{task_id}")
def delete_task(task_id: str, request: Request) -> dict[str, Any]:
    """Delete a task; deleting a missing task still succeeds."""
    user_id = get_request_user_id(request)
    service = get_task_service(request)
    try:
        service.delete_task(user_id, task_id)
    except StoreError as exc:
        logger.error("Error deleting task %s: %s", task_id, exc)
        raise InternalError(f"Failed to delete task: {exc}") from exc
    return {"success": True}
