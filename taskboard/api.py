"""API handler registration."""

# ruff: noqa: F401

from __future__ import annotations

from fastapi import FastAPI

from taskboard.api_router import api_router

# Import modules to register routes with the shared router.
from taskboard import auth_endpoint, tasks_endpoint

# Re-export endpoints for tests and direct imports.
from taskboard.auth_endpoint import signup
from taskboard.tasks_endpoint import (
    create_task,
    delete_task,
    list_tasks,
    task_report,
    update_task,
)


def register_api_handlers(app: FastAPI) -> None:
    """Attach API routes to the FastAPI application."""
    app.include_router(api_router)
