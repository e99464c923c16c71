"""Shared router for the task API endpoints."""

from __future__ import annotations

from fastapi import APIRouter

api_router = APIRouter()
