"""Payload validation helpers for API endpoints."""

from __future__ import annotations

from typing import Any

from taskboard.errors import BadRequest


def _ensure_payload_dict(payload: Any) -> dict[str, Any]:
    if not isinstance(payload, dict):
        raise BadRequest(
            f"Payload must be an object, not {type(payload).__name__}.",
            "INVALID_TYPE",
        )
    return payload


def _reject_unknown_fields(payload: dict[str, Any], allowed_fields: set[str]) -> None:
    unknown_fields = sorted(set(payload) - allowed_fields)
    if unknown_fields:
        raise BadRequest(
            f"Unknown fields are not allowed: {', '.join(unknown_fields)}",
            "UNKNOWN_FIELD",
        )


def _require_fields(payload: dict[str, Any], required_fields: list[str]) -> None:
    missing = [
        name for name in required_fields if payload.get(name) in (None, "")
    ]
    if missing:
        raise BadRequest(
            f"Missing required fields: {', '.join(missing)}",
            "MISSING_FIELDS",
        )
