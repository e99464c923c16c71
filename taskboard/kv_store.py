"""Key-value store adapters with prefix-scan retrieval."""

from __future__ import annotations

import json
import logging
import os
import tempfile
import threading
from pathlib import Path
from typing import Any, Protocol

import httpx

logger = logging.getLogger(__name__)


class StoreError(RuntimeError):
    """Raised when the backing store cannot complete an operation."""


class KeyValueStore(Protocol):
    def get(self, key: str) -> Any | None: ...

    def set(self, key: str, value: Any) -> None: ...

    def delete(self, key: str) -> None: ...

    def get_by_prefix(self, prefix: str) -> list[Any]: ...


class InMemoryKeyValueStore:
    """Process-local store for development and tests."""

    def __init__(self) -> None:
        self._data: dict[str, Any] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Any | None:
        with self._lock:
            value = self._data.get(key)
        return _copy_json(value)

    def set(self, key: str, value: Any) -> None:
        snapshot = _copy_json(value)
        with self._lock:
            self._data[key] = snapshot

    def delete(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)

    def get_by_prefix(self, prefix: str) -> list[Any]:
        with self._lock:
            matches = [
                value for key, value in self._data.items() if key.startswith(prefix)
            ]
        return [_copy_json(value) for value in matches]


class JsonFileKeyValueStore:
    """Store persisted as one JSON object, rewritten atomically on mutation."""

    def __init__(self, path: Path) -> None:
        self._path = Path(path)
        self._lock = threading.Lock()

    @property
    def path(self) -> Path:
        return self._path

    def get(self, key: str) -> Any | None:
        with self._lock:
            return self._load().get(key)

    def set(self, key: str, value: Any) -> None:
        with self._lock:
            data = self._load()
            data[key] = value
            self._save(data)

    def delete(self, key: str) -> None:
        with self._lock:
            data = self._load()
            if key not in data:
                return
            del data[key]
            self._save(data)

    def get_by_prefix(self, prefix: str) -> list[Any]:
        with self._lock:
            data = self._load()
        return [value for key, value in data.items() if key.startswith(prefix)]

    def _load(self) -> dict[str, Any]:
        if not self._path.exists():
            return {}
        try:
            raw = self._path.read_text(encoding="utf-8")
        except OSError as exc:
            raise StoreError(f"Unable to read store file: {self._path}") from exc
        if not raw.strip():
            return {}
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise StoreError(f"Store file is not valid JSON: {exc}") from exc
        if not isinstance(data, dict):
            raise StoreError("Store file must contain a JSON object.")
        return data

    def _save(self, data: dict[str, Any]) -> None:
        try:
            content = json.dumps(data, sort_keys=True, ensure_ascii=False)
        except (TypeError, ValueError) as exc:
            raise StoreError(f"Value is not JSON serializable: {exc}") from exc
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            _atomic_write(self._path, content)
        except OSError as exc:
            raise StoreError(f"Unable to write store file: {self._path}") from exc


class SupabaseKeyValueStore:
    """Store backed by a PostgREST table with ``key`` and ``value`` columns."""

    def __init__(
        self,
        base_url: str,
        service_key: str,
        *,
        table: str = "kv_store",
        timeout: float = 10.0,
        client: httpx.Client | None = None,
    ) -> None:
        self._endpoint = f"{base_url.rstrip('/')}/rest/v1/{table}"
        self._headers = {
            "apikey": service_key,
            "Authorization": f"Bearer {service_key}",
        }
        self._http = client or httpx.Client(timeout=timeout)

    def close(self) -> None:
        self._http.close()

    def get(self, key: str) -> Any | None:
        rows = self._request(
            "GET", params={"select": "value", "key": f"eq.{key}"}
        )
        if not rows:
            return None
        return rows[0].get("value")

    def set(self, key: str, value: Any) -> None:
        self._request(
            "POST",
            body={"key": key, "value": value},
            headers={"Prefer": "resolution=merge-duplicates,return=minimal"},
        )

    def delete(self, key: str) -> None:
        self._request("DELETE", params={"key": f"eq.{key}"})

    def get_by_prefix(self, prefix: str) -> list[Any]:
        rows = self._request(
            "GET",
            params={"select": "key,value", "key": f"like.{_escape_like(prefix)}*"},
        )
        # LIKE escapes differ across servers; keep only literal prefix matches.
        return [
            row.get("value")
            for row in rows or []
            if isinstance(row, dict) and str(row.get("key", "")).startswith(prefix)
        ]

    def _request(
        self,
        method: str,
        *,
        params: dict[str, str] | None = None,
        body: Any = None,
        headers: dict[str, str] | None = None,
    ) -> Any:
        request_headers = dict(self._headers)
        if headers:
            request_headers.update(headers)
        try:
            response = self._http.request(
                method,
                self._endpoint,
                params=params,
                json=body,
                headers=request_headers,
            )
        except httpx.HTTPError as exc:
            raise StoreError(f"Store request failed: {exc}") from exc

        if response.status_code >= 400:
            logger.error(
                "Store %s returned %s: %s",
                method,
                response.status_code,
                response.text,
            )
            raise StoreError(
                f"Store {method} failed with status {response.status_code}: "
                f"{response.text}"
            )
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as exc:
            raise StoreError("Store returned a non-JSON response.") from exc


def _escape_like(value: str) -> str:
    return (
        value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    )


def _copy_json(value: Any) -> Any:
    if value is None:
        return None
    try:
        return json.loads(json.dumps(value))
    except (TypeError, ValueError) as exc:
        raise StoreError(f"Value is not JSON serializable: {exc}") from exc


def _atomic_write(target_path: Path, content: str) -> None:
    temp_path: Path | None = None
    try:
        with tempfile.NamedTemporaryFile(
            "w", encoding="utf-8", dir=target_path.parent, delete=False
        ) as temp_file:
            temp_path = Path(temp_file.name)
            temp_file.write(content)
            temp_file.flush()
            os.fsync(temp_file.fileno())
        os.replace(temp_path, target_path)
    finally:
        if temp_path is not None and temp_path.exists():
            try:
                temp_path.unlink()
            except OSError:
                pass
