"""Report aggregation over a user's tasks."""

from __future__ import annotations

from collections import Counter
from datetime import date, datetime
from typing import TYPE_CHECKING, Any, Iterable

if TYPE_CHECKING:
    from taskboard.tasks import Task

REPORT_STATUSES = ("pending", "in-progress", "completed")
REPORT_PRIORITIES = ("high", "medium", "low")


def build_task_report(tasks: Iterable[Task], today: date) -> dict[str, Any]:
    tasks = list(tasks)
    total = len(tasks)
    by_status = Counter(task.status for task in tasks)
    completed = by_status["completed"]

    by_priority = {
        priority: {"total": 0, "completed": 0} for priority in REPORT_PRIORITIES
    }
    months: dict[str, dict[str, Any]] = {}
    high_priority_open = 0
    overdue = 0

    for task in tasks:
        is_completed = task.status == "completed"
        bucket = by_priority.get(task.priority)
        if bucket is not None:
            bucket["total"] += 1
            if is_completed:
                bucket["completed"] += 1

        if task.priority == "high" and not is_completed:
            high_priority_open += 1

        due = _parse_date(task.due_date)
        if due is not None and due < today and not is_completed:
            overdue += 1

        month = _created_month(task.created_at)
        if month is not None:
            entry = months.setdefault(
                month, {"month": month, "total": 0, "completed": 0}
            )
            entry["total"] += 1
            if is_completed:
                entry["completed"] += 1

    return {
        "total": total,
        "byStatus": {status: by_status[status] for status in REPORT_STATUSES},
        "completionRate": _rounded_percent(completed, total),
        "byPriority": by_priority,
        "highPriorityOpen": high_priority_open,
        "overdue": overdue,
        "byMonth": [months[key] for key in sorted(months)],
    }


def _rounded_percent(part: int, whole: int) -> int:
    if whole <= 0:
        return 0
    # Round half up.
    return (part * 200 + whole) // (2 * whole)


def _parse_date(value: str) -> date | None:
    try:
        return date.fromisoformat(value)
    except ValueError:
        return None


def _created_month(created_at: str) -> str | None:
    try:
        moment = datetime.fromisoformat(created_at.replace("Z", "+00:00"))
    except ValueError:
        return None
    return moment.strftime("%Y-%m")
