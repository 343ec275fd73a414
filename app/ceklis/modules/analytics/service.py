from __future__ import annotations

import math
from collections import Counter
from datetime import datetime, timedelta
from typing import TYPE_CHECKING

from app.ceklis.rbac import member_team_ids

if TYPE_CHECKING:
    from sqlalchemy.orm import Session
    from app.ceklis.models import User
    from app.ceklis.modules.tasks.models import Task

DEFAULT_PERIOD_DAYS = 30
MAX_PERIOD_DAYS = 365
MAX_VELOCITY_WEEKS = 8
VELOCITY_WEEKS_SHOWN = 6


def parse_period(raw) -> int:
    try:
        period = int(raw)
    except (TypeError, ValueError):
        return DEFAULT_PERIOD_DAYS
    return min(max(period, 1), MAX_PERIOD_DAYS)


def _percentage(count: int, total: int) -> int:
    return round(count / total * 100) if total else 0


def _distribution(counts: Counter, key: str, total: int) -> list[dict]:
    return [{key: value, "count": n, "percentage": _percentage(n, total)} for value, n in counts.items()]


def velocity(tasks: list["Task"], period: int, now: datetime) -> list[dict]:
    """
    Weekly created/completed counts, oldest week first.
    Completion is approximated by the last update of a DONE task.
    """
    weeks = math.ceil(period / 7)
    series: list[dict] = []
    for i in range(min(weeks, MAX_VELOCITY_WEEKS)):
        week_start = now - timedelta(days=(i + 1) * 7)
        week_end = now - timedelta(days=i * 7)
        created = sum(1 for t in tasks if week_start <= t.created_at < week_end)
        completed = sum(1 for t in tasks if t.status == "DONE" and week_start <= t.updated_at < week_end)
        series.insert(0, {"week": f"Week {weeks - i}", "completed": completed, "created": created})
    return series[-VELOCITY_WEEKS_SHOWN:]


def compute_analytics(tasks: list["Task"], period: int, now: datetime | None = None) -> dict:
    now = now or datetime.utcnow()
    total = len(tasks)
    completed = sum(1 for t in tasks if t.status == "DONE")
    in_progress = sum(1 for t in tasks if t.status == "IN_PROGRESS")

    # Keyed by id: team names are only unique within an organization.
    per_team: dict[int, dict] = {}
    for t in tasks:
        stats = per_team.setdefault(t.team_id, {"name": t.team.name, "total": 0, "completed": 0})
        stats["total"] += 1
        if t.status == "DONE":
            stats["completed"] += 1

    return {
        "periodDays": period,
        "totalTasks": total,
        "completedTasks": completed,
        "inProgressTasks": in_progress,
        "completionRate": _percentage(completed, total),
        "teamStats": [
            {
                "teamId": team_id,
                "teamName": stats["name"],
                "totalTasks": stats["total"],
                "completedTasks": stats["completed"],
                "completionRate": _percentage(stats["completed"], stats["total"]),
            }
            for team_id, stats in per_team.items()
        ],
        "statusDistribution": _distribution(Counter(t.status for t in tasks), "status", total),
        "priorityDistribution": _distribution(Counter(t.priority for t in tasks), "priority", total),
        "velocityData": velocity(tasks, period, now),
    }


def analytics_for_user(s: "Session", user: "User", period: int, now: datetime | None = None) -> dict:
    """Analytics over tasks of the user's teams created within the period."""
    from app.ceklis.modules.tasks.models import Task

    now = now or datetime.utcnow()
    team_ids = member_team_ids(s, user.id)
    tasks: list[Task] = []
    if team_ids:
        tasks = (
            s.query(Task)
            .filter(Task.team_id.in_(team_ids), Task.created_at >= now - timedelta(days=period))
            .order_by(Task.created_at.asc())
            .all()
        )
    return compute_analytics(tasks, period, now)
