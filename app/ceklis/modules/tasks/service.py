from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import func

from app.ceklis.audit import record_event
from app.ceklis.constants import POSITION_STEP, TASK_PRIORITIES, TASK_STATUSES
from app.ceklis.errors import BadRequest, NotFound
from app.ceklis.modules.teams.service import require_team_member
from app.ceklis.rbac import member_team_ids, team_membership
from app.ceklis.utils import clean_str, isoformat, parse_id

if TYPE_CHECKING:
    from sqlalchemy.orm import Session
    from app.ceklis.models import User
    from app.ceklis.modules.tasks.models import Task


def next_position(s: "Session", team_id: int, status: str) -> int:
    """Position after the last task of a team's status column."""
    from app.ceklis.modules.tasks.models import Task

    last = s.query(func.max(Task.position)).filter(Task.team_id == team_id, Task.status == status).scalar()
    return (last or 0) + POSITION_STEP


def _parse_estimation(value) -> int | None:
    if value is None or value == "":
        return None
    try:
        estimation = int(value)
    except (TypeError, ValueError):
        raise BadRequest("Estimation must be a whole number")
    if estimation < 0:
        raise BadRequest("Estimation must be a whole number")
    return estimation


def _validate_epic(s: "Session", epic_id, team_id: int) -> int | None:
    from app.ceklis.modules.epics.models import Epic

    epic_id = parse_id(epic_id)
    if not epic_id:
        return None
    epic = s.get(Epic, epic_id)
    if epic is None or epic.team_id != team_id:
        raise BadRequest("Epic does not belong to this team")
    return epic.id


def _validate_assignee(s: "Session", assignee_id, team_id: int) -> int | None:
    assignee_id = parse_id(assignee_id)
    if not assignee_id:
        return None
    if team_membership(s, assignee_id, team_id) is None:
        raise BadRequest("Assignee must be a member of this team")
    return assignee_id


def _validate_label_ids(s: "Session", label_ids, organization_id: int) -> list[int]:
    from app.ceklis.modules.labels.models import Label

    if not label_ids:
        return []
    if not isinstance(label_ids, list):
        raise BadRequest("labelIds must be a list")
    ids = sorted({i for i in (parse_id(v) for v in label_ids) if i})
    found = {
        row[0]
        for row in s.query(Label.id).filter(Label.id.in_(ids), Label.organization_id == organization_id).all()
    }
    if found != set(ids):
        raise BadRequest("Unknown label for this organization")
    return ids


def list_tasks(s: "Session", user: "User", team_ids: list | None = None) -> list["Task"]:
    from app.ceklis.modules.tasks.models import Task

    allowed = member_team_ids(s, user.id)
    if not allowed:
        return []
    q = s.query(Task).filter(Task.team_id.in_(allowed))
    wanted = [i for i in (parse_id(v) for v in (team_ids or [])) if i]
    if wanted:
        q = q.filter(Task.team_id.in_(wanted))
    return q.order_by(Task.position.asc(), Task.id.asc()).all()


def create_task(s: "Session", payload: dict, user: "User") -> "Task":
    from app.ceklis.modules.labels.models import TaskLabel
    from app.ceklis.modules.tasks.models import Task
    from app.ceklis.modules.teams.service import get_team

    title = clean_str(payload.get("title"))
    team_id = parse_id(payload.get("teamId"))
    if not title or not team_id:
        raise BadRequest("Title and team ID are required")
    require_team_member(s, user, team_id)
    team = get_team(s, team_id)

    status = payload.get("status") or "BACKLOG"
    if status not in TASK_STATUSES:
        raise BadRequest("Invalid status")
    priority = payload.get("priority") or "MEDIUM"
    if priority not in TASK_PRIORITIES:
        raise BadRequest("Invalid priority")

    now = datetime.utcnow()
    task = Task(
        title=title,
        description=clean_str(payload.get("description")),
        team_id=team.id,
        epic_id=_validate_epic(s, payload.get("epicId"), team.id),
        assignee_id=_validate_assignee(s, payload.get("assigneeId"), team.id),
        priority=priority,
        estimation=_parse_estimation(payload.get("estimation")),
        status=status,
        position=next_position(s, team.id, status),
        created_by_user_id=user.id,
        created_at=now,
        updated_at=now,
    )
    for label_id in _validate_label_ids(s, payload.get("labelIds"), team.organization_id):
        task.label_links.append(TaskLabel(label_id=label_id))
    s.add(task)
    s.flush()

    record_event(
        s,
        actor=user,
        action="task.create",
        entity=task,
        metadata={"title": task.title, "team_id": team.id, "status": task.status},
    )
    return task


def get_task(s: "Session", task_id: int, user: "User") -> "Task":
    from app.ceklis.modules.tasks.models import Task

    task = s.get(Task, task_id)
    if task is None:
        raise NotFound("Task not found")
    require_team_member(s, user, task.team_id)
    return task


def update_task(s: "Session", task_id: int, payload: dict, user: "User") -> "Task":
    """
    Partial update. Changing status moves the task to the end of the new column;
    otherwise an explicit position is honoured.
    """
    task = get_task(s, task_id, user)
    old_status = task.status
    action = "task.edit"
    metadata: dict = {"title": task.title}

    if "title" in payload:
        title = clean_str(payload.get("title"))
        if not title:
            raise BadRequest("Title is required")
        task.title = title
    if "description" in payload:
        task.description = clean_str(payload.get("description"))
    if "priority" in payload:
        if payload["priority"] not in TASK_PRIORITIES:
            raise BadRequest("Invalid priority")
        task.priority = payload["priority"]
    if "estimation" in payload:
        task.estimation = _parse_estimation(payload.get("estimation"))
    if "epicId" in payload:
        task.epic_id = _validate_epic(s, payload.get("epicId"), task.team_id)
    if "assigneeId" in payload:
        task.assignee_id = _validate_assignee(s, payload.get("assigneeId"), task.team_id)
        if task.assignee_id:
            action = "task.assign"
            metadata["assignee_id"] = task.assignee_id

    status = payload.get("status")
    if status and status != old_status:
        if status not in TASK_STATUSES:
            raise BadRequest("Invalid status")
        task.position = next_position(s, task.team_id, status)
        task.status = status
        action = "task.status_change"
        metadata.update({"from_status": old_status, "to_status": status})
    elif payload.get("position") is not None:
        try:
            task.position = int(payload["position"])
        except (TypeError, ValueError):
            raise BadRequest("Position must be a number")

    task.updated_at = datetime.utcnow()
    record_event(s, actor=user, action=action, entity=task, metadata=metadata)
    return task


def delete_task(s: "Session", task_id: int, user: "User") -> None:
    task = get_task(s, task_id, user)
    record_event(
        s,
        actor=user,
        action="task.delete",
        entity=task,
        metadata={"title": task.title, "team_id": task.team_id},
    )
    s.delete(task)


def add_labels(s: "Session", task_id: int, label_ids, user: "User") -> "Task":
    """Attach labels to a task; labels already attached are skipped."""
    from app.ceklis.modules.labels.models import TaskLabel

    task = get_task(s, task_id, user)
    ids = _validate_label_ids(s, label_ids, task.team.organization_id)
    existing = {link.label_id for link in task.label_links}
    added = [i for i in ids if i not in existing]
    for label_id in added:
        task.label_links.append(TaskLabel(label_id=label_id))
    if added:
        record_event(s, actor=user, action="task.labels_add", entity=task, metadata={"label_ids": added})
    return task


def clear_labels(s: "Session", task_id: int, user: "User") -> "Task":
    task = get_task(s, task_id, user)
    task.label_links.clear()
    record_event(s, actor=user, action="task.labels_clear", entity=task)
    return task


def serialize_task(task: "Task") -> dict:
    return {
        "id": task.id,
        "title": task.title,
        "description": task.description,
        "status": task.status,
        "priority": task.priority,
        "estimation": task.estimation,
        "position": task.position,
        "teamId": task.team_id,
        "epicId": task.epic_id,
        "assigneeId": task.assignee_id,
        "createdAt": isoformat(task.created_at),
        "updatedAt": isoformat(task.updated_at),
        "team": {"id": task.team.id, "name": task.team.name},
        "assignee": task.assignee.to_public() if task.assignee else None,
        "epic": {"id": task.epic.id, "title": task.epic.title, "status": task.epic.status} if task.epic else None,
        "labels": [{"id": lb.id, "name": lb.name, "color": lb.color} for lb in task.labels],
    }
