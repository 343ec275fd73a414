from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

from app.ceklis.audit import record_event
from app.ceklis.constants import EPIC_STATUSES
from app.ceklis.errors import BadRequest, Forbidden, NotFound
from app.ceklis.modules.teams.service import get_team, require_team_member
from app.ceklis.rbac import member_team_ids, team_membership
from app.ceklis.utils import clean_str, isoformat, parse_date, parse_id

if TYPE_CHECKING:
    from sqlalchemy.orm import Session
    from app.ceklis.models import User
    from app.ceklis.modules.epics.models import Epic


def _validate_status(status: str | None, default: str | None = None) -> str | None:
    status = status or default
    if status is not None and status not in EPIC_STATUSES:
        raise BadRequest(f"Invalid status. Must be one of: {', '.join(EPIC_STATUSES)}")
    return status


def list_epics(s: "Session", user: "User", team_id=None, organization_id=None) -> list["Epic"]:
    """Epics of the user's teams, newest first."""
    from app.ceklis.modules.epics.models import Epic

    allowed = member_team_ids(s, user.id)
    if not allowed:
        return []
    q = s.query(Epic).filter(Epic.team_id.in_(allowed))
    team_id = parse_id(team_id)
    organization_id = parse_id(organization_id)
    if team_id:
        q = q.filter(Epic.team_id == team_id)
    if organization_id:
        q = q.filter(Epic.organization_id == organization_id)
    return q.order_by(Epic.created_at.desc(), Epic.id.desc()).all()


def create_epic(s: "Session", payload: dict, user: "User") -> "Epic":
    from app.ceklis.modules.epics.models import Epic

    title = clean_str(payload.get("title"))
    team_id = parse_id(payload.get("teamId"))
    if not title or not team_id:
        raise BadRequest("Title and team are required")
    require_team_member(s, user, team_id, "Access denied to this team")
    team = get_team(s, team_id)

    now = datetime.utcnow()
    epic = Epic(
        title=title,
        description=clean_str(payload.get("description")),
        status=_validate_status(payload.get("status"), "PLANNING"),
        due_date=parse_date(payload.get("dueDate")),
        team_id=team.id,
        organization_id=team.organization_id,
        created_by_user_id=user.id,
        created_at=now,
        updated_at=now,
    )
    s.add(epic)
    s.flush()

    record_event(
        s,
        actor=user,
        action="epic.create",
        entity=epic,
        metadata={"title": title, "team_id": team.id, "team_name": team.name},
    )
    return epic


def get_epic(s: "Session", epic_id: int, user: "User") -> "Epic":
    from app.ceklis.modules.epics.models import Epic

    epic = s.get(Epic, epic_id)
    if epic is None:
        raise NotFound("Epic not found")
    require_team_member(s, user, epic.team_id, "Access denied")
    return epic


def update_epic(s: "Session", epic_id: int, payload: dict, user: "User") -> "Epic":
    """
    Update an epic. Passing another teamId moves the epic (and its tasks) to that team,
    which must be in the same organization and have the user as a member.
    """
    epic = get_epic(s, epic_id, user)
    changes: dict = {}

    target_team_id = parse_id(payload.get("teamId"))
    if target_team_id and target_team_id != epic.team_id:
        try:
            destination = get_team(s, target_team_id)
        except NotFound:
            raise NotFound("Target team not found")
        if team_membership(s, user.id, destination.id) is None:
            raise Forbidden("Access denied for target team")
        if destination.organization_id != epic.organization_id:
            raise BadRequest("Epics can only be moved within the same organization")
        changes["team_id"] = {"old": epic.team_id, "new": destination.id}
        epic.team_id = destination.id
        epic.team = destination
        for task in epic.tasks:
            task.team_id = destination.id
            task.team = destination

    if "title" in payload:
        title = clean_str(payload.get("title"))
        if not title:
            raise BadRequest("Title is required")
        if title != epic.title:
            changes["title"] = {"old": epic.title, "new": title}
            epic.title = title
    if "description" in payload:
        epic.description = clean_str(payload.get("description"))
    if payload.get("status"):
        status = _validate_status(payload["status"])
        if status != epic.status:
            changes["status"] = {"old": epic.status, "new": status}
            epic.status = status
    if "dueDate" in payload:
        due = parse_date(payload.get("dueDate"))
        if due != epic.due_date:
            changes["due_date"] = {"old": isoformat(epic.due_date), "new": isoformat(due)}
            epic.due_date = due
    epic.updated_at = datetime.utcnow()

    record_event(
        s,
        actor=user,
        action="epic.edit",
        entity=epic,
        metadata={"title": epic.title, "changes": changes},
    )
    return epic


def delete_epic(s: "Session", epic_id: int, user: "User") -> None:
    """Delete an epic; epics that still own tasks are refused."""
    epic = get_epic(s, epic_id, user)
    if epic.tasks:
        raise BadRequest("Cannot delete epic with existing tasks. Please reassign or delete tasks first.")
    record_event(
        s,
        actor=user,
        action="epic.delete",
        entity=epic,
        metadata={"title": epic.title, "team_name": epic.team.name},
    )
    s.delete(epic)


def serialize_epic(epic: "Epic", include_tasks: bool = True) -> dict:
    from app.ceklis.modules.tasks.service import serialize_task

    data = {
        "id": epic.id,
        "title": epic.title,
        "description": epic.description,
        "status": epic.status,
        "dueDate": isoformat(epic.due_date),
        "teamId": epic.team_id,
        "organizationId": epic.organization_id,
        "createdAt": isoformat(epic.created_at),
        "updatedAt": isoformat(epic.updated_at),
        "team": {
            "id": epic.team.id,
            "name": epic.team.name,
            "organization": {"id": epic.team.organization.id, "name": epic.team.organization.name},
        },
        "createdBy": epic.created_by.to_public() if epic.created_by else None,
        "progress": {
            "completed": epic.completed_task_count,
            "total": len(epic.tasks),
            "percentage": epic.progress_percentage,
        },
        "isOverdue": epic.is_overdue,
        "_count": {"tasks": len(epic.tasks)},
    }
    if include_tasks:
        data["tasks"] = [serialize_task(t) for t in epic.tasks]
    return data
