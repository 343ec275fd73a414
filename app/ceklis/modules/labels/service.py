from __future__ import annotations

import re
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import func

from app.ceklis.audit import record_event
from app.ceklis.errors import BadRequest, Forbidden, NotFound
from app.ceklis.rbac import accessible_org_ids, is_org_manager, org_membership
from app.ceklis.utils import clean_str, parse_id

if TYPE_CHECKING:
    from sqlalchemy.orm import Session
    from app.ceklis.models import User
    from app.ceklis.modules.labels.models import Label

_HEX_COLOR = re.compile(r"^#(?:[0-9a-fA-F]{3}){1,2}$")


def list_labels(s: "Session", user: "User", organization_id=None, team_id=None) -> list["Label"]:
    """
    Labels of the user's organizations, ordered by name.
    organization_id narrows to one organization; otherwise team_id narrows to the team's organization.
    """
    from app.ceklis.modules.labels.models import Label
    from app.ceklis.modules.teams.models import Team

    org_ids = accessible_org_ids(s, user.id)
    if not org_ids:
        return []
    q = s.query(Label).filter(Label.organization_id.in_(org_ids))

    organization_id = parse_id(organization_id)
    team_id = parse_id(team_id)
    if organization_id:
        q = q.filter(Label.organization_id == organization_id)
    elif team_id:
        team = s.get(Team, team_id)
        if team is not None:
            q = q.filter(Label.organization_id == team.organization_id)

    return q.order_by(Label.name.asc()).all()


def task_counts(s: "Session", label_ids: list[int]) -> dict[int, int]:
    from app.ceklis.modules.labels.models import TaskLabel

    if not label_ids:
        return {}
    rows = (
        s.query(TaskLabel.label_id, func.count(TaskLabel.task_id))
        .filter(TaskLabel.label_id.in_(label_ids))
        .group_by(TaskLabel.label_id)
        .all()
    )
    return {label_id: count for label_id, count in rows}


def _name_taken(s: "Session", name: str, organization_id: int) -> bool:
    from app.ceklis.modules.labels.models import Label

    return s.query(Label.id).filter(Label.name == name, Label.organization_id == organization_id).first() is not None


def validate_color(color: str | None) -> str | None:
    """Accept #rgb / #rrggbb colors; anything else is rejected."""
    color = clean_str(color)
    if color and not _HEX_COLOR.match(color):
        raise BadRequest("Color must be a hex value like #3B82F6")
    return color


def create_label(s: "Session", payload: dict, user: "User") -> "Label":
    from app.ceklis.modules.labels.models import Label

    name = clean_str(payload.get("name"))
    color = validate_color(payload.get("color"))
    organization_id = parse_id(payload.get("organizationId"))
    if not name or not color or not organization_id:
        raise BadRequest("Name, color, and organization ID are required")
    if org_membership(s, user.id, organization_id) is None:
        raise Forbidden("Forbidden")
    if _name_taken(s, name, organization_id):
        raise BadRequest("Label name already exists in this organization")

    now = datetime.utcnow()
    label = Label(name=name, color=color, organization_id=organization_id, created_at=now, updated_at=now)
    s.add(label)
    s.flush()

    record_event(
        s,
        actor=user,
        action="label.create",
        entity=label,
        metadata={"name": name, "color": color, "organization_id": organization_id},
    )
    return label


def get_label(s: "Session", label_id: int, user: "User", manage: bool = False) -> "Label":
    """Fetch a label the user may see (manage=True: may edit/delete)."""
    from app.ceklis.modules.labels.models import Label

    label = s.get(Label, label_id)
    if label is None:
        raise NotFound("Label not found")
    if manage:
        allowed = is_org_manager(s, user.id, label.organization_id)
    else:
        allowed = org_membership(s, user.id, label.organization_id) is not None
    if not allowed:
        raise Forbidden("Forbidden")
    return label


def update_label(s: "Session", label_id: int, payload: dict, user: "User") -> "Label":
    label = get_label(s, label_id, user, manage=True)

    changes = {}
    name = clean_str(payload.get("name"))
    if name and name != label.name:
        if _name_taken(s, name, label.organization_id):
            raise BadRequest("Label name already exists in this organization")
        changes["name"] = {"old": label.name, "new": name}
        label.name = name
    color = validate_color(payload.get("color"))
    if color and color != label.color:
        changes["color"] = {"old": label.color, "new": color}
        label.color = color
    label.updated_at = datetime.utcnow()

    record_event(s, actor=user, action="label.edit", entity=label, metadata={"changes": changes})
    return label


def delete_label(s: "Session", label_id: int, user: "User") -> None:
    label = get_label(s, label_id, user, manage=True)
    record_event(
        s,
        actor=user,
        action="label.delete",
        entity=label,
        metadata={"name": label.name, "organization_id": label.organization_id},
    )
    s.delete(label)


def serialize_label(label: "Label", task_count: int | None = None) -> dict:
    if task_count is None:
        task_count = len(label.task_links)
    return {
        "id": label.id,
        "name": label.name,
        "color": label.color,
        "organizationId": label.organization_id,
        "_count": {"tasks": task_count},
    }
