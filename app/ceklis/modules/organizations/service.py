from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

from app.ceklis.audit import record_event
from app.ceklis.errors import BadRequest, Forbidden, NotFound
from app.ceklis.rbac import is_org_manager
from app.ceklis.utils import clean_str, isoformat

if TYPE_CHECKING:
    from sqlalchemy.orm import Session
    from app.ceklis.models import User
    from app.ceklis.modules.organizations.models import Organization


def list_organizations(s: "Session", user: "User") -> list["Organization"]:
    from app.ceklis.modules.organizations.models import Organization, OrganizationMember

    return (
        s.query(Organization)
        .join(OrganizationMember, OrganizationMember.organization_id == Organization.id)
        .filter(OrganizationMember.user_id == user.id)
        .order_by(Organization.created_at.asc())
        .all()
    )


def create_organization(s: "Session", payload: dict, user: "User") -> "Organization":
    """Create an organization; the creator becomes its OWNER."""
    from app.ceklis.modules.organizations.models import Organization, OrganizationMember

    name = clean_str(payload.get("name"))
    if not name:
        raise BadRequest("Name is required")

    now = datetime.utcnow()
    org = Organization(name=name, description=clean_str(payload.get("description")), created_at=now, updated_at=now)
    org.members.append(OrganizationMember(user_id=user.id, role="OWNER"))
    s.add(org)
    s.flush()

    record_event(s, actor=user, action="organization.create", entity=org, metadata={"name": name})
    return org


def update_organization(s: "Session", org_id: int, payload: dict, user: "User") -> "Organization":
    from app.ceklis.modules.organizations.models import Organization

    name = clean_str(payload.get("name"))
    if not name:
        raise BadRequest("Name is required")
    if not is_org_manager(s, user.id, org_id):
        raise Forbidden("Only organization owners and admins can edit organizations")
    org = s.get(Organization, org_id)
    if org is None:
        raise NotFound("Organization not found")

    changes = {}
    if name != org.name:
        changes["name"] = {"old": org.name, "new": name}
        org.name = name
    description = clean_str(payload.get("description"))
    if description != org.description:
        changes["description"] = {"old": org.description, "new": description}
        org.description = description
    org.updated_at = datetime.utcnow()

    record_event(s, actor=user, action="organization.edit", entity=org, metadata={"changes": changes})
    return org


def serialize_organization(org: "Organization") -> dict:
    return {
        "id": org.id,
        "name": org.name,
        "description": org.description,
        "createdAt": isoformat(org.created_at),
        "members": [
            {"id": m.id, "role": m.role, "userId": m.user_id, "user": m.user.to_public()}
            for m in org.members
        ],
        "teams": [{"id": t.id, "name": t.name} for t in org.teams],
        "_count": {"teams": len(org.teams), "epics": sum(len(t.epics) for t in org.teams)},
    }
