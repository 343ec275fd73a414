from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

from app.ceklis.audit import record_event
from app.ceklis.constants import TEAM_ROLES
from app.ceklis.errors import BadRequest, Forbidden, NotFound
from app.ceklis.rbac import can_manage_team, is_org_manager, org_membership, team_membership
from app.ceklis.utils import clean_str, isoformat, parse_id

if TYPE_CHECKING:
    from sqlalchemy.orm import Session
    from app.ceklis.models import User
    from app.ceklis.modules.teams.models import Team, TeamMember


def list_teams(s: "Session", user: "User") -> list["Team"]:
    """Teams the user is a member of, oldest first."""
    from app.ceklis.modules.teams.models import Team, TeamMember

    return (
        s.query(Team)
        .join(TeamMember, TeamMember.team_id == Team.id)
        .filter(TeamMember.user_id == user.id)
        .order_by(Team.created_at.asc(), Team.id.asc())
        .all()
    )


def get_team(s: "Session", team_id: int) -> "Team":
    from app.ceklis.modules.teams.models import Team

    team = s.get(Team, team_id)
    if team is None:
        raise NotFound("Team not found")
    return team


def require_team_member(s: "Session", user: "User", team_id: int, message: str = "Forbidden") -> "TeamMember":
    m = team_membership(s, user.id, team_id)
    if m is None:
        raise Forbidden(message)
    return m


def create_team(s: "Session", payload: dict, user: "User") -> "Team":
    """Create a team inside an organization; the creator becomes LEAD."""
    from app.ceklis.modules.teams.models import Team, TeamMember

    name = clean_str(payload.get("name"))
    if not name:
        raise BadRequest("Team name is required")
    organization_id = parse_id(payload.get("organizationId"))
    if not organization_id:
        raise BadRequest("Organization is required")
    if not is_org_manager(s, user.id, organization_id):
        raise Forbidden("Only organization owners and admins can create teams")

    now = datetime.utcnow()
    team = Team(
        name=name,
        description=clean_str(payload.get("description")),
        organization_id=organization_id,
        created_at=now,
        updated_at=now,
    )
    team.members.append(TeamMember(user_id=user.id, role="LEAD"))
    s.add(team)
    s.flush()

    record_event(
        s,
        actor=user,
        action="team.create",
        entity=team,
        metadata={"name": team.name, "organization_id": organization_id},
    )
    return team


def update_team(s: "Session", team_id: int, payload: dict, user: "User") -> "Team":
    name = clean_str(payload.get("name"))
    if not name:
        raise BadRequest("Name is required")
    team = get_team(s, team_id)
    if not can_manage_team(s, user.id, team):
        raise Forbidden("Forbidden: You do not have permission to update this team")

    changes = {}
    if name != team.name:
        changes["name"] = {"old": team.name, "new": name}
        team.name = name
    description = clean_str(payload.get("description"))
    if description != team.description:
        changes["description"] = {"old": team.description, "new": description}
        team.description = description
    team.updated_at = datetime.utcnow()

    record_event(s, actor=user, action="team.edit", entity=team, metadata={"changes": changes})
    return team


def delete_team(s: "Session", team_id: int, user: "User") -> None:
    """Delete a team together with its members, tasks, epics and check-ins."""
    team = get_team(s, team_id)
    if not can_manage_team(s, user.id, team):
        raise Forbidden("Forbidden: You do not have permission to delete this team")

    record_event(
        s,
        actor=user,
        action="team.delete",
        entity=team,
        metadata={"name": team.name, "organization_id": team.organization_id},
    )
    s.delete(team)


def list_members(s: "Session", team_id: int, user: "User") -> list["TeamMember"]:
    require_team_member(s, user, team_id)
    return get_team(s, team_id).members


def invite_member(s: "Session", team_id: int, payload: dict, user: "User") -> "TeamMember":
    """
    Add an existing user to the team by email.
    The invitee also joins the team's organization as MEMBER when needed.
    """
    from app.ceklis.models import User as UserModel
    from app.ceklis.modules.organizations.models import OrganizationMember
    from app.ceklis.modules.teams.models import TeamMember

    email = (clean_str(payload.get("email")) or "").lower()
    if not email:
        raise BadRequest("Email is required")
    role = payload.get("role")
    if role not in TEAM_ROLES:
        raise BadRequest("Invalid role")

    team = get_team(s, team_id)
    if not can_manage_team(s, user.id, team):
        raise Forbidden("Forbidden: You do not have permission to invite members to this team")

    invitee = s.query(UserModel).filter(UserModel.email == email).one_or_none()
    if invitee is None:
        raise NotFound("User with this email does not exist")
    if team_membership(s, invitee.id, team.id) is not None:
        raise BadRequest("User is already a member of this team")

    if org_membership(s, invitee.id, team.organization_id) is None:
        s.add(OrganizationMember(user_id=invitee.id, organization_id=team.organization_id, role="MEMBER"))

    member = TeamMember(user_id=invitee.id, team_id=team.id, role=role)
    s.add(member)
    s.flush()
    s.refresh(member)

    record_event(
        s,
        actor=user,
        action="team.member_add",
        entity=member,
        metadata={"team_id": team.id, "email": email, "role": role},
    )
    return member


def remove_member(s: "Session", team_id: int, member_id, user: "User") -> None:
    """Remove a membership; the last LEAD of a team cannot be removed."""
    from app.ceklis.modules.teams.models import TeamMember

    member_id = parse_id(member_id)
    if not member_id:
        raise BadRequest("Member ID is required")

    team = get_team(s, team_id)
    if not can_manage_team(s, user.id, team):
        raise Forbidden("Forbidden: You do not have permission to manage members")

    member = s.get(TeamMember, member_id)
    if member is None or member.team_id != team.id:
        raise NotFound("Team member not found")

    if member.role == "LEAD":
        lead_count = s.query(TeamMember).filter(TeamMember.team_id == team.id, TeamMember.role == "LEAD").count()
        if lead_count <= 1:
            raise BadRequest("Cannot remove the last team lead")

    record_event(
        s,
        actor=user,
        action="team.member_remove",
        entity=member,
        metadata={"team_id": team.id, "user_id": member.user_id, "role": member.role},
    )
    s.delete(member)


def serialize_member(m: "TeamMember") -> dict:
    return {"id": m.id, "role": m.role, "userId": m.user_id, "teamId": m.team_id, "user": m.user.to_public()}


def serialize_team(team: "Team") -> dict:
    return {
        "id": team.id,
        "name": team.name,
        "description": team.description,
        "organizationId": team.organization_id,
        "createdAt": isoformat(team.created_at),
        "organization": {"id": team.organization.id, "name": team.organization.name},
        "members": [serialize_member(m) for m in team.members],
        "_count": {"tasks": len(team.tasks), "epics": len(team.epics)},
    }
