from __future__ import annotations

from collections.abc import Callable
from functools import wraps
from typing import Any

from flask import g, jsonify, redirect, url_for
from sqlalchemy.orm import Session

from app.ceklis.constants import ORG_MANAGER_ROLES
from app.ceklis.models import User
from app.ceklis.modules.organizations.models import OrganizationMember
from app.ceklis.modules.teams.models import Team, TeamMember


def _active_user() -> User | None:
    user: User | None = getattr(g, "current_user", None)
    if not user or not user.is_active:
        return None
    return user


def login_required(fn: Callable[..., Any]) -> Callable[..., Any]:
    """Page guard: no session sends the browser back to the landing page."""

    @wraps(fn)
    def wrapped(*args: Any, **kwargs: Any):
        if _active_user() is None:
            return redirect(url_for("routes.index"))
        return fn(*args, **kwargs)

    return wrapped


def api_login_required(fn: Callable[..., Any]) -> Callable[..., Any]:
    """API guard: no session is a 401 JSON error."""

    @wraps(fn)
    def wrapped(*args: Any, **kwargs: Any):
        if _active_user() is None:
            return jsonify({"error": "Unauthorized"}), 401
        return fn(*args, **kwargs)

    return wrapped


def org_membership(s: Session, user_id: int, organization_id: int) -> OrganizationMember | None:
    return (
        s.query(OrganizationMember)
        .filter(OrganizationMember.user_id == user_id, OrganizationMember.organization_id == organization_id)
        .one_or_none()
    )


def team_membership(s: Session, user_id: int, team_id: int) -> TeamMember | None:
    return (
        s.query(TeamMember)
        .filter(TeamMember.user_id == user_id, TeamMember.team_id == team_id)
        .one_or_none()
    )


def is_org_manager(s: Session, user_id: int, organization_id: int) -> bool:
    m = org_membership(s, user_id, organization_id)
    return bool(m and m.role in ORG_MANAGER_ROLES)


def can_manage_team(s: Session, user_id: int, team: Team) -> bool:
    """Team leads and organization owners/admins may manage a team."""
    m = team_membership(s, user_id, team.id)
    if m and m.role == "LEAD":
        return True
    return is_org_manager(s, user_id, team.organization_id)


def accessible_org_ids(s: Session, user_id: int) -> list[int]:
    rows = s.query(OrganizationMember.organization_id).filter(OrganizationMember.user_id == user_id).all()
    return [r[0] for r in rows]


def member_team_ids(s: Session, user_id: int) -> list[int]:
    rows = s.query(TeamMember.team_id).filter(TeamMember.user_id == user_id).all()
    return [r[0] for r in rows]
