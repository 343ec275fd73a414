from __future__ import annotations

from datetime import date, datetime
from typing import TYPE_CHECKING

from sqlalchemy.exc import IntegrityError

from app.ceklis.audit import record_event
from app.ceklis.constants import CHECKIN_MOODS, DEFAULT_ENERGY_LEVEL, ENERGY_LABELS
from app.ceklis.errors import BadRequest, Conflict, Forbidden, NotFound
from app.ceklis.modules.teams.service import require_team_member
from app.ceklis.rbac import accessible_org_ids
from app.ceklis.utils import clean_str, isoformat, parse_date, parse_id

if TYPE_CHECKING:
    from sqlalchemy.orm import Session
    from app.ceklis.models import User
    from app.ceklis.modules.daily_checkin.models import DailyCheckin

NOT_PROVIDED = "Not provided"


def _validate_mood(mood) -> str:
    if mood not in CHECKIN_MOODS:
        raise BadRequest(f"Invalid mood. Must be one of: {', '.join(CHECKIN_MOODS)}")
    return mood


def _validate_energy(value) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise BadRequest("Energy level must be a number between 1 and 5")
    if value not in ENERGY_LABELS:
        raise BadRequest("Energy level must be a number between 1 and 5")
    return value


def _checkin_day(raw) -> date:
    if raw in (None, ""):
        return date.today()
    day = parse_date(raw)
    if day is None:
        raise BadRequest("Invalid date")
    return day


def create_checkin(s: "Session", payload: dict, user: "User") -> "DailyCheckin":
    """One check-in per user, team and day; the day defaults to today."""
    from app.ceklis.modules.daily_checkin.models import DailyCheckin

    team_id = parse_id(payload.get("teamId"))
    today_goals = clean_str(payload.get("todayGoals"))
    mood = payload.get("mood")
    if not team_id or not today_goals or not mood:
        raise BadRequest("Missing required fields")
    mood = _validate_mood(mood)
    energy = payload.get("energyLevel")
    energy = DEFAULT_ENERGY_LEVEL if energy is None else _validate_energy(energy)

    require_team_member(s, user, team_id, "User is not a member of this team")
    day = _checkin_day(payload.get("date"))

    existing = (
        s.query(DailyCheckin.id)
        .filter(DailyCheckin.user_id == user.id, DailyCheckin.team_id == team_id, DailyCheckin.date == day)
        .first()
    )
    if existing is not None:
        raise Conflict("Check-in already submitted for this date")

    now = datetime.utcnow()
    checkin = DailyCheckin(
        user_id=user.id,
        team_id=team_id,
        date=day,
        yesterday_accomplishments=clean_str(payload.get("yesterdayAccomplishments")) or NOT_PROVIDED,
        today_goals=today_goals,
        blockers=clean_str(payload.get("blockers")),
        mood=mood,
        energy_level=energy,
        notes=clean_str(payload.get("notes")),
        created_at=now,
        updated_at=now,
    )
    s.add(checkin)
    try:
        s.flush()
    except IntegrityError:
        # Lost a race with a concurrent submit for the same day.
        s.rollback()
        raise Conflict("Check-in already submitted for this date")

    record_event(
        s,
        actor=user,
        action="checkin.create",
        entity=checkin,
        metadata={"team_id": team_id, "date": day.isoformat(), "mood": mood},
    )
    return checkin


def list_checkins(s: "Session", user: "User", team_id=None, day=None, user_id=None) -> list["DailyCheckin"]:
    """Check-ins for teams in the user's organizations, newest first."""
    from app.ceklis.modules.daily_checkin.models import DailyCheckin
    from app.ceklis.modules.teams.models import Team

    org_ids = accessible_org_ids(s, user.id)
    if not org_ids:
        return []
    q = s.query(DailyCheckin).join(Team, Team.id == DailyCheckin.team_id).filter(Team.organization_id.in_(org_ids))

    if team_id not in (None, ""):
        team = s.get(Team, parse_id(team_id)) if parse_id(team_id) else None
        if team is None or team.organization_id not in org_ids:
            raise Forbidden("Forbidden")
        q = q.filter(DailyCheckin.team_id == team.id)
    if day:
        parsed = parse_date(day)
        if parsed is None:
            raise BadRequest("Invalid date")
        q = q.filter(DailyCheckin.date == parsed)
    uid = parse_id(user_id)
    if uid:
        q = q.filter(DailyCheckin.user_id == uid)

    return q.order_by(DailyCheckin.date.desc(), DailyCheckin.created_at.desc(), DailyCheckin.id.desc()).all()


def update_checkin(s: "Session", checkin_id: int, payload: dict, user: "User") -> "DailyCheckin":
    """Only the author may edit; absent fields are left untouched."""
    from app.ceklis.modules.daily_checkin.models import DailyCheckin

    checkin = s.get(DailyCheckin, checkin_id)
    if checkin is None:
        raise NotFound("Daily check-in not found")
    if checkin.user_id != user.id:
        raise Forbidden("Forbidden")

    if payload.get("todayGoals") is not None:
        goals = clean_str(payload["todayGoals"])
        if not goals:
            raise BadRequest("Today's goals are required")
        checkin.today_goals = goals
    if payload.get("blockers") is not None:
        checkin.blockers = clean_str(payload["blockers"])
    if payload.get("mood") is not None:
        checkin.mood = _validate_mood(payload["mood"])
    if isinstance(payload.get("energyLevel"), int):
        checkin.energy_level = _validate_energy(payload["energyLevel"])
    if payload.get("notes") is not None:
        checkin.notes = clean_str(payload["notes"])
    checkin.updated_at = datetime.utcnow()

    record_event(s, actor=user, action="checkin.edit", entity=checkin)
    return checkin


def serialize_checkin(c: "DailyCheckin") -> dict:
    return {
        "id": c.id,
        "userId": c.user_id,
        "teamId": c.team_id,
        "date": isoformat(c.date),
        "yesterdayAccomplishments": c.yesterday_accomplishments,
        "todayGoals": c.today_goals,
        "blockers": c.blockers,
        "mood": c.mood,
        "energyLevel": c.energy_level,
        "energyLabel": ENERGY_LABELS.get(c.energy_level),
        "notes": c.notes,
        "createdAt": isoformat(c.created_at),
        "updatedAt": isoformat(c.updated_at),
        "user": c.user.to_public(),
        "team": {"id": c.team.id, "name": c.team.name, "organizationId": c.team.organization_id},
    }
