"""
Authenticated dashboard pages.

Each page checks the session (``login_required`` redirects to ``/``) and
renders the shared dashboard layout around a feature panel.
"""
from __future__ import annotations

from datetime import date

from flask import Blueprint, flash, g, redirect, render_template, request, url_for

from app.ceklis.constants import CHECKIN_MOODS, DEFAULT_ENERGY_LEVEL, ENERGY_LABELS, EPIC_STATUSES
from app.ceklis.db import db_session
from app.ceklis.errors import ServiceError
from app.ceklis.modules.analytics.service import analytics_for_user, parse_period
from app.ceklis.modules.daily_checkin.service import create_checkin, list_checkins
from app.ceklis.modules.epics.service import list_epics
from app.ceklis.modules.labels.service import list_labels, task_counts
from app.ceklis.modules.organizations.service import list_organizations
from app.ceklis.modules.teams.service import list_teams
from app.ceklis.rbac import can_manage_team, login_required
from app.ceklis.utils import parse_date, parse_id

bp = Blueprint("dashboard", __name__)

NAVIGATION = (
    ("Dashboard", "dashboard.index"),
    ("Daily Check-in", "dashboard.daily_checkin"),
    ("Teams", "dashboard.teams"),
    ("Labels", "dashboard.labels"),
    ("Epics", "dashboard.epics"),
)


@bp.app_context_processor
def _inject_navigation() -> dict:
    return {"navigation": NAVIGATION}


@bp.get("/dashboard")
@login_required
def index():
    s = db_session()
    period = parse_period(request.args.get("period"))
    return render_template(
        "dashboard/index.html",
        analytics=analytics_for_user(s, g.current_user, period),
        period=period,
    )


@bp.get("/dashboard/teams")
@login_required
def teams():
    s = db_session()
    user = g.current_user
    teams = list_teams(s, user)
    return render_template(
        "dashboard/teams.html",
        teams=teams,
        manageable={t.id for t in teams if can_manage_team(s, user.id, t)},
        organizations=list_organizations(s, user),
    )


@bp.get("/dashboard/labels")
@login_required
def labels():
    s = db_session()
    user = g.current_user
    organizations = list_organizations(s, user)
    selected_org_id = parse_id(request.args.get("organizationId"))
    if selected_org_id is None and organizations:
        selected_org_id = organizations[0].id
    labels = list_labels(s, user, organization_id=selected_org_id) if selected_org_id else []
    return render_template(
        "dashboard/labels.html",
        organizations=organizations,
        selected_org_id=selected_org_id,
        labels=labels,
        counts=task_counts(s, [label.id for label in labels]),
    )


@bp.get("/dashboard/daily-checkin")
@login_required
def daily_checkin():
    s = db_session()
    user = g.current_user
    selected_day = parse_date(request.args.get("date")) or date.today()
    teams = list_teams(s, user)
    checkins = list_checkins(s, user, day=selected_day.isoformat())
    return render_template(
        "dashboard/daily_checkin.html",
        teams=teams,
        selected_day=selected_day,
        checkins=checkins,
        submitted_team_ids={c.team_id for c in checkins if c.user_id == user.id},
        moods=CHECKIN_MOODS,
        energy_labels=ENERGY_LABELS,
        default_energy=DEFAULT_ENERGY_LEVEL,
    )


@bp.post("/dashboard/daily-checkin")
@login_required
def daily_checkin_submit():
    """Submit today's check-in from the page form."""
    s = db_session()
    form = request.form
    energy = (form.get("energyLevel") or "").strip()
    payload = {
        "teamId": form.get("teamId"),
        "date": form.get("date"),
        "yesterdayAccomplishments": form.get("yesterdayAccomplishments"),
        "todayGoals": form.get("todayGoals"),
        "blockers": form.get("blockers"),
        "mood": form.get("mood"),
        "energyLevel": int(energy) if energy.isdigit() else (energy or None),
        "notes": form.get("notes"),
    }
    try:
        checkin = create_checkin(s, payload, g.current_user)
    except ServiceError as e:
        s.rollback()
        flash(e.message, "danger")
        return redirect(url_for("dashboard.daily_checkin", date=form.get("date") or None))
    s.commit()
    flash("Check-in submitted.", "success")
    return redirect(url_for("dashboard.daily_checkin", date=checkin.date.isoformat()))


@bp.get("/epics")
@login_required
def epics():
    s = db_session()
    user = g.current_user
    status_filter = (request.args.get("status") or "").strip()
    epics = list_epics(s, user, team_id=request.args.get("teamId"))
    if status_filter in EPIC_STATUSES:
        epics = [e for e in epics if e.status == status_filter]
    return render_template(
        "dashboard/epics.html",
        epics=epics,
        teams=list_teams(s, user),
        statuses=EPIC_STATUSES,
        status_filter=status_filter,
    )
