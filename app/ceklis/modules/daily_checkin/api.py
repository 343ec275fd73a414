from __future__ import annotations

from flask import Blueprint, g, jsonify, request

from app.ceklis.db import db_session
from app.ceklis.modules.daily_checkin.service import create_checkin, list_checkins, serialize_checkin, update_checkin
from app.ceklis.rbac import api_login_required
from app.ceklis.utils import json_payload

bp = Blueprint("daily_checkin_api", __name__)


@bp.post("/daily-checkin")
@api_login_required
def checkin_create():
    s = db_session()
    checkin = create_checkin(s, json_payload(), g.current_user)
    s.commit()
    return jsonify(serialize_checkin(checkin)), 201


@bp.get("/daily-checkin")
@api_login_required
def checkin_list():
    s = db_session()
    checkins = list_checkins(
        s,
        g.current_user,
        team_id=request.args.get("teamId"),
        day=request.args.get("date"),
        user_id=request.args.get("userId"),
    )
    return jsonify([serialize_checkin(c) for c in checkins])


@bp.patch("/daily-checkin/<int:checkin_id>")
@api_login_required
def checkin_update(checkin_id: int):
    s = db_session()
    checkin = update_checkin(s, checkin_id, json_payload(), g.current_user)
    s.commit()
    return jsonify(serialize_checkin(checkin))
