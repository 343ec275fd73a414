from __future__ import annotations

from flask import Blueprint, g, jsonify

from app.ceklis.db import db_session
from app.ceklis.modules.teams.service import (
    create_team,
    delete_team,
    invite_member,
    list_members,
    list_teams,
    remove_member,
    serialize_member,
    serialize_team,
    update_team,
)
from app.ceklis.rbac import api_login_required
from app.ceklis.utils import json_payload

bp = Blueprint("teams_api", __name__)


@bp.get("/teams")
@api_login_required
def teams_list():
    s = db_session()
    return jsonify([serialize_team(t) for t in list_teams(s, g.current_user)])


@bp.post("/teams")
@api_login_required
def teams_create():
    s = db_session()
    team = create_team(s, json_payload(), g.current_user)
    s.commit()
    return jsonify(serialize_team(team)), 201


@bp.put("/teams/<int:team_id>")
@api_login_required
def team_update(team_id: int):
    s = db_session()
    team = update_team(s, team_id, json_payload(), g.current_user)
    s.commit()
    return jsonify(serialize_team(team))


@bp.delete("/teams/<int:team_id>")
@api_login_required
def team_delete(team_id: int):
    s = db_session()
    delete_team(s, team_id, g.current_user)
    s.commit()
    return jsonify({"success": True})


# ---------- Members ----------
@bp.get("/teams/<int:team_id>/members")
@api_login_required
def team_members(team_id: int):
    s = db_session()
    members = list_members(s, team_id, g.current_user)
    return jsonify([m.user.to_public() for m in members])


@bp.post("/teams/<int:team_id>/members")
@api_login_required
def team_member_invite(team_id: int):
    s = db_session()
    member = invite_member(s, team_id, json_payload(), g.current_user)
    s.commit()
    return jsonify(serialize_member(member)), 201


@bp.delete("/teams/<int:team_id>/members")
@api_login_required
def team_member_remove(team_id: int):
    s = db_session()
    remove_member(s, team_id, json_payload().get("memberId"), g.current_user)
    s.commit()
    return jsonify({"success": True})
