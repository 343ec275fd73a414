from __future__ import annotations

from flask import Blueprint, g, jsonify, request

from app.ceklis.db import db_session
from app.ceklis.modules.epics.service import (
    create_epic,
    delete_epic,
    get_epic,
    list_epics,
    serialize_epic,
    update_epic,
)
from app.ceklis.rbac import api_login_required
from app.ceklis.utils import json_payload

bp = Blueprint("epics_api", __name__)


@bp.get("/epics")
@api_login_required
def epics_list():
    s = db_session()
    epics = list_epics(
        s,
        g.current_user,
        team_id=request.args.get("teamId"),
        organization_id=request.args.get("organizationId"),
    )
    return jsonify([serialize_epic(e) for e in epics])


@bp.post("/epics")
@api_login_required
def epics_create():
    s = db_session()
    epic = create_epic(s, json_payload(), g.current_user)
    s.commit()
    return jsonify(serialize_epic(epic)), 201


@bp.get("/epics/<int:epic_id>")
@api_login_required
def epic_detail(epic_id: int):
    s = db_session()
    return jsonify(serialize_epic(get_epic(s, epic_id, g.current_user)))


@bp.put("/epics/<int:epic_id>")
@api_login_required
def epic_update(epic_id: int):
    s = db_session()
    epic = update_epic(s, epic_id, json_payload(), g.current_user)
    s.commit()
    return jsonify(serialize_epic(epic))


@bp.delete("/epics/<int:epic_id>")
@api_login_required
def epic_delete(epic_id: int):
    s = db_session()
    delete_epic(s, epic_id, g.current_user)
    s.commit()
    return jsonify({"message": "Epic deleted successfully"})
