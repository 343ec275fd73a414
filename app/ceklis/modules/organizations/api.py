from __future__ import annotations

from flask import Blueprint, g, jsonify

from app.ceklis.db import db_session
from app.ceklis.modules.organizations.service import (
    create_organization,
    list_organizations,
    serialize_organization,
    update_organization,
)
from app.ceklis.rbac import api_login_required
from app.ceklis.utils import json_payload

bp = Blueprint("organizations_api", __name__)


@bp.get("/organizations")
@api_login_required
def organizations_list():
    s = db_session()
    orgs = list_organizations(s, g.current_user)
    return jsonify([serialize_organization(o) for o in orgs])


@bp.post("/organizations")
@api_login_required
def organizations_create():
    s = db_session()
    org = create_organization(s, json_payload(), g.current_user)
    s.commit()
    return jsonify(serialize_organization(org)), 201


@bp.put("/organizations/<int:org_id>")
@api_login_required
def organization_update(org_id: int):
    s = db_session()
    org = update_organization(s, org_id, json_payload(), g.current_user)
    s.commit()
    return jsonify(serialize_organization(org))
