from __future__ import annotations

from flask import Blueprint, g, jsonify, request

from app.ceklis.db import db_session
from app.ceklis.modules.labels.service import (
    create_label,
    delete_label,
    get_label,
    list_labels,
    serialize_label,
    task_counts,
    update_label,
)
from app.ceklis.rbac import api_login_required
from app.ceklis.utils import json_payload

bp = Blueprint("labels_api", __name__)


@bp.get("/labels")
@api_login_required
def labels_list():
    s = db_session()
    labels = list_labels(
        s,
        g.current_user,
        organization_id=request.args.get("organizationId"),
        team_id=request.args.get("teamId"),
    )
    counts = task_counts(s, [label.id for label in labels])
    return jsonify([serialize_label(label, counts.get(label.id, 0)) for label in labels])


@bp.post("/labels")
@api_login_required
def labels_create():
    s = db_session()
    label = create_label(s, json_payload(), g.current_user)
    s.commit()
    return jsonify(serialize_label(label, 0)), 201


@bp.get("/labels/<int:label_id>")
@api_login_required
def label_detail(label_id: int):
    s = db_session()
    label = get_label(s, label_id, g.current_user)
    data = serialize_label(label)
    data["organization"] = {"id": label.organization.id, "name": label.organization.name}
    return jsonify(data)


@bp.patch("/labels/<int:label_id>")
@api_login_required
def label_update(label_id: int):
    s = db_session()
    label = update_label(s, label_id, json_payload(), g.current_user)
    s.commit()
    return jsonify(serialize_label(label))


@bp.delete("/labels/<int:label_id>")
@api_login_required
def label_delete(label_id: int):
    s = db_session()
    delete_label(s, label_id, g.current_user)
    s.commit()
    return jsonify({"success": True})
