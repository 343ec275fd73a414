from __future__ import annotations

from flask import Blueprint, g, jsonify, request

from app.ceklis.db import db_session
from app.ceklis.modules.tasks.service import (
    add_labels,
    clear_labels,
    create_task,
    delete_task,
    get_task,
    list_tasks,
    serialize_task,
    update_task,
)
from app.ceklis.rbac import api_login_required
from app.ceklis.utils import json_payload

bp = Blueprint("tasks_api", __name__)


@bp.get("/tasks")
@api_login_required
def tasks_list():
    s = db_session()
    tasks = list_tasks(s, g.current_user, team_ids=request.args.getlist("teamId"))
    return jsonify([serialize_task(t) for t in tasks])


@bp.post("/tasks")
@api_login_required
def tasks_create():
    s = db_session()
    task = create_task(s, json_payload(), g.current_user)
    s.commit()
    return jsonify(serialize_task(task)), 201


@bp.get("/tasks/<int:task_id>")
@api_login_required
def task_detail(task_id: int):
    s = db_session()
    return jsonify(serialize_task(get_task(s, task_id, g.current_user)))


@bp.patch("/tasks/<int:task_id>")
@api_login_required
def task_update(task_id: int):
    s = db_session()
    task = update_task(s, task_id, json_payload(), g.current_user)
    s.commit()
    return jsonify(serialize_task(task))


@bp.delete("/tasks/<int:task_id>")
@api_login_required
def task_delete(task_id: int):
    s = db_session()
    delete_task(s, task_id, g.current_user)
    s.commit()
    return jsonify({"success": True})


@bp.post("/tasks/<int:task_id>/labels")
@api_login_required
def task_labels_add(task_id: int):
    s = db_session()
    add_labels(s, task_id, json_payload().get("labelIds"), g.current_user)
    s.commit()
    return jsonify({"success": True})


@bp.delete("/tasks/<int:task_id>/labels")
@api_login_required
def task_labels_clear(task_id: int):
    s = db_session()
    clear_labels(s, task_id, g.current_user)
    s.commit()
    return jsonify({"success": True})
