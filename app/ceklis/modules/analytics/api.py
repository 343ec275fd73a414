from flask import Blueprint, g, jsonify, request

from app.ceklis.db import db_session
from app.ceklis.modules.analytics.service import analytics_for_user, parse_period
from app.ceklis.rbac import api_login_required

bp = Blueprint("analytics_api", __name__)


@bp.get("/analytics")
@api_login_required
def analytics():
    s = db_session()
    return jsonify(analytics_for_user(s, g.current_user, parse_period(request.args.get("period"))))
