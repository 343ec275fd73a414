from flask import Blueprint, g, redirect, render_template, url_for

bp = Blueprint("routes", __name__)


@bp.get("/")
def index():
    """Public landing page; signed-in users go straight to the dashboard."""
    if g.get("current_user") is not None:
        return redirect(url_for("dashboard.index"))
    return render_template("public/index.html")


@bp.get("/health")
def health():
    return {"ok": True}


@bp.get("/healthz")
def healthz():
    # Liveness probe target: no session, no DB.
    return "ok", 200
