from __future__ import annotations

import secrets
import uuid
from urllib.parse import urlencode

import jwt
import requests
from flask import Blueprint, current_app, g, jsonify, make_response, redirect, request, session, url_for
from sqlalchemy.exc import SQLAlchemyError

from app.ceklis.audit import record_event
from app.ceklis.constants import ANONYMOUS_PATH_PREFIXES
from app.ceklis.db import db_session
from app.ceklis.models import User
from app.ceklis.security import safe_next_path

bp = Blueprint("auth", __name__)

GOOGLE_AUTH_URL = "https://accounts.google.com/o/oauth2/v2/auth"
GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"
_STATE_COOKIE = "oauth_state"
_STATE_MAX_AGE = 300  # seconds


def _session_user() -> User | None:
    try:
        user_id = int(session.get("user_id") or 0)
    except (TypeError, ValueError):
        user_id = 0
    if not user_id:
        return None
    try:
        user = db_session().get(User, user_id)
    except SQLAlchemyError as e:
        current_app.logger.error("Session user lookup failed (signing out) request_id=%s: %s", g.request_id, e)
        user = None
    return user if user is not None and user.is_active else None


def load_current_user() -> None:
    """
    before_request hook: tag the request with an id for audit/log correlation
    and resolve ``g.current_user`` from the signed session cookie.
    A session pointing at a missing or deactivated user is cleared.
    """
    g.request_id = getattr(g, "request_id", None) or uuid.uuid4().hex
    g.current_user = None
    if request.path.startswith(ANONYMOUS_PATH_PREFIXES) or "user_id" not in session:
        return
    g.current_user = _session_user()
    if g.current_user is None:
        session.pop("user_id", None)


def _redirect_uri() -> str:
    return f"{current_app.config['BASE_URL']}/auth/google/callback"


def exchange_code(code: str) -> dict:
    """Trade an authorization code for Google's token response."""
    try:
        res = requests.post(
            GOOGLE_TOKEN_URL,
            data={
                "code": code,
                "client_id": current_app.config["GOOGLE_CLIENT_ID"],
                "client_secret": current_app.config["GOOGLE_CLIENT_SECRET"],
                "redirect_uri": _redirect_uri(),
                "grant_type": "authorization_code",
            },
            timeout=10,
        )
    except requests.RequestException as e:
        current_app.logger.warning("Google token exchange request failed: %s", e)
        return {}
    if res.status_code != 200:
        current_app.logger.warning("Google token exchange failed: status=%s", res.status_code)
        return {}
    try:
        body = res.json()
    except ValueError:
        current_app.logger.warning("Google token exchange returned a non-JSON body")
        return {}
    return body if isinstance(body, dict) else {}


def upsert_google_user(s, claims: dict) -> User | None:
    """Find the user by Google subject (falling back to email) and refresh the profile."""
    google_sub = claims.get("sub")
    email = (claims.get("email") or "").strip().lower()
    if not google_sub or not email:
        return None

    user = s.query(User).filter(User.google_sub == google_sub).one_or_none()
    if user is None:
        user = s.query(User).filter(User.email == email).one_or_none()
    if user is None:
        user = User(google_sub=google_sub, email=email, is_active=True)
        s.add(user)
    user.google_sub = google_sub
    user.email = email
    user.name = claims.get("name") or user.name
    if claims.get("picture"):
        user.image = claims["picture"]
    s.flush()
    return user


@bp.get("/google/start")
def google_start():
    client_id = current_app.config.get("GOOGLE_CLIENT_ID")
    if not client_id:
        return jsonify({"error": "google_oauth_not_configured"}), 500
    state = secrets.token_urlsafe(16)
    session["login_next"] = safe_next_path(request.args.get("next"), "/dashboard")
    query = urlencode(
        {
            "response_type": "code",
            "client_id": client_id,
            "redirect_uri": _redirect_uri(),
            "scope": "openid email profile",
            "state": state,
            "prompt": "select_account",
        }
    )
    resp = make_response(redirect(f"{GOOGLE_AUTH_URL}?{query}"))
    resp.set_cookie(_STATE_COOKIE, state, max_age=_STATE_MAX_AGE, httponly=True, samesite="Lax")
    return resp


@bp.get("/google/callback")
def google_callback():
    state_cookie = request.cookies.get(_STATE_COOKIE)
    state = request.args.get("state")
    if not state_cookie or state_cookie != state:
        return jsonify({"error": "invalid_state"}), 400
    code = request.args.get("code")
    if not code:
        return jsonify({"error": "missing_code"}), 400

    tokens = exchange_code(code)
    id_token = tokens.get("id_token")
    if not id_token:
        return jsonify({"error": "token_exchange_failed"}), 400
    try:
        # The token comes straight from Google's token endpoint over TLS.
        claims = jwt.decode(id_token, options={"verify_signature": False, "verify_aud": False})
    except jwt.PyJWTError:
        return jsonify({"error": "invalid_id_token"}), 400

    s = db_session()
    user = upsert_google_user(s, claims)
    if user is None or not user.is_active:
        return jsonify({"error": "invalid_profile"}), 400

    session["user_id"] = user.id
    session.permanent = True
    record_event(s, actor=user, action="auth.login", entity=user, metadata={"provider": "google"})
    s.commit()
    current_app.logger.info("User signed in user_id=%s request_id=%s", user.id, getattr(g, "request_id", None))

    nxt = safe_next_path(session.pop("login_next", None), "/dashboard")
    resp = make_response(redirect(nxt))
    resp.delete_cookie(_STATE_COOKIE)
    return resp


@bp.get("/logout")
def logout():
    user = getattr(g, "current_user", None)
    if user:
        s = db_session()
        record_event(s, actor=user, action="auth.logout", entity=user)
        s.commit()
    session.pop("user_id", None)
    return redirect(url_for("routes.index"))
