"""
Remote image allowlist and the avatar proxy.

Only images matching ``REMOTE_IMAGE_PATTERNS`` may be loaded into pages,
either directly (``<img src>``) or through ``/api/proxy/image``.
"""
from __future__ import annotations

import logging
import re
from collections.abc import Iterable, Mapping
from functools import lru_cache
from urllib.parse import urlsplit

import requests
from flask import Blueprint, Response, current_app, jsonify, request, url_for

from app.ceklis.constants import REMOTE_IMAGE_PATTERNS

logger = logging.getLogger(__name__)

bp = Blueprint("images", __name__)

PROXY_USER_AGENT = "Mozilla/5.0 (compatible; Ceklis/1.0)"
PROXY_TIMEOUT_SECONDS = 10
PROXY_CACHE_SECONDS = 86400


@lru_cache(maxsize=64)
def _glob_to_regex(glob: str) -> re.Pattern[str]:
    # "**" spans path segments, "*" stays within one.
    out = []
    i = 0
    while i < len(glob):
        if glob.startswith("**", i):
            out.append(".*")
            i += 2
        elif glob[i] == "*":
            out.append("[^/]*")
            i += 1
        else:
            out.append(re.escape(glob[i]))
            i += 1
    return re.compile("".join(out) + r"\Z")


def _matches(pattern: Mapping[str, str], url: str) -> bool:
    try:
        parts = urlsplit(url)
        port = parts.port
    except ValueError:
        return False
    if not parts.hostname:
        return False
    protocol = pattern.get("protocol") or ""
    if protocol and parts.scheme != protocol:
        return False
    if not _glob_to_regex(pattern["hostname"].lower()).match(parts.hostname.lower()):
        return False
    expected_port = pattern.get("port") or ""
    if (str(port) if port is not None else "") != expected_port:
        return False
    return bool(_glob_to_regex(pattern.get("pathname") or "/**").match(parts.path or "/"))


def is_allowed_image_url(url: str | None, patterns: Iterable[Mapping[str, str]] = REMOTE_IMAGE_PATTERNS) -> bool:
    if not url:
        return False
    return any(_matches(p, url) for p in patterns)


def avatar_src(url: str | None) -> str | None:
    """Template helper: proxied avatar URL, or None when the host is not allowed."""
    if not is_allowed_image_url(url):
        return None
    return url_for("images.proxy_image", url=url)


@bp.get("/api/proxy/image")
def proxy_image():
    image_url = (request.args.get("url") or "").strip()
    if not image_url:
        return jsonify({"error": "URL parameter is required"}), 400
    if not is_allowed_image_url(image_url):
        return jsonify({"error": "Only Google image URLs are allowed"}), 400

    try:
        upstream = requests.get(
            image_url,
            headers={"User-Agent": PROXY_USER_AGENT},
            timeout=PROXY_TIMEOUT_SECONDS,
            allow_redirects=False,
        )
    except requests.RequestException as e:
        current_app.logger.warning("Image proxy fetch failed url=%s: %s", image_url, e)
        return jsonify({"error": "Failed to fetch image"}), 502

    if 300 <= upstream.status_code < 400:
        # A redirect target is not checked against the allowlist.
        logger.warning("Image proxy refused upstream redirect status=%s url=%s", upstream.status_code, image_url)
        return jsonify({"error": "Failed to fetch image"}), 502

    if not upstream.ok:
        logger.info("Image proxy upstream status=%s url=%s", upstream.status_code, image_url)
        return jsonify({"error": "Failed to fetch image"}), upstream.status_code

    return Response(
        upstream.content,
        status=200,
        headers={
            "Content-Type": upstream.headers.get("content-type") or "image/jpeg",
            "Cache-Control": f"public, max-age={PROXY_CACHE_SECONDS}",
            "Access-Control-Allow-Origin": "*",
        },
    )
