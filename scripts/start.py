#!/usr/bin/env python3
"""
Container entry point: run the release phase, then exec gunicorn on
app.wsgi:app so it receives signals directly.

Usage:
    python scripts/start.py
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

DEFAULT_PORT = 8080


def listen_port() -> int:
    raw = (os.environ.get("PORT") or "").strip()
    if not raw:
        return DEFAULT_PORT
    if not raw.isdigit() or not 1 <= int(raw) <= 65535:
        raise SystemExit(f"PORT must be an integer between 1 and 65535, got {raw!r}")
    return int(raw)


def gunicorn_argv(port: int) -> list[str]:
    return [
        "gunicorn",
        "app.wsgi:app",
        f"--bind=0.0.0.0:{port}",
        f"--workers={(os.environ.get('WEB_CONCURRENCY') or '2').strip()}",
        "--timeout=60",
        "--preload",
        "--access-logfile=-",
        "--error-logfile=-",
    ]


def main() -> None:
    from scripts.release import run_release

    port = listen_port()
    run_release()
    argv = gunicorn_argv(port)
    print(f"[start] {' '.join(argv)}", flush=True)
    os.execvp(argv[0], argv)


if __name__ == "__main__":
    main()
