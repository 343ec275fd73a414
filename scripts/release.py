"""
Release phase: migrate the schema to head, then seed the bootstrap
organization. Both steps are safe to repeat on every deploy.

Usage:
  python scripts/release.py
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


def release_database_url() -> str:
    db_url = (os.environ.get("DATABASE_URL") or "").strip()
    if not db_url:
        raise RuntimeError("DATABASE_URL must be set for the release phase.")
    if (os.environ.get("ENV") or "").strip().lower() in ("prod", "production") and db_url.startswith("sqlite"):
        raise RuntimeError("Production releases need a Postgres DATABASE_URL, got sqlite.")
    return db_url


def alembic_config(db_url: str):
    from alembic.config import Config

    cfg = Config(str(ROOT / "alembic.ini"))
    cfg.set_main_option("script_location", str(ROOT / "migrations"))
    cfg.set_main_option("sqlalchemy.url", db_url)
    return cfg


def run_release() -> None:
    from alembic import command

    from scripts import init_db

    db_url = release_database_url()
    print("[release] alembic upgrade head", flush=True)
    command.upgrade(alembic_config(db_url), "head")
    print("[release] seeding", flush=True)
    init_db.seed_only(database_url=db_url)
    print("[release] done", flush=True)


if __name__ == "__main__":
    run_release()
