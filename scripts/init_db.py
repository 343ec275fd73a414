"""
Create tables (dev) and seed the bootstrap organization.

Seeding is idempotent:
- ADMIN_EMAIL (optional) gets a user row if it has never signed in.
- DEFAULT_ORG_NAME (default "Ceklis") is created once, with the admin as OWNER.
- The default label set is added to that organization when missing.

Usage:
  python scripts/init_db.py
"""

import os
import sys
from datetime import datetime
from pathlib import Path

# Ensure repo root is on sys.path when running as a script.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from app.ceklis.models import Base, Label, Organization, OrganizationMember, User
from scripts._db_utils import create_script_engine, script_session

DEFAULT_LABELS = (
    ("Design", "#8B5CF6"),
    ("Research", "#3B82F6"),
    ("Bug", "#EF4444"),
    ("Feature", "#10B981"),
)


def seed_only(*, database_url: str | None = None) -> None:
    admin_email = (os.environ.get("ADMIN_EMAIL") or "").strip().lower()
    org_name = (os.environ.get("DEFAULT_ORG_NAME") or "Ceklis").strip()
    db_url = (database_url or os.environ.get("DATABASE_URL") or "sqlite:///ceklis.db").strip()

    if not admin_email:
        print("ADMIN_EMAIL not set; skipping bootstrap organization.", flush=True)
        return

    # Direct engine/session so release can run without importing app.wsgi.
    with script_session(db_url) as s:
        now = datetime.utcnow()
        admin = s.query(User).filter(User.email == admin_email).one_or_none()
        if not admin:
            admin = User(email=admin_email, name=admin_email.split("@")[0], is_active=True)
            s.add(admin)
            s.flush()

        org = (
            s.query(Organization)
            .join(OrganizationMember, OrganizationMember.organization_id == Organization.id)
            .filter(Organization.name == org_name, OrganizationMember.user_id == admin.id)
            .first()
        )
        if not org:
            org = Organization(name=org_name, description="Bootstrap organization", created_at=now, updated_at=now)
            s.add(org)
            s.flush()
            s.add(OrganizationMember(user_id=admin.id, organization_id=org.id, role="OWNER", joined_at=now))

        existing = {name for (name,) in s.query(Label.name).filter(Label.organization_id == org.id).all()}
        for name, color in DEFAULT_LABELS:
            if name not in existing:
                s.add(Label(name=name, color=color, organization_id=org.id, created_at=now, updated_at=now))

    print(f"Seeded organization '{org_name}' owned by {admin_email}", flush=True)


def main() -> None:
    db_url = (os.environ.get("DATABASE_URL") or "sqlite:///ceklis.db").strip()
    if db_url.startswith("sqlite"):
        # Dev convenience: create tables without Alembic.
        engine = create_script_engine(db_url)
        Base.metadata.create_all(bind=engine)
        engine.dispose()
    seed_only(database_url=db_url)


if __name__ == "__main__":
    main()
