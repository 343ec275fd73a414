from types import SimpleNamespace

import pytest

from app.ceklis import create_app
from app.ceklis.db import session_scope
from app.ceklis.models import Base, Organization, OrganizationMember, Team, TeamMember, User

CSRF_TOKEN = "test-csrf-token"
ALICE_AVATAR = "https://lh3.googleusercontent.com/a/alice-avatar=s96-c"


@pytest.fixture()
def app(tmp_path, monkeypatch):
    monkeypatch.setenv("SECRET_KEY", "test-secret")
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path/'test.db'}")
    monkeypatch.setenv("ENV", "test")
    monkeypatch.setenv("BASE_URL", "http://localhost")
    for k in ("GOOGLE_CLIENT_ID", "GOOGLE_CLIENT_SECRET"):
        monkeypatch.delenv(k, raising=False)

    app = create_app()
    Base.metadata.create_all(bind=app.extensions["sqlalchemy_engine"])
    return app


@pytest.fixture()
def client(app):
    return app.test_client()


@pytest.fixture()
def seed(app):
    """
    Acme Design (org): alice OWNER, bob MEMBER.
    Product (team in Acme): alice LEAD, bob MEMBER.
    carol belongs to Other Co and its Research team only.
    """
    with session_scope(app) as s:
        alice = User(email="alice@example.com", name="Alice Designer", image=ALICE_AVATAR, google_sub="sub-alice", is_active=True)
        bob = User(email="bob@example.com", name="Bob Builder", is_active=True)
        carol = User(email="carol@example.com", name="Carol Outsider", is_active=True)
        dave = User(email="dave@example.com", name="Dave Newcomer", is_active=True)
        acme = Organization(name="Acme Design")
        other = Organization(name="Other Co")
        s.add_all([alice, bob, carol, dave, acme, other])
        s.flush()

        s.add_all(
            [
                OrganizationMember(user_id=alice.id, organization_id=acme.id, role="OWNER"),
                OrganizationMember(user_id=bob.id, organization_id=acme.id, role="MEMBER"),
                OrganizationMember(user_id=carol.id, organization_id=other.id, role="OWNER"),
            ]
        )
        product = Team(name="Product", organization_id=acme.id)
        research = Team(name="Research", organization_id=other.id)
        s.add_all([product, research])
        s.flush()
        s.add_all(
            [
                TeamMember(user_id=alice.id, team_id=product.id, role="LEAD"),
                TeamMember(user_id=bob.id, team_id=product.id, role="MEMBER"),
                TeamMember(user_id=carol.id, team_id=research.id, role="LEAD"),
            ]
        )
        ids = SimpleNamespace(
            alice=alice.id,
            bob=bob.id,
            carol=carol.id,
            dave=dave.id,
            acme=acme.id,
            other=other.id,
            product=product.id,
            research=research.id,
        )
    return ids


@pytest.fixture()
def login(client):
    """Forge a signed session for a user id; returns headers for unsafe requests."""

    def _login(user_id):
        with client.session_transaction() as sess:
            sess["user_id"] = user_id
            sess["csrf_token"] = CSRF_TOKEN
        return {"X-CSRF-Token": CSRF_TOKEN}

    return _login
