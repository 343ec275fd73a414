from app.ceklis.db import session_scope
from app.ceklis.models import AuditEvent, DailyCheckin, Epic, OrganizationMember, Task, Team, TeamMember


def test_list_organizations_for_member(client, seed, login):
    login(seed.bob)
    r = client.get("/api/organizations")
    assert r.status_code == 200
    assert [o["name"] for o in r.json] == ["Acme Design"]
    assert r.json[0]["_count"]["teams"] == 1
    assert {m["user"]["email"] for m in r.json[0]["members"]} == {"alice@example.com", "bob@example.com"}


def test_create_organization_makes_creator_owner(app, client, seed, login):
    headers = login(seed.dave)
    r = client.post("/api/organizations", json={"name": "  Studio  ", "description": "Freelance"}, headers=headers)
    assert r.status_code == 201
    assert r.json["name"] == "Studio"
    assert r.json["members"][0]["role"] == "OWNER"

    r = client.post("/api/organizations", json={"description": "no name"}, headers=headers)
    assert r.status_code == 400
    assert r.json == {"error": "Name is required"}


def test_update_organization_requires_owner_or_admin(client, seed, login):
    headers = login(seed.bob)
    r = client.put(f"/api/organizations/{seed.acme}", json={"name": "Renamed"}, headers=headers)
    assert r.status_code == 403

    headers = login(seed.alice)
    r = client.put(f"/api/organizations/{seed.acme}", json={"name": "Acme Studio"}, headers=headers)
    assert r.status_code == 200
    assert r.json["name"] == "Acme Studio"


def test_list_teams_only_includes_memberships(client, seed, login):
    login(seed.bob)
    r = client.get("/api/teams")
    assert r.status_code == 200
    assert [t["name"] for t in r.json] == ["Product"]
    team = r.json[0]
    assert team["organization"]["name"] == "Acme Design"
    assert {m["role"] for m in team["members"]} == {"LEAD", "MEMBER"}
    assert team["_count"] == {"tasks": 0, "epics": 0}


def test_create_team_validation_and_permissions(client, seed, login):
    headers = login(seed.alice)
    r = client.post("/api/teams", json={"organizationId": seed.acme}, headers=headers)
    assert r.status_code == 400
    r = client.post("/api/teams", json={"name": "Growth"}, headers=headers)
    assert r.status_code == 400

    headers = login(seed.bob)
    r = client.post("/api/teams", json={"name": "Growth", "organizationId": seed.acme}, headers=headers)
    assert r.status_code == 403


def test_create_team_makes_creator_lead(app, client, seed, login):
    headers = login(seed.alice)
    r = client.post(
        "/api/teams",
        json={"name": "Growth", "description": "Experiments", "organizationId": seed.acme},
        headers=headers,
    )
    assert r.status_code == 201
    assert r.json["name"] == "Growth"
    assert [(m["userId"], m["role"]) for m in r.json["members"]] == [(seed.alice, "LEAD")]

    with session_scope(app) as s:
        assert s.query(AuditEvent).filter(AuditEvent.action == "team.create").count() == 1


def test_update_team_requires_lead_or_org_manager(client, seed, login):
    headers = login(seed.bob)
    r = client.put(f"/api/teams/{seed.product}", json={"name": "Hijacked"}, headers=headers)
    assert r.status_code == 403

    headers = login(seed.alice)
    r = client.put(f"/api/teams/{seed.product}", json={"name": "Product Design", "description": "Core"}, headers=headers)
    assert r.status_code == 200
    assert r.json["name"] == "Product Design"
    assert r.json["description"] == "Core"

    r = client.put("/api/teams/9999", json={"name": "Ghost"}, headers=headers)
    assert r.status_code == 404


def test_delete_team_cascades(app, client, seed, login):
    with session_scope(app) as s:
        epic = Epic(title="Launch", team_id=seed.product, organization_id=seed.acme)
        s.add(epic)
        s.flush()
        s.add(Task(title="Hero image", team_id=seed.product, epic_id=epic.id, position=1000))
        s.add(DailyCheckin(user_id=seed.bob, team_id=seed.product, date=epic.created_at.date(), today_goals="x", mood="OKAY"))

    headers = login(seed.bob)
    assert client.delete(f"/api/teams/{seed.product}", headers=headers).status_code == 403

    headers = login(seed.alice)
    r = client.delete(f"/api/teams/{seed.product}", headers=headers)
    assert r.status_code == 200
    assert r.json == {"success": True}

    with session_scope(app) as s:
        assert s.get(Team, seed.product) is None
        assert s.query(TeamMember).filter(TeamMember.team_id == seed.product).count() == 0
        assert s.query(Task).count() == 0
        assert s.query(Epic).count() == 0
        assert s.query(DailyCheckin).count() == 0


def test_members_listing_is_members_only(client, seed, login):
    login(seed.carol)
    r = client.get(f"/api/teams/{seed.product}/members")
    assert r.status_code == 403

    login(seed.bob)
    r = client.get(f"/api/teams/{seed.product}/members")
    assert r.status_code == 200
    assert {u["email"] for u in r.json} == {"alice@example.com", "bob@example.com"}


def test_invite_member_adds_team_and_org_membership(app, client, seed, login):
    headers = login(seed.alice)
    r = client.post(f"/api/teams/{seed.product}/members", json={"email": "DAVE@example.com", "role": "MEMBER"}, headers=headers)
    assert r.status_code == 201
    assert r.json["user"]["email"] == "dave@example.com"
    assert r.json["role"] == "MEMBER"

    with session_scope(app) as s:
        om = (
            s.query(OrganizationMember)
            .filter(OrganizationMember.user_id == seed.dave, OrganizationMember.organization_id == seed.acme)
            .one()
        )
        assert om.role == "MEMBER"


def test_invite_member_errors(client, seed, login):
    headers = login(seed.alice)
    url = f"/api/teams/{seed.product}/members"
    assert client.post(url, json={"email": "dave@example.com", "role": "OWNER"}, headers=headers).status_code == 400
    r = client.post(url, json={"email": "nobody@example.com", "role": "MEMBER"}, headers=headers)
    assert r.status_code == 404
    assert r.json == {"error": "User with this email does not exist"}
    r = client.post(url, json={"email": "bob@example.com", "role": "MEMBER"}, headers=headers)
    assert r.status_code == 400
    assert r.json == {"error": "User is already a member of this team"}

    headers = login(seed.bob)
    assert client.post(url, json={"email": "dave@example.com", "role": "MEMBER"}, headers=headers).status_code == 403


def _member_id(app, team_id, user_id):
    with session_scope(app) as s:
        return s.query(TeamMember.id).filter(TeamMember.team_id == team_id, TeamMember.user_id == user_id).scalar()


def test_remove_member(app, client, seed, login):
    headers = login(seed.alice)
    url = f"/api/teams/{seed.product}/members"
    bob_member = _member_id(app, seed.product, seed.bob)

    r = client.delete(url, json={"memberId": bob_member}, headers=headers)
    assert r.status_code == 200
    assert _member_id(app, seed.product, seed.bob) is None

    r = client.delete(url, json={"memberId": bob_member}, headers=headers)
    assert r.status_code == 404

    carol_member = _member_id(app, seed.research, seed.carol)
    r = client.delete(url, json={"memberId": carol_member}, headers=headers)
    assert r.status_code == 404


def test_cannot_remove_last_lead(app, client, seed, login):
    headers = login(seed.alice)
    alice_member = _member_id(app, seed.product, seed.alice)
    r = client.delete(f"/api/teams/{seed.product}/members", json={"memberId": alice_member}, headers=headers)
    assert r.status_code == 400
    assert r.json == {"error": "Cannot remove the last team lead"}
