from datetime import date, timedelta

import pytest

from app.ceklis.db import session_scope
from app.ceklis.models import Epic, Task, Team, TeamMember


def _create(client, headers, **payload):
    return client.post("/api/epics", json=payload, headers=headers)


@pytest.fixture()
def second_team(app, seed):
    """Another Acme team with alice as a member (bob is not)."""
    with session_scope(app) as s:
        team = Team(name="Brand", organization_id=seed.acme)
        s.add(team)
        s.flush()
        s.add(TeamMember(user_id=seed.alice, team_id=team.id, role="MEMBER"))
        return team.id


def test_create_epic(client, seed, login):
    headers = login(seed.bob)
    r = _create(client, headers, title="Design system", teamId=seed.product, dueDate="2030-01-15T00:00:00.000Z")
    assert r.status_code == 201
    assert r.json["status"] == "PLANNING"
    assert r.json["dueDate"] == "2030-01-15"
    assert r.json["organizationId"] == seed.acme
    assert r.json["createdBy"]["email"] == "bob@example.com"
    assert r.json["progress"] == {"completed": 0, "total": 0, "percentage": 0}
    assert r.json["tasks"] == []


def test_create_epic_validation(client, seed, login):
    headers = login(seed.bob)
    assert _create(client, headers, teamId=seed.product).status_code == 400
    assert _create(client, headers, title="No team").status_code == 400
    assert _create(client, headers, title="X", teamId=seed.product, status="DREAMING").status_code == 400
    r = _create(client, headers, title="X", teamId=seed.research)
    assert r.status_code == 403
    assert r.json == {"error": "Access denied to this team"}


def test_list_epics_newest_first_with_progress(app, client, seed, login):
    headers = login(seed.bob)
    first = _create(client, headers, title="First", teamId=seed.product).json
    second = _create(client, headers, title="Second", teamId=seed.product).json
    with session_scope(app) as s:
        s.add_all(
            [
                Task(title="a", team_id=seed.product, epic_id=first["id"], status="DONE", position=1000),
                Task(title="b", team_id=seed.product, epic_id=first["id"], status="TODO", position=1000),
                Task(title="c", team_id=seed.product, epic_id=first["id"], status="TODO", position=2000),
            ]
        )
        s.add(Epic(title="Invisible", team_id=seed.research, organization_id=seed.other))

    r = client.get("/api/epics")
    assert [e["title"] for e in r.json] == ["Second", "First"]
    first_json = r.json[1]
    assert first_json["progress"] == {"completed": 1, "total": 3, "percentage": 33}
    assert len(first_json["tasks"]) == 3
    assert second["id"] == r.json[0]["id"]


def test_epic_detail_is_members_only(client, seed, login):
    headers = login(seed.bob)
    epic = _create(client, headers, title="Mine", teamId=seed.product).json
    login(seed.carol)
    assert client.get(f"/api/epics/{epic['id']}").status_code == 403
    assert client.get("/api/epics/9999").status_code == 404


def test_update_epic_fields(client, seed, login):
    headers = login(seed.bob)
    epic = _create(client, headers, title="Draft", teamId=seed.product).json
    r = client.put(
        f"/api/epics/{epic['id']}",
        json={"title": "Launch", "status": "IN_PROGRESS", "dueDate": "2030-06-01"},
        headers=headers,
    )
    assert r.status_code == 200
    assert r.json["title"] == "Launch"
    assert r.json["status"] == "IN_PROGRESS"
    assert r.json["dueDate"] == "2030-06-01"

    assert client.put(f"/api/epics/{epic['id']}", json={"status": "NOPE"}, headers=headers).status_code == 400


def test_move_epic_to_other_team_moves_tasks(app, client, seed, second_team, login):
    headers = login(seed.alice)
    epic = _create(client, headers, title="Rebrand", teamId=seed.product).json
    with session_scope(app) as s:
        s.add(Task(title="Logo", team_id=seed.product, epic_id=epic["id"], position=1000))

    r = client.put(f"/api/epics/{epic['id']}", json={"teamId": second_team}, headers=headers)
    assert r.status_code == 200
    assert r.json["teamId"] == second_team
    assert r.json["team"]["name"] == "Brand"

    with session_scope(app) as s:
        assert {t.team_id for t in s.query(Task).all()} == {second_team}


def test_move_epic_rejections(app, client, seed, second_team, login):
    headers = login(seed.bob)
    epic = _create(client, headers, title="Stay", teamId=seed.product).json
    url = f"/api/epics/{epic['id']}"

    r = client.put(url, json={"teamId": 9999}, headers=headers)
    assert r.status_code == 404
    assert r.json == {"error": "Target team not found"}

    r = client.put(url, json={"teamId": second_team}, headers=headers)
    assert r.status_code == 403
    assert r.json == {"error": "Access denied for target team"}

    # bob joins a team in another organization
    with session_scope(app) as s:
        s.add(TeamMember(user_id=seed.bob, team_id=seed.research, role="MEMBER"))
    r = client.put(url, json={"teamId": seed.research}, headers=headers)
    assert r.status_code == 400


def test_delete_epic_refuses_when_tasks_exist(app, client, seed, login):
    headers = login(seed.bob)
    busy = _create(client, headers, title="Busy", teamId=seed.product).json
    empty = _create(client, headers, title="Empty", teamId=seed.product).json
    with session_scope(app) as s:
        s.add(Task(title="t", team_id=seed.product, epic_id=busy["id"], position=1000))

    r = client.delete(f"/api/epics/{busy['id']}", headers=headers)
    assert r.status_code == 400

    r = client.delete(f"/api/epics/{empty['id']}", headers=headers)
    assert r.status_code == 200
    assert r.json == {"message": "Epic deleted successfully"}


def test_is_overdue():
    past = date.today() - timedelta(days=1)
    assert Epic(title="x", status="IN_PROGRESS", due_date=past).is_overdue
    assert not Epic(title="x", status="COMPLETED", due_date=past).is_overdue
    assert not Epic(title="x", status="PLANNING", due_date=None).is_overdue
