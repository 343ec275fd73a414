import pytest

from app.ceklis.db import session_scope
from app.ceklis.models import AuditEvent, Epic, Label, Task


@pytest.fixture()
def fixtures(app, seed):
    with session_scope(app) as s:
        epic = Epic(title="Onboarding", team_id=seed.product, organization_id=seed.acme)
        foreign_epic = Epic(title="Elsewhere", team_id=seed.research, organization_id=seed.other)
        ux = Label(name="UX", color="#3B82F6", organization_id=seed.acme)
        bug = Label(name="Bug", color="#EF4444", organization_id=seed.acme)
        foreign = Label(name="Foreign", color="#000000", organization_id=seed.other)
        s.add_all([epic, foreign_epic, ux, bug, foreign])
        s.flush()
        return {"epic": epic.id, "foreign_epic": foreign_epic.id, "ux": ux.id, "bug": bug.id, "foreign": foreign.id}


def _create(client, headers, **payload):
    return client.post("/api/tasks", json=payload, headers=headers)


def test_create_task_defaults_and_positions(client, seed, login):
    headers = login(seed.bob)
    r = _create(client, headers, title="Sketch flows", teamId=seed.product)
    assert r.status_code == 201
    assert r.json["status"] == "BACKLOG"
    assert r.json["priority"] == "MEDIUM"
    assert r.json["position"] == 1000

    r = _create(client, headers, title="Review copy", teamId=seed.product)
    assert r.json["position"] == 2000

    r = _create(client, headers, title="Ship", teamId=seed.product, status="TODO", priority="HIGH")
    assert r.json["position"] == 1000
    assert r.json["priority"] == "HIGH"


def test_create_task_validation(client, seed, fixtures, login):
    headers = login(seed.bob)
    assert _create(client, headers, teamId=seed.product).status_code == 400
    assert _create(client, headers, title="No team").status_code == 400
    assert _create(client, headers, title="X", teamId=seed.research).status_code == 403
    assert _create(client, headers, title="X", teamId=seed.product, status="LATER").status_code == 400
    assert _create(client, headers, title="X", teamId=seed.product, priority="CRITICAL").status_code == 400
    assert _create(client, headers, title="X", teamId=seed.product, epicId=fixtures["foreign_epic"]).status_code == 400
    assert _create(client, headers, title="X", teamId=seed.product, labelIds=[fixtures["foreign"]]).status_code == 400


def test_create_task_with_epic_and_labels(client, seed, fixtures, login):
    headers = login(seed.alice)
    r = _create(
        client,
        headers,
        title="Welcome screen",
        teamId=seed.product,
        epicId=fixtures["epic"],
        assigneeId=seed.bob,
        estimation=3,
        labelIds=[fixtures["ux"], fixtures["bug"]],
    )
    assert r.status_code == 201
    assert r.json["epic"]["title"] == "Onboarding"
    assert r.json["assignee"]["email"] == "bob@example.com"
    assert r.json["estimation"] == 3
    assert {lb["name"] for lb in r.json["labels"]} == {"UX", "Bug"}


def test_assignee_must_belong_to_the_team(client, seed, login):
    headers = login(seed.alice)
    r = _create(client, headers, title="Ghost", teamId=seed.product, assigneeId=99999)
    assert r.status_code == 400
    assert r.json == {"error": "Assignee must be a member of this team"}
    # carol belongs to another organization
    assert _create(client, headers, title="Outsider", teamId=seed.product, assigneeId=seed.carol).status_code == 400

    task = _create(client, headers, title="Mine", teamId=seed.product).json
    r = client.patch(f"/api/tasks/{task['id']}", json={"assigneeId": seed.carol}, headers=headers)
    assert r.status_code == 400
    r = client.patch(f"/api/tasks/{task['id']}", json={"assigneeId": seed.bob}, headers=headers)
    assert r.status_code == 200
    assert r.json["assigneeId"] == seed.bob


def test_list_tasks_only_from_member_teams(app, client, seed, login):
    with session_scope(app) as s:
        s.add_all(
            [
                Task(title="Second", team_id=seed.product, position=2000),
                Task(title="First", team_id=seed.product, position=1000),
                Task(title="Theirs", team_id=seed.research, position=1000),
            ]
        )
    login(seed.bob)
    r = client.get("/api/tasks")
    assert [t["title"] for t in r.json] == ["First", "Second"]

    r = client.get("/api/tasks", query_string={"teamId": seed.research})
    assert r.json == []


def test_task_detail_is_members_only(app, client, seed, login):
    with session_scope(app) as s:
        task = Task(title="Private", team_id=seed.product, position=1000)
        s.add(task)
        s.flush()
        task_id = task.id
    login(seed.carol)
    assert client.get(f"/api/tasks/{task_id}").status_code == 403
    login(seed.bob)
    assert client.get(f"/api/tasks/{task_id}").json["title"] == "Private"
    assert client.get("/api/tasks/9999").status_code == 404


def test_status_change_moves_task_to_end_of_column(app, client, seed, login):
    headers = login(seed.bob)
    done = _create(client, headers, title="Already done", teamId=seed.product, status="DONE").json
    task = _create(client, headers, title="Move me", teamId=seed.product).json

    r = client.patch(f"/api/tasks/{task['id']}", json={"status": "DONE"}, headers=headers)
    assert r.status_code == 200
    assert r.json["status"] == "DONE"
    assert r.json["position"] == done["position"] + 1000

    with session_scope(app) as s:
        ev = s.query(AuditEvent).filter(AuditEvent.action == "task.status_change").one()
        assert '"to_status": "DONE"' in ev.metadata_json


def test_patch_updates_fields_and_explicit_position(client, seed, login):
    headers = login(seed.bob)
    task = _create(client, headers, title="Draft", teamId=seed.product).json
    r = client.patch(
        f"/api/tasks/{task['id']}",
        json={"title": "Final", "priority": "URGENT", "position": 1500, "description": "  "},
        headers=headers,
    )
    assert r.status_code == 200
    assert r.json["title"] == "Final"
    assert r.json["priority"] == "URGENT"
    assert r.json["position"] == 1500
    assert r.json["description"] is None

    assert client.patch(f"/api/tasks/{task['id']}", json={"title": ""}, headers=headers).status_code == 400
    assert client.patch(f"/api/tasks/{task['id']}", json={"status": "NOPE"}, headers=headers).status_code == 400


def test_delete_task(app, client, seed, login):
    headers = login(seed.bob)
    task = _create(client, headers, title="Temp", teamId=seed.product).json
    assert client.delete(f"/api/tasks/{task['id']}", headers=headers).json == {"success": True}
    with session_scope(app) as s:
        assert s.get(Task, task["id"]) is None


def test_task_labels_add_skips_duplicates_and_clear(client, seed, fixtures, login):
    headers = login(seed.bob)
    task = _create(client, headers, title="Label me", teamId=seed.product, labelIds=[fixtures["ux"]]).json
    url = f"/api/tasks/{task['id']}/labels"

    r = client.post(url, json={"labelIds": [fixtures["ux"], fixtures["bug"]]}, headers=headers)
    assert r.status_code == 200
    labels = client.get(f"/api/tasks/{task['id']}").json["labels"]
    assert sorted(lb["name"] for lb in labels) == ["Bug", "UX"]

    assert client.post(url, json={"labelIds": [fixtures["foreign"]]}, headers=headers).status_code == 400

    assert client.delete(url, headers=headers).status_code == 200
    assert client.get(f"/api/tasks/{task['id']}").json["labels"] == []
