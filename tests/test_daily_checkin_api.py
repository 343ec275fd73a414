from datetime import date

from app.ceklis.db import session_scope
from app.ceklis.models import DailyCheckin


def _submit(client, headers, **payload):
    return client.post("/api/daily-checkin", json=payload, headers=headers)


def test_create_checkin_defaults(client, seed, login):
    headers = login(seed.bob)
    r = _submit(client, headers, teamId=seed.product, todayGoals="Prototype the editor", mood="GOOD")
    assert r.status_code == 201
    assert r.json["date"] == date.today().isoformat()
    assert r.json["energyLevel"] == 3
    assert r.json["energyLabel"] == "Moderate"
    assert r.json["yesterdayAccomplishments"] == "Not provided"
    assert r.json["user"]["email"] == "bob@example.com"
    assert r.json["team"]["name"] == "Product"


def test_create_checkin_validation(client, seed, login):
    headers = login(seed.bob)
    r = _submit(client, headers, teamId=seed.product, mood="GOOD")
    assert r.status_code == 400
    assert r.json == {"error": "Missing required fields"}
    assert _submit(client, headers, teamId=seed.product, todayGoals="x", mood="ELATED").status_code == 400
    assert _submit(client, headers, teamId=seed.product, todayGoals="x", mood="GOOD", energyLevel=9).status_code == 400
    assert _submit(client, headers, teamId=seed.product, todayGoals="x", mood="GOOD", date="yesterday").status_code == 400

    r = _submit(client, headers, teamId=seed.research, todayGoals="x", mood="GOOD")
    assert r.status_code == 403
    assert r.json == {"error": "User is not a member of this team"}


def test_one_checkin_per_user_team_and_day(client, seed, login):
    headers = login(seed.bob)
    payload = {"teamId": seed.product, "todayGoals": "Morning", "mood": "OKAY", "date": "2026-05-04T08:30:00Z"}
    assert _submit(client, headers, **payload).status_code == 201

    payload["date"] = "2026-05-04T17:45:00Z"
    r = _submit(client, headers, **payload)
    assert r.status_code == 409
    assert r.json == {"error": "Check-in already submitted for this date"}

    payload["date"] = "2026-05-05"
    assert _submit(client, headers, **payload).status_code == 201


def test_list_checkins_filters(app, client, seed, login):
    with session_scope(app) as s:
        s.add_all(
            [
                DailyCheckin(user_id=seed.alice, team_id=seed.product, date=date(2026, 5, 4), today_goals="A1", mood="GOOD"),
                DailyCheckin(user_id=seed.bob, team_id=seed.product, date=date(2026, 5, 4), today_goals="B1", mood="OKAY"),
                DailyCheckin(user_id=seed.bob, team_id=seed.product, date=date(2026, 5, 5), today_goals="B2", mood="GOOD"),
                DailyCheckin(user_id=seed.carol, team_id=seed.research, date=date(2026, 5, 5), today_goals="C1", mood="GOOD"),
            ]
        )
    login(seed.alice)

    r = client.get("/api/daily-checkin")
    assert r.status_code == 200
    goals = [c["todayGoals"] for c in r.json]
    assert goals[0] == "B2"
    assert set(goals) == {"A1", "B1", "B2"}

    r = client.get("/api/daily-checkin", query_string={"date": "2026-05-04"})
    assert {c["todayGoals"] for c in r.json} == {"A1", "B1"}

    r = client.get("/api/daily-checkin", query_string={"userId": seed.bob, "teamId": seed.product})
    assert {c["todayGoals"] for c in r.json} == {"B1", "B2"}

    r = client.get("/api/daily-checkin", query_string={"teamId": seed.research})
    assert r.status_code == 403


def test_update_checkin_author_only(client, seed, login):
    headers = login(seed.bob)
    checkin = _submit(client, headers, teamId=seed.product, todayGoals="Plan", mood="OKAY").json

    headers = login(seed.alice)
    assert client.patch(f"/api/daily-checkin/{checkin['id']}", json={"mood": "GOOD"}, headers=headers).status_code == 403

    headers = login(seed.bob)
    r = client.patch(
        f"/api/daily-checkin/{checkin['id']}",
        json={"mood": "EXCELLENT", "energyLevel": 5, "blockers": "Waiting on API"},
        headers=headers,
    )
    assert r.status_code == 200
    assert r.json["mood"] == "EXCELLENT"
    assert r.json["energyLevel"] == 5
    assert r.json["blockers"] == "Waiting on API"
    assert r.json["todayGoals"] == "Plan"

    assert client.patch("/api/daily-checkin/9999", json={"mood": "GOOD"}, headers=headers).status_code == 404
