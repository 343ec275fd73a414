def test_health_ok(client):
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json["ok"] is True


def test_healthz_ok(client):
    r = client.get("/healthz")
    assert r.status_code == 200
    assert r.data == b"ok"


def test_landing_page_offers_google_sign_in(client):
    r = client.get("/")
    assert r.status_code == 200
    assert b"Ceklis" in r.data
    assert b"Sign in with Google" in r.data
    assert b"/auth/google/start" in r.data


def test_landing_redirects_signed_in_user_to_dashboard(client, seed, login):
    login(seed.alice)
    r = client.get("/")
    assert r.status_code == 302
    assert r.headers["Location"].endswith("/dashboard")


def test_unknown_api_path_is_json_404(client):
    r = client.get("/api/does-not-exist")
    assert r.status_code == 404
    assert r.json == {"error": "Not found"}


def test_unknown_page_renders_404(client):
    r = client.get("/nowhere")
    assert r.status_code == 404
    assert b"Page not found" in r.data


def test_unsafe_request_without_csrf_token_is_rejected(client, seed, login):
    login(seed.alice)
    r = client.post("/api/organizations", json={"name": "No token"})
    assert r.status_code == 400
    assert "CSRF" in r.json["error"]
