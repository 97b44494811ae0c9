from app.api.routes import health


def test_health_endpoints(client, engine, monkeypatch):
    live = client.get("/api/health/live")
    assert live.status_code == 200
    assert live.json()["status"] == "ok"

    monkeypatch.setattr(health, "engine", engine)
    ready = client.get("/api/health/ready")
    assert ready.status_code == 200
    payload = ready.json()
    assert payload["database"]["schema_ok"] is True
    assert payload["database"]["dialect"] == "sqlite"


def test_requests_carry_request_id(client):
    response = client.get("/api/health", headers={"X-Request-ID": "abc123"})
    assert response.status_code == 200
    assert response.headers["X-Request-ID"] == "abc123"
    assert response.headers["X-Content-Type-Options"] == "nosniff"
