# tests/test_health.py
from fastapi.testclient import TestClient


def test_health(client: TestClient) -> None:
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_root_describes_api(client: TestClient) -> None:
    response = client.get("/")
    assert response.status_code == 200
    body = response.json()
    assert body["name"] == "Taletree API"
    assert body["docs"] == "/docs"


def test_startup_can_create_tables(app, monkeypatch) -> None:
    from taletree.core.settings import settings

    calls: list[int] = []
    monkeypatch.setattr(settings, "auto_create_tables", True)
    monkeypatch.setattr("taletree.main.create_tables", lambda: calls.append(1))

    with TestClient(app):
        pass

    assert calls == [1]
