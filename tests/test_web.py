import json

import platformdirs
import pytest
from fastapi.testclient import TestClient

from revssh import state as session_store
from revssh.config import main_config_file, sessions_dir
from revssh.session import Session, SessionState, SessionStatus
from revssh.web import VERSION, AppState, create_app, main


@pytest.fixture
def config_root(tmp_path, monkeypatch):
    monkeypatch.setattr(platformdirs, "user_config_dir", lambda *a, **k: str(tmp_path))
    return tmp_path


@pytest.fixture
def client(config_root):
    with TestClient(create_app(AppState(update_interval=0.05))) as test_client:
        yield test_client


def _profile_body(profile_id="vps"):
    return {
        "id": profile_id,
        "host": "example.com",
        "user": "user",
        "port": 2222,
        "forwards": [{"remote_port": 8080, "local_port": 80}],
    }


def test_health_check(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok", "version": VERSION}


def test_list_profiles_empty(client):
    response = client.get("/api/profiles")
    assert response.status_code == 200
    assert response.json() == []


def test_swagger_ui(client):
    response = client.get("/swagger-ui/")
    assert response.status_code == 200
    assert "swagger" in response.text.lower()


def test_openapi_document_lists_routes(client):
    response = client.get("/api-docs/openapi.json")
    assert response.status_code == 200
    paths = response.json()["paths"]
    assert "/api/profiles" in paths
    assert "/api/sessions" in paths
    assert "/health" in paths


def test_index_page(client):
    response = client.get("/")
    assert response.status_code == 200
    assert "<h1>Reverse SSH Interface</h1>" in response.text


def test_create_get_list_delete_profile(client):
    created = client.post("/api/profiles", json=_profile_body())
    assert created.status_code == 201
    assert created.json()["id"] == "vps"
    assert created.json()["forwards"][0]["remote_bind"] == "127.0.0.1"
    assert main_config_file().exists()

    fetched = client.get("/api/profiles/vps")
    assert fetched.status_code == 200
    assert fetched.json()["port"] == 2222
    assert fetched.json()["auth"] == {"type": "Agent"}

    listed = client.get("/api/profiles")
    assert [item["id"] for item in listed.json()] == ["vps"]

    deleted = client.delete("/api/profiles/vps")
    assert deleted.status_code == 200
    assert deleted.json() == {"status": "deleted"}

    again = client.delete("/api/profiles/vps")
    assert again.status_code == 404
    assert again.json() == {"error": "Profile not found"}


def test_get_missing_profile(client):
    response = client.get("/api/profiles/nope")
    assert response.status_code == 404
    assert response.json() == {"error": "Profile not found"}


def test_create_profile_rejects_invalid_body(client):
    body = _profile_body()
    body["port"] = 70000
    response = client.post("/api/profiles", json=body)
    assert response.status_code == 422
    assert "port" in response.json()["error"]


def test_create_profile_rejects_malformed_json(client):
    response = client.post(
        "/api/profiles", content=b"{not json", headers={"content-type": "application/json"}
    )
    assert response.status_code == 400
    assert "error" in response.json()


def test_corrupt_config_gives_server_error(client):
    path = main_config_file()
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text("profiles = [not toml", encoding="utf-8")
    response = client.get("/api/profiles")
    assert response.status_code == 500
    assert "Failed to parse config file" in response.json()["error"]


def test_list_sessions_empty(client):
    response = client.get("/api/sessions")
    assert response.status_code == 200
    assert response.json() == []


def test_list_sessions_includes_persisted(client):
    session_store.save_session(Session(profile_id="db", status=SessionStatus.failed("boom")))
    response = client.get("/api/sessions")
    assert response.status_code == 200
    assert response.json() == [
        {
            "profile_id": "db",
            "status": {"state": "Failed", "details": "boom"},
            "pid": None,
            "start_time": None,
            "restart_count": 0,
        }
    ]


def test_start_missing_profile(client):
    response = client.post("/api/sessions/ghost/start")
    assert response.status_code == 404
    assert response.json() == {"error": "Profile not found"}


def test_start_without_ssh_binary(client, tmp_path, monkeypatch):
    client.post("/api/profiles", json=_profile_body())
    empty_bin = tmp_path / "empty-bin"
    empty_bin.mkdir()
    monkeypatch.setenv("PATH", str(empty_bin))
    response = client.post("/api/sessions/vps/start")
    assert response.status_code == 500
    assert "ssh" in response.json()["error"]


def test_stop_unknown_session(client):
    response = client.post("/api/sessions/ghost/stop")
    assert response.status_code == 200
    assert response.json() == {"status": "stopped", "id": "ghost"}


def test_stop_persisted_session_marks_stopped(client):
    session_store.save_session(Session(profile_id="db", status=SessionStatus.running()))
    response = client.post("/api/sessions/db/stop")
    assert response.status_code == 200
    stored = json.loads((sessions_dir() / "db.json").read_text(encoding="utf-8"))
    assert stored["status"] == {"state": "Stopped"}
    assert session_store.load_session("db").status.state is SessionState.STOPPED


def test_websocket_sends_session_updates(client):
    session_store.save_session(Session(profile_id="db"))
    with client.websocket_connect("/ws") as websocket:
        first = websocket.receive_json()
        second = websocket.receive_json()
    assert first["type"] == "sessions_update"
    assert [item["profile_id"] for item in first["data"]] == ["db"]
    assert second["type"] == "sessions_update"


def test_main_rejects_invalid_host():
    assert main(["--host", "not an address", "--port", "3000"]) == 1


def test_main_rejects_out_of_range_port():
    with pytest.raises(SystemExit) as excinfo:
        main(["--port", "70000"])
    assert excinfo.value.code == 2