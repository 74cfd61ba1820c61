"""
API tests for the FastAPI server (TestClient + injected StudioController).
"""
import os
import sys

import pytest
from fastapi.testclient import TestClient

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from agents import ScriptAgent
from api_server import app, get_studio
from conftest import DETECTIVE_SCRIPT, FakeGenaiClient
from utils.constants import ANALYZE_FAILED_MESSAGE


@pytest.fixture
def client(studio):
    app.dependency_overrides[get_studio] = lambda: studio
    yield TestClient(app)
    app.dependency_overrides.clear()


def _create(client, title="Rain Noir"):
    res = client.post("/api/projects", json={"title": title, "style_id": "film_noir"})
    assert res.status_code == 201
    return res.json()


class TestProjectsApi:

    def test_health(self, client):
        res = client.get("/health")
        assert res.status_code == 200
        assert res.json()["status"] == "ok"

    def test_create_list_get(self, client):
        project = _create(client)
        assert len(project["segments"]) == 1
        assert project["assets"] == []

        listing = client.get("/api/projects").json()
        assert [p["id"] for p in listing] == [project["id"]]
        assert client.get(f"/api/projects/{project['id']}").json()["title"] == "Rain Noir"

    def test_unknown_project_is_404(self, client):
        res = client.get("/api/projects/proj_missing")
        assert res.status_code == 404
        assert res.json()["error"] == "NotFoundError"

    def test_empty_title_is_400(self, client):
        res = client.post("/api/projects", json={"title": " "})
        assert res.status_code == 400

    def test_update_title(self, client):
        project = _create(client)
        res = client.put(f"/api/projects/{project['id']}", json={"title": "Renamed"})
        assert res.json()["title"] == "Renamed"
        assert res.json()["art_style_config"] == project["art_style_config"]

    def test_delete_needs_confirm(self, client):
        project = _create(client)

        res = client.delete(f"/api/projects/{project['id']}")
        assert res.json()["status"] == "CONFIRMATION_REQUIRED"
        assert client.get(f"/api/projects/{project['id']}").status_code == 200

        res = client.delete(f"/api/projects/{project['id']}", params={"confirm": "true"})
        assert res.json()["status"] == "COMPLETED"
        assert client.get(f"/api/projects/{project['id']}").status_code == 404


    def test_switching_projects_keeps_unsaved_edits(self, client, studio):
        studio.save_settings(studio.settings.evolve(auto_save=False))
        first = _create(client, "First")
        second = _create(client, "Second")
        sid = first["segments"][0]["id"]

        client.put(f"/api/projects/{first['id']}/segments/{sid}/script", json={"script_raw": "draft"})
        assert studio.store.get_project(first["id"]).segments[0].script_raw == ""

        client.get(f"/api/projects/{second['id']}")
        assert studio.store.get_project(first["id"]).segments[0].script_raw == "draft"

    def test_manual_save(self, client, studio):
        studio.save_settings(studio.settings.evolve(auto_save=False))
        project = _create(client)
        client.put(f"/api/projects/{project['id']}", json={"title": "Renamed"})
        assert studio.store.get_project(project["id"]).title == "Rain Noir"

        res = client.post(f"/api/projects/{project['id']}/save")
        assert res.json()["title"] == "Renamed"
        assert studio.store.get_project(project["id"]).title == "Renamed"


class TestStoryboardApi:

    def test_analyze_then_generate(self, client):
        project = _create(client)
        pid, sid = project["id"], project["segments"][0]["id"]

        res = client.post(f"/api/projects/{pid}/segments/{sid}/analyze", json={"script_raw": DETECTIVE_SCRIPT})
        assert res.status_code == 200
        shots = res.json()["shots"]
        assert len(shots) == 1

        shot_path = f"/api/projects/{pid}/segments/{sid}/shots/{shots[0]['id']}"
        assert client.post(f"{shot_path}/generate", params={"frame": "end"}).status_code == 400

        res = client.post(f"{shot_path}/generate")
        assert res.json()["status"] == "DONE"

        res = client.post(f"{shot_path}/video", json={})
        assert res.json()["video_url"].endswith(".mp4")

    def test_invalid_frame_param(self, client):
        project = _create(client)
        pid, sid = project["id"], project["segments"][0]["id"]
        res = client.post(f"/api/projects/{pid}/segments/{sid}/shots/x/generate", params={"frame": "middle"})
        assert res.status_code == 422

    def test_analyze_failure_is_502(self, client, studio):
        studio.script_agent = ScriptAgent(api_key="k", client=FakeGenaiClient(error=RuntimeError("down")))
        project = _create(client)
        pid, sid = project["id"], project["segments"][0]["id"]

        res = client.post(f"/api/projects/{pid}/segments/{sid}/analyze", json={"script_raw": DETECTIVE_SCRIPT})
        assert res.status_code == 502
        assert res.json()["detail"] == ANALYZE_FAILED_MESSAGE

    def test_asset_flow(self, client):
        project = _create(client)
        pid = project["id"]

        asset = client.post(f"/api/projects/{pid}/assets", json={"type": "CHARACTER"}).json()
        assert asset["status"] == "PENDING"

        asset = client.post(f"/api/projects/{pid}/assets/{asset['id']}/generate").json()
        assert len(asset["candidates"]) == 4

        res = client.post(f"/api/projects/{pid}/assets/{asset['id']}/select", json={"url": asset["candidates"][0]})
        assert res.json()["status"] == "LOCKED"

        res = client.post(f"/api/projects/{pid}/assets/{asset['id']}/unlock", params={"confirm": "true"})
        assert res.json()["status"] == "COMPLETED"

    def test_unknown_asset_type_is_422(self, client):
        project = _create(client)
        res = client.post(f"/api/projects/{project['id']}/assets", json={"type": "HOLOGRAM"})
        assert res.status_code == 422


class TestMiscApi:

    def test_rules(self, client):
        rules = client.get("/api/rules").json()
        assert rules[0]["id"] == "default"

        created = client.post("/api/rules").json()
        res = client.put(f"/api/rules/{created['id']}", json={"name": "Action", "system_instruction": "fast"})
        assert res.json()["name"] == "Action"
        assert client.put(f"/api/rules/{created['id']}",
                          json={"name": "", "system_instruction": "x"}).status_code == 400

    def test_art_styles_and_settings(self, client):
        styles = client.get("/api/art-styles").json()
        assert "film_noir" in [s["id"] for s in styles]

        settings = client.get("/api/settings").json()
        assert settings["generation_engine"] == "CLOUD_MOCK"

        settings["auto_save"] = False
        assert client.put("/api/settings", json=settings).json()["auto_save"] is False

    def test_global_assets(self, client):
        project = _create(client)
        asset = client.post(f"/api/projects/{project['id']}/assets", json={"type": "SCENE"}).json()

        global_asset = client.post("/api/global-assets",
                                   json={"project_id": project["id"], "asset_id": asset["id"]}).json()
        assert global_asset["scope"] == "GLOBAL"
        assert len(client.get("/api/global-assets").json()) == 1

        res = client.delete(f"/api/global-assets/{global_asset['id']}", params={"confirm": "true"})
        assert res.json()["status"] == "COMPLETED"
