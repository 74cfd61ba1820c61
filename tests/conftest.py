"""
공통 pytest fixture.

- 오류 로그/저장소를 tmp_path 로 격리
- Gemini 클라이언트 대역 (FakeGenaiClient)
- mock 엔진 ImageAgent 를 쓰는 StudioController
- HTTP + WebSocket 을 흉내 내는 fake ComfyUI (make_comfy_app)
"""
import json
import os
import sys
from types import SimpleNamespace

import pytest
from aiohttp import web

# Add project root to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from agents import ImageAgent, ScriptAgent, VideoAgent
from agents.script_agent import DEFAULT_SYSTEM_INSTRUCTION
from schemas import GenerationEngine, ProjectSettings
from studio import StudioController
from utils.error_manager import ErrorManager
from utils.project_store import ProjectStore
from utils.storage import StorageManager


DETECTIVE_SCRIPT = "Detective walks in rain"

DETECTIVE_RESPONSE = json.dumps({
    "characters": [
        {"name": "侦探", "description": "A tired detective", "visualPrompt": "1man, detective, trench coat"},
    ],
    "scenes": [
        {"name": "雨夜街道", "description": "Rainy night street", "visualPrompt": "night street, rain, neon"},
    ],
    "shots": [
        {
            "id": "s1",
            "sequence": 1,
            "scriptContent": "侦探 walks through 雨夜街道",
            "visualPrompt": "detective walking, rain, wide shot",
            "shotType": "Wide Shot",
            "cameraMovement": "Dolly",
        },
    ],
})


class FakeModels:
    """client.models 대역: 호출 인자를 기록하고 고정 응답을 돌려줌"""

    def __init__(self, text=None, error=None):
        self.text = text
        self.error = error
        self.calls = []

    def generate_content(self, model, contents, config):
        self.calls.append({"model": model, "contents": contents, "config": config})
        if self.error:
            raise self.error
        return SimpleNamespace(text=self.text)


class FakeGenaiClient:
    def __init__(self, text=None, error=None):
        self.models = FakeModels(text=text, error=error)


@pytest.fixture(autouse=True)
def isolated_env(tmp_path, monkeypatch):
    monkeypatch.setattr(ErrorManager, "LOG_FILE", str(tmp_path / "api_errors.log"))
    for name in ("R2_ACCOUNT_ID", "R2_ACCESS_KEY_ID", "R2_SECRET_ACCESS_KEY", "R2_BUCKET_NAME"):
        monkeypatch.delenv(name, raising=False)
    yield
    ErrorManager.clear_logs()


@pytest.fixture
def storage(tmp_path):
    return StorageManager(data_dir=str(tmp_path / "data"))


@pytest.fixture
def store(storage):
    return ProjectStore(storage, default_instruction=DEFAULT_SYSTEM_INSTRUCTION)


@pytest.fixture
def genai_client():
    return FakeGenaiClient(text=DETECTIVE_RESPONSE)


@pytest.fixture
def mock_image_agent():
    return ImageAgent(engine=GenerationEngine.CLOUD_MOCK, mock_delay_sec=0)


@pytest.fixture
def studio(store, genai_client, mock_image_agent):
    return StudioController(
        store=store,
        image_agent=mock_image_agent,
        script_agent=ScriptAgent(api_key="test-key", client=genai_client),
        video_agent=VideoAgent(delay_sec=0),
        settings=ProjectSettings(),
    )


def make_comfy_app(prompt_status=200, complete=True, with_images=True, garbage_frame=False, list_history=False):
    """/system_stats, /prompt, /ws, /history 를 흉내 내는 ComfyUI"""
    app = web.Application()
    state = {"queued": [], "counter": 0}

    async def system_stats(request):
        return web.json_response({"system": {"os": "posix"}})

    async def prompt(request):
        body = await request.json()
        state["queued"].append(body)
        if prompt_status != 200:
            return web.Response(status=prompt_status, text="invalid workflow")
        state["counter"] += 1
        return web.json_response({"prompt_id": f"p{state['counter']}"})

    async def ws_handler(request):
        ws = web.WebSocketResponse()
        await ws.prepare(request)
        prompt_id = f"p{state['counter']}"
        await ws.send_json({"type": "status", "data": {"status": {}}})
        await ws.send_bytes(b"preview-bytes")
        if garbage_frame:
            await ws.send_str("not json")
        await ws.send_json({"type": "executing", "data": {"node": "3", "prompt_id": prompt_id}})
        await ws.send_json({"type": "executing", "data": {"node": None, "prompt_id": "someone-else"}})
        if complete:
            await ws.send_json({"type": "executing", "data": {"node": None, "prompt_id": prompt_id}})
        await ws.close()
        return ws

    async def history(request):
        prompt_id = request.match_info["prompt_id"]
        if list_history:
            return web.json_response([prompt_id])
        outputs = {}
        if with_images:
            outputs = {"9": {"images": [
                {"filename": f"DirectorAI_{prompt_id}.png", "subfolder": "", "type": "output"},
            ]}}
        return web.json_response({prompt_id: {"outputs": outputs}})

    app.router.add_get("/system_stats", system_stats)
    app.router.add_post("/prompt", prompt)
    app.router.add_get("/ws", ws_handler)
    app.router.add_get("/history/{prompt_id}", history)
    return app, state
