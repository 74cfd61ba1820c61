"""
DirectorAI FastAPI Server

StudioController 를 HTTP 로 노출하는 API 서버.
프로젝트 단위 요청은 해당 프로젝트를 열어 둔 상태로 처리합니다.
"""

import os
from typing import Dict, List, Optional

from dotenv import load_dotenv

# .env 파일 로드
load_dotenv()

from fastapi import Depends, FastAPI, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from schemas import (
    ArtStyle,
    Asset,
    AssetType,
    ConfirmationResult,
    ParsingRule,
    Project,
    ProjectMetadata,
    ProjectSettings,
    ScriptSegment,
    Shot,
)
from studio import DEFAULT_STYLE_ID, StudioController
from utils.errors import (
    DirectorAIError,
    GenerationError,
    NotFoundError,
    ScriptParseError,
    ValidationError,
)
from utils.logger import get_logger

logger = get_logger("api")

API_VERSION = "1.0"

# FastAPI 앱 생성
app = FastAPI(title="DirectorAI API", version=API_VERSION)

# CORS 설정
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

_studio: Optional[StudioController] = None


def get_studio() -> StudioController:
    """프로세스 단일 컨트롤러 (테스트에서는 dependency_overrides 로 교체)"""
    global _studio
    if _studio is None:
        _studio = StudioController()
    return _studio


def _persist_open(studio: StudioController) -> None:
    # 요청마다 프로젝트가 바뀌므로 전환 전에 auto_save 와 무관하게 저장
    if studio.project is not None:
        studio.save_project()


def _open(studio: StudioController, project_id: str) -> StudioController:
    if studio.project is None or studio.project.id != project_id:
        _persist_open(studio)
        studio.open_project(project_id)
    return studio


# ============================================================================
# 예외 매핑
# ============================================================================

_STATUS_BY_ERROR = {
    NotFoundError: 404,
    ValidationError: 400,
    GenerationError: 502,
    ScriptParseError: 502,
}


@app.exception_handler(DirectorAIError)
async def directorai_error_handler(request: Request, exc: DirectorAIError):
    status_code = next((code for cls, code in _STATUS_BY_ERROR.items() if isinstance(exc, cls)), 500)
    if status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc}")
    return JSONResponse(
        status_code=status_code,
        content={"error": type(exc).__name__, "detail": exc.message, "details": exc.details},
    )


# ============================================================================
# Pydantic 모델
# ============================================================================

class CreateProjectRequest(BaseModel):
    """프로젝트 생성 요청"""
    title: str
    style_id: str = DEFAULT_STYLE_ID
    positive_prompt: Optional[str] = None
    negative_prompt: Optional[str] = None


class UpdateProjectRequest(BaseModel):
    """제목/배경음악 수정 (보낸 필드만 반영)"""
    title: Optional[str] = None
    bgm_asset_id: Optional[str] = None


class ScriptRequest(BaseModel):
    script_raw: str


class AnalyzeRequest(BaseModel):
    script_raw: Optional[str] = None
    rule_id: Optional[str] = None
    rule_instruction: Optional[str] = None


class AddAssetRequest(BaseModel):
    type: AssetType


class UpdateAssetRequest(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    visual_prompt: Optional[str] = None
    tags: Optional[List[str]] = None
    trigger_words: Optional[str] = None
    seed: Optional[int] = None
    local_path: Optional[str] = None


class SelectCandidateRequest(BaseModel):
    url: str


class MediaRequest(BaseModel):
    """업로드된 파일 URL 연결"""
    url: str
    cover: bool = False
    filename: Optional[str] = None


class AssignAssetsRequest(BaseModel):
    asset_ids: List[str] = Field(default_factory=list)


class MiddleFramesRequest(BaseModel):
    urls: List[str]


class FrameUrlRequest(BaseModel):
    url: str


class VideoRequest(BaseModel):
    """url 이 있으면 업로드, 없으면 (mock) 생성"""
    url: Optional[str] = None


class RuleRequest(BaseModel):
    name: str
    system_instruction: str


class GlobalAssetRequest(BaseModel):
    project_id: str
    asset_id: str


class ImportGlobalRequest(BaseModel):
    global_id: str


# ============================================================================
# 프로젝트
# ============================================================================

@app.get("/api/projects", response_model=List[ProjectMetadata])
async def list_projects(studio: StudioController = Depends(get_studio)):
    return studio.list_projects()


@app.post("/api/projects", response_model=Project, status_code=201)
async def create_project(req: CreateProjectRequest, studio: StudioController = Depends(get_studio)):
    _persist_open(studio)
    return studio.create_project(req.title, req.style_id, req.positive_prompt, req.negative_prompt)


@app.get("/api/projects/{project_id}", response_model=Project)
async def get_project(project_id: str, studio: StudioController = Depends(get_studio)):
    return _open(studio, project_id).project


@app.put("/api/projects/{project_id}", response_model=Project)
async def update_project(project_id: str, req: UpdateProjectRequest,
                         studio: StudioController = Depends(get_studio)):
    _open(studio, project_id)
    if req.title is not None:
        studio.update_project_title(req.title)
    if "bgm_asset_id" in req.model_fields_set:
        studio.set_bgm(req.bgm_asset_id)
    return studio.project


@app.post("/api/projects/{project_id}/save", response_model=Project)
async def save_project(project_id: str, studio: StudioController = Depends(get_studio)):
    """수동 저장 (auto_save 가 꺼져 있을 때)"""
    return _open(studio, project_id).save_project()


@app.delete("/api/projects/{project_id}", response_model=ConfirmationResult)
async def delete_project(project_id: str, confirm: Optional[bool] = Query(None),
                         studio: StudioController = Depends(get_studio)):
    return studio.delete_project(project_id, confirmed=confirm)


# ============================================================================
# 챕터 / 스크립트
# ============================================================================

@app.post("/api/projects/{project_id}/segments", response_model=ScriptSegment, status_code=201)
async def add_segment(project_id: str, studio: StudioController = Depends(get_studio)):
    return _open(studio, project_id).add_segment()


@app.put("/api/projects/{project_id}/segments/{segment_id}/script", response_model=ScriptSegment)
async def save_script(project_id: str, segment_id: str, req: ScriptRequest,
                      studio: StudioController = Depends(get_studio)):
    return _open(studio, project_id).save_script(segment_id, req.script_raw)


@app.post("/api/projects/{project_id}/segments/{segment_id}/analyze", response_model=ScriptSegment)
async def analyze_script(project_id: str, segment_id: str, req: AnalyzeRequest,
                         studio: StudioController = Depends(get_studio)):
    """스크립트 해석 → 에셋 병합 + 컷 교체"""
    return await _open(studio, project_id).analyze_script(
        segment_id, req.script_raw, req.rule_id, req.rule_instruction
    )


# ============================================================================
# 에셋
# ============================================================================

@app.post("/api/projects/{project_id}/assets", response_model=Asset, status_code=201)
async def add_asset(project_id: str, req: AddAssetRequest, studio: StudioController = Depends(get_studio)):
    return _open(studio, project_id).add_asset(req.type)


@app.post("/api/projects/{project_id}/assets/import", response_model=Asset, status_code=201)
async def import_global_asset(project_id: str, req: ImportGlobalRequest,
                              studio: StudioController = Depends(get_studio)):
    return _open(studio, project_id).import_global_asset(req.global_id)


@app.put("/api/projects/{project_id}/assets/{asset_id}", response_model=Asset)
async def update_asset(project_id: str, asset_id: str, req: UpdateAssetRequest,
                       studio: StudioController = Depends(get_studio)):
    return _open(studio, project_id).update_asset(asset_id, req.model_dump(exclude_unset=True))


@app.delete("/api/projects/{project_id}/assets/{asset_id}", response_model=ConfirmationResult)
async def delete_asset(project_id: str, asset_id: str, confirm: Optional[bool] = Query(None),
                       studio: StudioController = Depends(get_studio)):
    return _open(studio, project_id).delete_asset(asset_id, confirmed=confirm)


@app.post("/api/projects/{project_id}/assets/{asset_id}/generate", response_model=Asset)
async def generate_asset(project_id: str, asset_id: str, studio: StudioController = Depends(get_studio)):
    """후보 이미지 4장 생성"""
    return await _open(studio, project_id).generate_asset(asset_id)


@app.post("/api/projects/{project_id}/assets/{asset_id}/select", response_model=Asset)
async def select_candidate(project_id: str, asset_id: str, req: SelectCandidateRequest,
                           studio: StudioController = Depends(get_studio)):
    return _open(studio, project_id).select_candidate(asset_id, req.url)


@app.post("/api/projects/{project_id}/assets/{asset_id}/unlock", response_model=ConfirmationResult)
async def unlock_asset(project_id: str, asset_id: str, confirm: Optional[bool] = Query(None),
                       studio: StudioController = Depends(get_studio)):
    return _open(studio, project_id).unlock_asset(asset_id, confirmed=confirm)


@app.post("/api/projects/{project_id}/assets/{asset_id}/media", response_model=Asset)
async def attach_media(project_id: str, asset_id: str, req: MediaRequest,
                       studio: StudioController = Depends(get_studio)):
    return _open(studio, project_id).attach_asset_media(asset_id, req.url, req.cover, req.filename)


# ============================================================================
# 콘티 (컷)
# ============================================================================

_SHOT_PATH = "/api/projects/{project_id}/segments/{segment_id}/shots/{shot_id}"


@app.post(_SHOT_PATH + "/generate", response_model=Shot)
async def generate_shot_frame(project_id: str, segment_id: str, shot_id: str,
                              frame: str = Query("start", pattern="^(start|end)$"),
                              studio: StudioController = Depends(get_studio)):
    return await _open(studio, project_id).generate_shot_frame(segment_id, shot_id, frame)


@app.post(_SHOT_PATH + "/move", response_model=List[Shot])
async def move_shot(project_id: str, segment_id: str, shot_id: str,
                    direction: str = Query(..., pattern="^(up|down)$"),
                    studio: StudioController = Depends(get_studio)):
    return _open(studio, project_id).move_shot(segment_id, shot_id, direction)


@app.put(_SHOT_PATH + "/assets", response_model=Shot)
async def assign_shot_assets(project_id: str, segment_id: str, shot_id: str, req: AssignAssetsRequest,
                             studio: StudioController = Depends(get_studio)):
    return _open(studio, project_id).assign_shot_assets(segment_id, shot_id, req.asset_ids)


@app.post(_SHOT_PATH + "/middle-frames", response_model=Shot)
async def add_middle_frames(project_id: str, segment_id: str, shot_id: str, req: MiddleFramesRequest,
                            studio: StudioController = Depends(get_studio)):
    return _open(studio, project_id).add_middle_frames(segment_id, shot_id, req.urls)


@app.delete(_SHOT_PATH + "/middle-frames/{index}", response_model=Shot)
async def remove_middle_frame(project_id: str, segment_id: str, shot_id: str, index: int,
                              studio: StudioController = Depends(get_studio)):
    return _open(studio, project_id).remove_middle_frame(segment_id, shot_id, index)


@app.put(_SHOT_PATH + "/end-frame", response_model=Shot)
async def set_end_frame(project_id: str, segment_id: str, shot_id: str, req: FrameUrlRequest,
                        studio: StudioController = Depends(get_studio)):
    return _open(studio, project_id).set_end_frame(segment_id, shot_id, req.url)


@app.post(_SHOT_PATH + "/video", response_model=Shot)
async def shot_video(project_id: str, segment_id: str, shot_id: str, req: VideoRequest,
                     studio: StudioController = Depends(get_studio)):
    _open(studio, project_id)
    if req.url:
        return studio.upload_shot_video(segment_id, shot_id, req.url)
    return await studio.generate_shot_video(segment_id, shot_id)


@app.post(_SHOT_PATH + "/to-asset", response_model=ConfirmationResult)
async def save_shot_as_asset(project_id: str, segment_id: str, shot_id: str,
                             confirm: Optional[bool] = Query(None),
                             studio: StudioController = Depends(get_studio)):
    return _open(studio, project_id).save_shot_as_asset(segment_id, shot_id, confirmed=confirm)


# ============================================================================
# 파싱 규칙
# ============================================================================

@app.get("/api/rules", response_model=List[ParsingRule])
async def list_rules(studio: StudioController = Depends(get_studio)):
    return studio.list_rules()


@app.post("/api/rules", response_model=ParsingRule, status_code=201)
async def create_rule(studio: StudioController = Depends(get_studio)):
    return studio.create_rule()


@app.put("/api/rules/{rule_id}", response_model=ParsingRule)
async def save_rule(rule_id: str, req: RuleRequest, studio: StudioController = Depends(get_studio)):
    existing = next((r for r in studio.list_rules() if r.id == rule_id), None)
    return studio.save_rule(ParsingRule(
        id=rule_id,
        name=req.name,
        system_instruction=req.system_instruction,
        is_default=existing.is_default if existing else False,
    ))


@app.delete("/api/rules/{rule_id}", response_model=ConfirmationResult)
async def delete_rule(rule_id: str, confirm: Optional[bool] = Query(None),
                      studio: StudioController = Depends(get_studio)):
    return studio.delete_rule(rule_id, confirmed=confirm)


# ============================================================================
# 설정 / 스타일 / 글로벌 에셋
# ============================================================================

@app.get("/api/settings", response_model=ProjectSettings)
async def get_settings(studio: StudioController = Depends(get_studio)):
    return studio.settings


@app.put("/api/settings", response_model=ProjectSettings)
async def save_settings(req: ProjectSettings, studio: StudioController = Depends(get_studio)):
    return studio.save_settings(req)


@app.get("/api/settings/connection")
async def check_connection(url: Optional[str] = None, studio: StudioController = Depends(get_studio)):
    """ComfyUI 연결 테스트"""
    connected = await studio.check_connection(url)
    return {"connected": connected, "url": url or studio.settings.comfy_ui_url}


@app.get("/api/art-styles", response_model=List[ArtStyle])
async def list_art_styles(studio: StudioController = Depends(get_studio)):
    return studio.art_styles


@app.get("/api/global-assets", response_model=List[Asset])
async def list_global_assets(studio: StudioController = Depends(get_studio)):
    return studio.list_global_assets()


@app.post("/api/global-assets", response_model=Asset, status_code=201)
async def add_global_asset(req: GlobalAssetRequest, studio: StudioController = Depends(get_studio)):
    return _open(studio, req.project_id).add_to_global(req.asset_id)


@app.delete("/api/global-assets/{global_id}", response_model=ConfirmationResult)
async def delete_global_asset(global_id: str, confirm: Optional[bool] = Query(None),
                              studio: StudioController = Depends(get_studio)):
    return studio.delete_global_asset(global_id, confirmed=confirm)


@app.get("/health")
async def health_check() -> Dict[str, str]:
    """헬스 체크"""
    return {"status": "ok", "version": API_VERSION}


if __name__ == "__main__":
    import uvicorn

    print("""
============================================================
              DirectorAI API Server v1.0
============================================================
  Server: http://localhost:8000
  API Docs: http://localhost:8000/docs
============================================================
    """)

    port = int(os.getenv("PORT", 8000))
    uvicorn.run(
        "api_server:app",
        host="0.0.0.0",
        port=port,
        reload=False,
        log_level="info"
    )
