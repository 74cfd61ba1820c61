"""
DirectorAI Data Models

공통 데이터 모델 정의 (Pydantic 기반)
- Asset: 캐릭터/장면/소품/음악/음색/모델 에셋
- Shot: 콘티 한 컷
- ScriptSegment: 스크립트 한 장(챕터)
- ParsingRule: 스크립트 해석 지시문 템플릿
- ArtStyle: 프로젝트 전체에 적용되는 스타일 프롬프트 쌍
- Project / ProjectMetadata: 프로젝트 본문과 목록용 요약
- ProjectSettings: 생성 엔진/저장 설정
- ConfirmationResult: 파괴적 작업의 확인 요청/결과

모든 모델은 frozen 입니다. 상태 변경은 evolve()로 새 인스턴스를 만듭니다.
"""

import time
import uuid
from enum import Enum
from typing import Optional, List, Any

from pydantic import BaseModel, ConfigDict, Field, model_validator


def now_ms() -> int:
    """현재 시각 (epoch 밀리초)"""
    return int(time.time() * 1000)


def new_id(prefix: str) -> str:
    """접두사가 붙은 불투명 ID 생성"""
    return f"{prefix}_{now_ms()}_{uuid.uuid4().hex[:6]}"


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True)

    def evolve(self, **updates: Any):
        """updates를 반영한 새 인스턴스 (검증 포함)"""
        data = dict(self)
        data.update(updates)
        return type(self).model_validate(data)


class AssetType(str, Enum):
    """에셋 유형"""
    CHARACTER = "CHARACTER"
    SCENE = "SCENE"
    PROP = "PROP"
    MUSIC = "MUSIC"
    VOICE = "VOICE"
    MODEL = "MODEL"

    @property
    def is_visual(self) -> bool:
        return self in (AssetType.CHARACTER, AssetType.SCENE, AssetType.PROP)

    @property
    def is_audio(self) -> bool:
        return self in (AssetType.MUSIC, AssetType.VOICE)


class AssetScope(str, Enum):
    PROJECT = "PROJECT"
    GLOBAL = "GLOBAL"


class AssetStatus(str, Enum):
    """에셋 상태: PENDING → GENERATING → (LOCKED | ERROR)"""
    PENDING = "PENDING"
    GENERATING = "GENERATING"
    LOCKED = "LOCKED"
    ERROR = "ERROR"


class ShotStatus(str, Enum):
    """컷 상태: PENDING → GENERATING → DONE (실패 시 PENDING 복귀)"""
    PENDING = "PENDING"
    GENERATING = "GENERATING"
    DONE = "DONE"


class GenerationEngine(str, Enum):
    COMFY_LOCAL = "COMFY_LOCAL"
    COMFY_REMOTE = "COMFY_REMOTE"
    CLOUD_MOCK = "CLOUD_MOCK"


class AssetUsageLog(_Frozen):
    """에셋이 추출된 챕터 기록"""
    segment_id: str
    segment_name: str
    timestamp: int = Field(default_factory=now_ms)


class Asset(_Frozen):
    """재사용 가능한 캐릭터/장면/소품/음악/음색/모델 에셋"""
    id: str
    name: str
    type: AssetType
    description: str = ""
    visual_prompt: str = ""
    tags: List[str] = Field(default_factory=list)
    scope: AssetScope = AssetScope.PROJECT
    project_id: Optional[str] = None
    status: AssetStatus = AssetStatus.PENDING
    reference_image: Optional[str] = Field(default=None, description="잠금된 대표 이미지 URL")
    audio_url: Optional[str] = None
    model_url: Optional[str] = None
    local_path: Optional[str] = Field(default=None, description="LoRA 파일명 등 로컬 경로")
    trigger_words: Optional[str] = None
    candidates: Optional[List[str]] = Field(default=None, description="생성된 후보 이미지 URL")
    seed: Optional[int] = None
    usage_log: List[AssetUsageLog] = Field(default_factory=list)

    @property
    def media_reference(self) -> Optional[str]:
        """유형에 맞는 미디어 참조 (시각형: 이미지, 오디오형: 오디오 URL)"""
        if self.type.is_visual:
            return self.reference_image
        if self.type.is_audio:
            return self.audio_url
        return self.model_url or self.local_path or self.reference_image

    @model_validator(mode="after")
    def _locked_requires_media(self):
        if self.status == AssetStatus.LOCKED and not self.media_reference:
            raise ValueError(f"LOCKED asset '{self.name}' has no media reference")
        return self


class AssetReference(_Frozen):
    """생성 요청에 첨부되는 참조 에셋 (잠금된 캐릭터/장면)"""
    name: str
    visual_prompt: str
    image_url: Optional[str] = None

    @classmethod
    def from_asset(cls, asset: Asset) -> "AssetReference":
        return cls(name=asset.name, visual_prompt=asset.visual_prompt, image_url=asset.reference_image)


class Shot(_Frozen):
    """콘티 한 컷. sequence가 챕터 내 렌더 순서를 결정."""
    id: str
    sequence: int
    script_content: str = ""
    visual_prompt: str = ""
    shot_type: str = ""
    camera_movement: str = ""
    assigned_asset_ids: List[str] = Field(default_factory=list)
    status: ShotStatus = ShotStatus.PENDING
    image_url: Optional[str] = None
    middle_frame_urls: List[str] = Field(default_factory=list)
    end_frame_url: Optional[str] = None
    video_url: Optional[str] = None
    audio_url: Optional[str] = None
    voice_asset_id: Optional[str] = None
    transition_type: Optional[str] = None


class ScriptSegment(_Frozen):
    """스크립트 한 장 (챕터)"""
    id: str
    name: str
    script_raw: str = ""
    shots: List[Shot] = Field(default_factory=list)
    last_modified: int = Field(default_factory=now_ms)


class ParsingRule(_Frozen):
    """LLM에 그대로 전달되는 해석 지시문 템플릿"""
    id: str
    name: str
    system_instruction: str
    is_default: bool = False


class ArtStyle(_Frozen):
    """프로젝트 전체 생성에 적용되는 positive/negative 프롬프트 쌍"""
    id: str
    label: str
    positive_prompt: str = ""
    negative_prompt: str = ""
    lora_model: Optional[str] = None
    lora_weight: Optional[float] = None


class Project(_Frozen):
    """프로젝트 (aggregate root)"""
    id: str
    title: str
    directory_path: str = ""
    created_at: int = Field(default_factory=now_ms)
    last_modified: int = Field(default_factory=now_ms)
    art_style_config: ArtStyle
    assets: List[Asset] = Field(default_factory=list)
    bgm_asset_id: Optional[str] = None
    segments: List[ScriptSegment] = Field(default_factory=list)

    @property
    def shot_count(self) -> int:
        return sum(len(seg.shots) for seg in self.segments)

    def find_segment(self, segment_id: str) -> Optional[ScriptSegment]:
        return next((s for s in self.segments if s.id == segment_id), None)

    def find_asset(self, asset_id: str) -> Optional[Asset]:
        return next((a for a in self.assets if a.id == asset_id), None)


class ProjectMetadata(_Frozen):
    """대시보드 목록용 요약 (프로젝트 저장 시마다 재계산)"""
    id: str
    title: str
    last_modified: int
    shot_count: int = 0
    cover_image: Optional[str] = None
    art_style_label: Optional[str] = None


class ProjectSettings(_Frozen):
    """생성 엔진/저장 설정"""
    generation_engine: GenerationEngine = GenerationEngine.CLOUD_MOCK
    comfy_ui_url: str = "http://127.0.0.1:8188"
    auto_save: bool = True
    default_resolution: str = "1080p"
    local_data_path: str = "data"


class ConfirmationStatus(str, Enum):
    CONFIRMATION_REQUIRED = "CONFIRMATION_REQUIRED"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class ConfirmationResult(_Frozen):
    """
    파괴적 작업의 확인 결과

    confirmed 없이 호출되면 CONFIRMATION_REQUIRED와 안내 메시지를 돌려주고,
    호출자가 사용자에게 묻는 방식을 결정합니다.
    """
    status: ConfirmationStatus
    action: str
    target_id: str
    message: str = ""

    @property
    def completed(self) -> bool:
        return self.status == ConfirmationStatus.COMPLETED
