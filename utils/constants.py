"""
DirectorAI 공통 상수 모듈

프로젝트 전체에서 반복 사용되는 상수를 단일 소스로 관리합니다.
"""
import os

# ─── ComfyUI ───────────────────────────────────────────────
DEFAULT_COMFYUI_URL = os.getenv("COMFYUI_URL", "http://127.0.0.1:8188")
COMFY_CLIENT_PREFIX = "director-ai"
CONNECTION_PROBE_TIMEOUT_SEC = 3.0
SAVE_IMAGE_NODE = "9"
IMG2IMG_DENOISE = 0.6
MAX_SEED = 1_000_000_000

# ─── Placeholder (mock 엔진) ──────────────────────────────
PLACEHOLDER_URL_TEMPLATE = "https://picsum.photos/seed/{seed}/800/450"
MOCK_GENERATION_DELAY_SEC = 1.5
MOCK_VIDEO_DELAY_SEC = 3.0
MOCK_VIDEO_URL = "https://www.w3schools.com/html/mov_bbb.mp4"

# ─── 생성 파라미터 ────────────────────────────────────────
ASSET_CANDIDATE_COUNT = 4
ASSET_NEGATIVE_PROMPT = "ugly, blurry, low quality"
SHOT_NEGATIVE_SUFFIX = "blurry, ugly, low quality"
DEFAULT_LORA_WEIGHT = 0.8

# ─── Gemini 모델명 ────────────────────────────────────────
MODEL_GEMINI_FLASH = "gemini-2.5-flash"

# ─── 저장소 키 ────────────────────────────────────────────
STORAGE_KEY_PROJECTS = "directorai_projects_map"
STORAGE_KEY_META = "directorai_projects_list"
STORAGE_KEY_RULES = "directorai_parsing_rules"
STORAGE_KEY_SETTINGS = "directorai_settings"
STORAGE_KEY_GLOBAL_ASSETS = "directorai_global_assets"

# ─── 태그 ─────────────────────────────────────────────────
TAG_AUTO_EXTRACTED = "AutoExtracted"
TAG_MANUAL = "Manual"
TAG_FROM_SHOT = "FromShot"

# ─── 사용자 메시지 ────────────────────────────────────────
ANALYZE_FAILED_MESSAGE = "해석 실패: 네트워크 또는 API Key를 확인하세요."
EMPTY_SCRIPT_MESSAGE = "스크립트 내용을 입력하세요."
EMPTY_TITLE_MESSAGE = "프로젝트 이름을 입력하세요."
EMPTY_RULE_NAME_MESSAGE = "규칙 이름은 비워둘 수 없습니다."
START_FRAME_REQUIRED_MESSAGE = "먼저 첫 프레임을 생성하세요."
GENERATION_FAILED_MESSAGE = "이미지 생성에 실패했습니다. 다시 시도하세요."

CONFIRM_DELETE_PROJECT = "이 프로젝트를 삭제하시겠습니까? 되돌릴 수 없습니다."
CONFIRM_DELETE_RULE = "이 규칙을 삭제하시겠습니까? 되돌릴 수 없습니다."
CONFIRM_DELETE_ASSET = "이 에셋을 삭제하시겠습니까? 참조 기록도 함께 사라집니다."
CONFIRM_UNLOCK_ASSET = "잠금을 해제하고 다시 선택하시겠습니까?"
CONFIRM_SHOT_TO_ASSET = "이 이미지를 새 에셋으로 저장하시겠습니까?"

# ─── 기본 이름 ────────────────────────────────────────────
NEW_RULE_NAME = "새 사용자 규칙"
DEFAULT_RULE_NAME = "표준 영화 콘티 (Standard)"
FIRST_SEGMENT_NAME = "제1장 (Chapter 1)"
NEW_SEGMENT_NAME_TEMPLATE = "제{n}장 (New Chapter)"

NEW_ASSET_BASE_NAMES = {
    "CHARACTER": "새 캐릭터",
    "SCENE": "새 장면",
    "MUSIC": "새 음악",
    "MODEL": "새 모델",
}
NEW_ASSET_FALLBACK_NAME = "새 에셋"
