"""
DirectorAI Configuration Loader
"""

import os
import yaml
from pathlib import Path
from typing import Dict, Any, List, Optional

# 기본 설정 디렉토리
CONFIG_DIR = Path(__file__).parent


def _load_yaml(config_path) -> Optional[Dict[str, Any]]:
    if not os.path.exists(config_path):
        return None
    with open(config_path, "r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def load_settings(config_path: Optional[str] = None) -> Dict[str, Any]:
    """
    기본 프로젝트 설정 로드

    우선순위: 환경변수 > settings.yaml > 기본값

    Args:
        config_path: 설정 파일 경로 (기본: config/settings.yaml)

    Returns:
        ProjectSettings 필드 딕셔너리
    """
    if config_path is None:
        config_path = CONFIG_DIR / "settings.yaml"

    settings = get_default_settings()
    config = _load_yaml(config_path)
    if config:
        settings.update(config.get("settings", {}))

    env_overrides = {
        "generation_engine": os.getenv("DIRECTORAI_ENGINE"),
        "comfy_ui_url": os.getenv("COMFYUI_URL"),
        "local_data_path": os.getenv("DIRECTORAI_DATA_DIR"),
    }
    settings.update({k: v for k, v in env_overrides.items() if v})
    return settings


def get_default_settings() -> Dict[str, Any]:
    """기본 설정 반환"""
    return {
        "generation_engine": "CLOUD_MOCK",
        "comfy_ui_url": "http://127.0.0.1:8188",
        "auto_save": True,
        "default_resolution": "1080p",
        "local_data_path": "data",
    }


def load_art_styles(config_path: Optional[str] = None) -> List[Dict[str, Any]]:
    """
    아트 스타일 프리셋 로드.

    Returns:
        스타일 딕셔너리 리스트 (없으면 기본값)
    """
    if config_path is None:
        config_path = CONFIG_DIR / "art_styles.yaml"

    config = _load_yaml(config_path)
    if not config:
        return get_default_art_styles()
    return config.get("art_styles", get_default_art_styles())


def get_default_art_styles() -> List[Dict[str, Any]]:
    """기본 아트 스타일 프리셋 반환."""
    return [
        {
            "id": "cyberpunk",
            "label": "사이버펑크 (Cyberpunk)",
            "positive_prompt": "cyberpunk style, neon lights, high contrast, futuristic city, rain, wet streets, "
                               "chromatic aberration, masterpiece, best quality, 8k",
            "negative_prompt": "natural light, sunshine, rustic, vintage, low quality, blurry",
        },
        {
            "id": "anime_jp",
            "label": "일본 애니메이션 (Japanese Anime)",
            "positive_prompt": "anime style, makoto shinkai style, vibrant colors, detailed clouds, lens flare, "
                               "beautiful lighting, 2d, flat color, masterpiece",
            "negative_prompt": "photorealistic, 3d, render, western comic style, lowres",
        },
        {
            "id": "pixar_3d",
            "label": "픽사 3D (Pixar Style)",
            "positive_prompt": "3d render, pixar style, disney style, cute, expressive faces, subsurface scattering, "
                               "ambient occlusion, bright lighting, soft shadows, 4k, cgsociety",
            "negative_prompt": "2d, sketch, anime, rough, dark, horror",
        },
        {
            "id": "film_noir",
            "label": "필름 누아르 (Film Noir)",
            "positive_prompt": "cinematic film still, film noir, black and white, dramatic lighting, shadow play, "
                               "grain, analog photography, leica, 35mm",
            "negative_prompt": "color, cartoon, anime, 3d render, digital art, oversaturated",
        },
        {
            "id": "chinese_ink",
            "label": "수묵화 (Chinese Ink)",
            "positive_prompt": "chinese ink painting style, watercolor, traditional art, wash painting, "
                               "calligraphy strokes, elegant, minimalist, mountains, fog",
            "negative_prompt": "photorealistic, cyberpunk, neon, 3d, vibrant colors",
        },
        {
            "id": "custom",
            "label": "사용자 정의 (Custom)",
            "positive_prompt": "",
            "negative_prompt": "",
        },
    ]
