"""
DirectorAI Agents Package

에이전트 기반 아키텍처:
- ImageAgent: ComfyUI 이미지 생성 (mock 폴백)
- ScriptAgent: Gemini 스크립트 해석
- AssetAgent: 에셋 추출/병합/잠금
- StoryboardAgent: 콘티 컷 생성/편집
- VideoAgent: 컷 영상 생성 (mock)
"""

from .image_agent import ImageAgent
from .script_agent import ScriptAgent
from .asset_agent import AssetAgent
from .storyboard_agent import StoryboardAgent
from .video_agent import VideoAgent

__all__ = [
    "ImageAgent",
    "ScriptAgent",
    "AssetAgent",
    "StoryboardAgent",
    "VideoAgent",
]
