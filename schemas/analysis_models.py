"""
Script Analysis Response Models

LLM이 반환하는 고정 스키마(characters / scenes / shots)를 도메인 객체로 만들기 전에
검증하는 디코딩 계층입니다. 키 이름은 LLM 스키마(camelCase)를 alias로 받습니다.
"""

from typing import Optional, List

from pydantic import BaseModel, ConfigDict, Field


class _AnalysisModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class ExtractedEntity(_AnalysisModel):
    """캐릭터 또는 장면 (name + description + visualPrompt)"""
    name: str = Field(..., min_length=1)
    description: str = ""
    visual_prompt: str = Field(default="", alias="visualPrompt")


class ExtractedShot(_AnalysisModel):
    """LLM이 분할한 컷"""
    id: Optional[str] = None
    sequence: int
    script_content: str = Field(default="", alias="scriptContent")
    visual_prompt: str = Field(default="", alias="visualPrompt")
    shot_type: str = Field(default="", alias="shotType")
    camera_movement: str = Field(default="", alias="cameraMovement")
    involved_character_names: List[str] = Field(default_factory=list)
    involved_scene_name: Optional[str] = None


class ScriptAnalysis(_AnalysisModel):
    """스크립트 해석 결과"""
    characters: List[ExtractedEntity]
    scenes: List[ExtractedEntity]
    shots: List[ExtractedShot]


# Gemini responseSchema (google-genai 는 OpenAPI 스타일 dict 스키마를 받음)
RESPONSE_SCHEMA = {
    "type": "OBJECT",
    "properties": {
        "characters": {
            "type": "ARRAY",
            "items": {
                "type": "OBJECT",
                "properties": {
                    "name": {"type": "STRING", "description": "Character name in the script's language"},
                    "description": {"type": "STRING", "description": "Character role and basic info"},
                    "visualPrompt": {
                        "type": "STRING",
                        "description": "Detailed visual description in English tags for Stable Diffusion "
                                       "(e.g., '1girl, detective, trench coat, neon lights, highly detailed face')",
                    },
                },
                "required": ["name", "description", "visualPrompt"],
            },
        },
        "scenes": {
            "type": "ARRAY",
            "items": {
                "type": "OBJECT",
                "properties": {
                    "name": {"type": "STRING", "description": "Scene name in the script's language"},
                    "description": {"type": "STRING", "description": "Atmosphere and location info"},
                    "visualPrompt": {
                        "type": "STRING",
                        "description": "Detailed environment description in English tags "
                                       "(e.g., 'futuristic city street, rain, neon signs, cinematic lighting, 8k')",
                    },
                },
                "required": ["name", "description", "visualPrompt"],
            },
        },
        "shots": {
            "type": "ARRAY",
            "items": {
                "type": "OBJECT",
                "properties": {
                    "id": {"type": "STRING"},
                    "sequence": {"type": "INTEGER"},
                    "scriptContent": {"type": "STRING"},
                    "visualPrompt": {
                        "type": "STRING",
                        "description": "A highly descriptive stable diffusion prompt for this specific shot",
                    },
                    "shotType": {"type": "STRING", "description": "e.g., Wide Shot, Close Up"},
                    "cameraMovement": {"type": "STRING", "description": "e.g., Pan, Tilt, Dolly"},
                    "involved_character_names": {"type": "ARRAY", "items": {"type": "STRING"}},
                    "involved_scene_name": {"type": "STRING"},
                },
                "required": ["id", "sequence", "scriptContent", "visualPrompt", "shotType", "cameraMovement"],
            },
        },
    },
    "required": ["characters", "scenes", "shots"],
}
