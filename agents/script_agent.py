"""
Script Agent: Gemini로 원본 스크립트를 캐릭터/장면/컷 구조로 분해합니다.

고정 응답 스키마(RESPONSE_SCHEMA)로 JSON을 요청하고, 도메인 객체를 만들기 전에
ScriptAnalysis 모델로 검증합니다. 재시도나 부분 결과 처리는 하지 않습니다.
"""

import os
from typing import Optional

from pydantic import ValidationError as PydanticValidationError

from schemas import ScriptAnalysis, RESPONSE_SCHEMA
from utils.constants import MODEL_GEMINI_FLASH
from utils.error_manager import ErrorManager
from utils.errors import ScriptParseError
from utils.llm_utils import parse_llm_json
from utils.logger import get_logger

logger = get_logger("script_agent")


DEFAULT_SYSTEM_INSTRUCTION = """You are an expert Film Director and Storyboard Artist AI.
Your task is to analyze a raw script (any language) and break it down into a structured production plan.

1. **Assets Extraction**: Extract all key Characters and Scenes.
   - **CRITICAL**: The 'name' field MUST be written in the same language as the script.
   - **CRITICAL**: The 'visualPrompt' MUST be in **English** tags for Stable Diffusion.
2. **Shot Breakdown**: Break the script into individual Shots, numbered by 'sequence' starting at 1.
3. **Visual Translation**: Translate abstract emotions into concrete visual descriptions.

Output valid JSON matching the schema."""


class ScriptAgent:
    """
    스크립트 해석 에이전트 (Gemini 2.5 Flash)

    Args:
        api_key: Google API key (기본: GOOGLE_API_KEY)
        model: Gemini 모델명
        client: 주입할 genai.Client (테스트용)
    """

    def __init__(self, api_key: str = None, model: str = MODEL_GEMINI_FLASH, client=None):
        self.api_key = api_key or os.getenv("GOOGLE_API_KEY")
        self.model = model
        self._client = client

    @property
    def client(self):
        """Lazy initialization of the Gemini client."""
        if self._client is None:
            if not self.api_key:
                raise ScriptParseError("API key is required. Set GOOGLE_API_KEY environment variable.")
            from google import genai
            self._client = genai.Client(api_key=self.api_key)
        return self._client

    def parse(self, script_text: str, instruction_override: Optional[str] = None) -> ScriptAnalysis:
        """
        스크립트를 해석합니다 (단일 블로킹 요청).

        Args:
            script_text: 원본 스크립트
            instruction_override: 파싱 규칙의 system instruction (없으면 기본값)

        Returns:
            검증된 ScriptAnalysis

        Raises:
            ScriptParseError: 요청 실패, 빈 응답, JSON 오류, 스키마 불일치
        """
        from google.genai import types

        config = types.GenerateContentConfig(
            system_instruction=instruction_override or DEFAULT_SYSTEM_INSTRUCTION,
            response_mime_type="application/json",
            response_schema=RESPONSE_SCHEMA,
        )

        logger.info(f"Analyzing script ({len(script_text)} chars) with {self.model}")
        try:
            response = self.client.models.generate_content(
                model=self.model,
                contents=script_text,
                config=config,
            )
        except ScriptParseError:
            raise
        except Exception as e:
            ErrorManager.log_error(
                "ScriptAgent",
                "Gemini API Call Failed",
                f"{type(e).__name__}: {str(e)}",
                severity="critical"
            )
            raise ScriptParseError("Language model request failed", {"error": str(e)}) from e

        return self.decode(getattr(response, "text", None))

    @staticmethod
    def decode(response_text: Optional[str]) -> ScriptAnalysis:
        """LLM 응답 텍스트 → ScriptAnalysis (검증 실패 시 ScriptParseError)"""
        data = parse_llm_json(response_text)
        try:
            analysis = ScriptAnalysis.model_validate(data)
        except PydanticValidationError as e:
            ErrorManager.log_error("ScriptAgent", "Response does not match schema", str(e))
            raise ScriptParseError("Language model response does not match schema",
                                   {"errors": e.error_count()}) from e

        logger.info(
            f"Parsed {len(analysis.characters)} characters, "
            f"{len(analysis.scenes)} scenes, {len(analysis.shots)} shots"
        )
        return analysis
