"""
LLM 응답 파싱 유틸리티

Gemini가 response_mime_type=application/json 으로도 가끔 마크다운 코드블록을
씌워 반환하므로, 코드블록을 벗긴 뒤 JSON으로 파싱합니다.
"""
import json
from typing import Any, Optional

from utils.errors import ScriptParseError


def strip_code_fence(text: str) -> str:
    """```json ... ``` / ``` ... ``` 래핑 제거"""
    text = text.strip()
    if not text.startswith("```"):
        return text
    parts = text.split("```")
    if len(parts) >= 3:
        inner = parts[1]
        if inner.startswith("json"):
            inner = inner[4:]
        return inner.strip()
    # 닫는 ``` 없는 경우
    text = text.split("\n", 1)[1] if "\n" in text else text[3:]
    return text.strip()


def parse_llm_json(text: Optional[str]) -> Any:
    """LLM 응답 텍스트를 JSON으로 파싱.

    Raises:
        ScriptParseError: 응답이 비었거나 JSON이 아닐 때
    """
    if text is None or not text.strip():
        raise ScriptParseError("Empty response from language model")
    try:
        return json.loads(strip_code_fence(text))
    except json.JSONDecodeError as e:
        raise ScriptParseError("Language model response is not valid JSON", {"error": str(e)}) from e
