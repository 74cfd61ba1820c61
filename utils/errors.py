"""
DirectorAI Custom Exceptions
"""


class DirectorAIError(Exception):
    """Base exception for all DirectorAI errors."""

    def __init__(self, message: str, details: dict = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self):
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class GenerationError(DirectorAIError):
    """ComfyUI 작업 제출/대기/결과 조회 실패."""
    pass


class ScriptParseError(DirectorAIError):
    """LLM 응답이 비었거나 스키마와 맞지 않음."""
    pass


class NotFoundError(DirectorAIError):
    """Raised when a project, segment, shot, asset or rule id is unknown."""
    pass


class ValidationError(DirectorAIError):
    """사용자 입력 검증 실패 (빈 제목, 빈 규칙 이름 등)."""
    pass
