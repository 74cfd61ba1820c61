import json
import os
import datetime
from typing import Dict, Any, List

from utils.logger import get_logger

logger = get_logger("errors")


class ErrorManager:
    """
    Centralized manager for recording gateway errors (ComfyUI, Gemini).

    최근 MAX_ENTRIES 개의 오류만 JSON 배열로 보관합니다.
    """

    LOG_FILE = os.getenv("DIRECTORAI_ERROR_LOG", "data/api_errors.log")
    MAX_ENTRIES = 100

    @classmethod
    def log_error(
        cls,
        service: str,
        error_message: str,
        details: Any = None,
        severity: str = "error"
    ):
        """
        Log an error to the log file.

        Args:
            service: Name of the service/agent (e.g., "ScriptAgent", "ComfyUI")
            error_message: Brief error description
            details: Additional context (exception text, prompt id ...)
            severity: Error severity ("warning", "error", "critical")
        """
        entry = {
            "timestamp": datetime.datetime.now().isoformat(),
            "service": service,
            "message": error_message,
            "details": str(details) if details else None,
            "severity": severity
        }

        log_level = {"warning": "warning", "critical": "critical"}.get(severity, "error")
        getattr(logger, log_level)(f"{service}: {error_message}" + (f" ({details})" if details else ""))

        try:
            log_dir = os.path.dirname(cls.LOG_FILE)
            if log_dir:
                os.makedirs(log_dir, exist_ok=True)

            logs = cls._read_logs()
            logs.append(entry)
            logs = logs[-cls.MAX_ENTRIES:]

            with open(cls.LOG_FILE, 'w', encoding='utf-8') as f:
                json.dump(logs, f, indent=2, ensure_ascii=False)
        except OSError as e:
            # 로그 파일 쓰기 실패는 critical 로그로만 남김
            logger.critical(f"Failed to write to error log: {e}")

    @classmethod
    def _read_logs(cls) -> List[Dict]:
        if not os.path.exists(cls.LOG_FILE):
            return []
        try:
            with open(cls.LOG_FILE, 'r', encoding='utf-8') as f:
                content = f.read()
            return json.loads(content) if content.strip() else []
        except json.JSONDecodeError:
            return []  # Reset if corrupted

    @classmethod
    def get_recent_errors(cls, limit: int = 20) -> List[Dict]:
        """Get recent error logs (newest first)."""
        logs = cls._read_logs()
        return sorted(logs, key=lambda x: x['timestamp'], reverse=True)[:limit]

    @classmethod
    def clear_logs(cls):
        """Clear the error log file."""
        if os.path.exists(cls.LOG_FILE):
            os.remove(cls.LOG_FILE)
