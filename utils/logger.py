"""
DirectorAI 로거

모든 모듈은 "directorai.<name>" 네임스페이스 로거를 사용합니다.
- LOG_LEVEL: 로그 레벨 (기본 DEBUG)
- DIRECTORAI_LOG_FILE: 설정 시 파일에도 기록
"""
import logging
import sys
import os

LOG_FORMAT = "%(asctime)s [%(name)s] %(levelname)s %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def get_logger(name: str) -> logging.Logger:
    logger = logging.getLogger(f"directorai.{name}")
    if not logger.handlers:
        formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)

        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(formatter)
        logger.addHandler(handler)

        log_file = os.getenv("DIRECTORAI_LOG_FILE")
        if log_file:
            os.makedirs(os.path.dirname(os.path.abspath(log_file)), exist_ok=True)
            file_handler = logging.FileHandler(log_file, encoding="utf-8")
            file_handler.setFormatter(formatter)
            logger.addHandler(file_handler)

        level = os.getenv("LOG_LEVEL", "DEBUG").upper()
        logger.setLevel(getattr(logging, level, logging.DEBUG))
    return logger
