"""
Video Agent: 컷 단위 영상 생성.

현재는 모의(mock) 구현만 제공합니다. 고정 지연 후 샘플 영상 URL을 반환하며,
실제 영상은 업로드(upload)로 연결합니다.
"""

import asyncio

from schemas import Shot
from utils.constants import MOCK_VIDEO_DELAY_SEC, MOCK_VIDEO_URL
from utils.logger import get_logger

logger = get_logger("video_agent")


class VideoAgent:
    """
    비디오 생성 에이전트 (mock)

    Args:
        delay_sec: 샘플 URL 반환 전 인위적 지연
    """

    def __init__(self, delay_sec: float = MOCK_VIDEO_DELAY_SEC):
        self.delay_sec = delay_sec

    async def generate_video(self, shot: Shot) -> str:
        """컷 이미지(또는 프롬프트)로 영상 생성 → 영상 URL"""
        logger.info(f"Generating video for shot {shot.id} (mock)")
        await asyncio.sleep(self.delay_sec)
        return MOCK_VIDEO_URL
