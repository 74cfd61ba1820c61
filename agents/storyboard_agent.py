"""
Storyboard Agent: 콘티 컷 생성과 편집.

컷 이미지 생성 흐름:
1. 관련 에셋 수집 (assigned_asset_ids, 없으면 스크립트 내 이름 매칭)
2. 잠금된 CHARACTER/SCENE 에셋 → 참조, MODEL 에셋 → LoRA 태그
3. 아트 스타일 프리픽스 + LoRA + 컷 프롬프트로 ImageAgent 호출
4. 끝 프레임은 시작 프레임을 입력으로 하는 Img2Img
"""

import random
from dataclasses import dataclass
from typing import List, Optional, Sequence

from schemas import (
    ArtStyle,
    Asset,
    AssetReference,
    AssetStatus,
    AssetType,
    ScriptAnalysis,
    ScriptSegment,
    Shot,
    ShotStatus,
    now_ms,
)
from utils.constants import START_FRAME_REQUIRED_MESSAGE
from utils.errors import NotFoundError, ValidationError
from utils.logger import get_logger
from utils.prompt_builder import PromptBuilder

logger = get_logger("storyboard_agent")

FRAME_START = "start"
FRAME_END = "end"

MOVE_UP = "up"
MOVE_DOWN = "down"


@dataclass(frozen=True)
class FrameRequest:
    """ImageAgent.generate_image 호출 인자 묶음"""
    prompt: str
    negative_prompt: str
    asset_references: List[AssetReference]
    input_image: Optional[str] = None


class StoryboardAgent:
    """
    콘티 에이전트

    Args:
        image_agent: 프레임 생성용 ImageAgent
    """

    def __init__(self, image_agent=None):
        self.image_agent = image_agent

    @staticmethod
    def shots_from_analysis(analysis: ScriptAnalysis, segment: ScriptSegment) -> List[Shot]:
        """해석 결과 컷 → PENDING Shot (에셋 배정 없음)"""
        timestamp = now_ms()
        return [
            Shot(
                id=f"shot_{segment.id}_{s.sequence}_{timestamp}_{i}",
                sequence=s.sequence,
                script_content=s.script_content,
                visual_prompt=s.visual_prompt,
                shot_type=s.shot_type,
                camera_movement=s.camera_movement,
                assigned_asset_ids=[],
                status=ShotStatus.PENDING,
            )
            for i, s in enumerate(analysis.shots)
        ]

    @staticmethod
    def find(shots: Sequence[Shot], shot_id: str) -> Shot:
        for shot in shots:
            if shot.id == shot_id:
                return shot
        raise NotFoundError(f"Shot not found: {shot_id}")

    @staticmethod
    def replace(shots: Sequence[Shot], updated: Shot) -> List[Shot]:
        return [updated if s.id == updated.id else s for s in shots]

    # ------------------------------------------------------------------
    # 프레임 생성
    # ------------------------------------------------------------------

    @staticmethod
    def relevant_assets(shot: Shot, assets: Sequence[Asset]) -> List[Asset]:
        """배정된 에셋, 없으면 스크립트 본문에 이름이 등장하는 에셋"""
        relevant = [a for a in assets if a.id in shot.assigned_asset_ids]
        if not relevant:
            relevant = [a for a in assets if a.name and a.name in shot.script_content]
        return relevant

    @classmethod
    def build_frame_request(
        cls,
        shot: Shot,
        assets: Sequence[Asset],
        art_style: ArtStyle,
        frame: str = FRAME_START,
    ) -> FrameRequest:
        if frame not in (FRAME_START, FRAME_END):
            raise ValidationError(f"Unknown frame type: {frame}")

        input_image = None
        if frame == FRAME_END:
            if not shot.image_url:
                raise ValidationError(START_FRAME_REQUIRED_MESSAGE)
            input_image = shot.image_url

        relevant = cls.relevant_assets(shot, assets)
        references = [
            AssetReference.from_asset(a)
            for a in relevant
            if a.type in (AssetType.CHARACTER, AssetType.SCENE)
            and a.status == AssetStatus.LOCKED
            and a.reference_image
        ]
        models = [a for a in relevant if a.type == AssetType.MODEL and a.local_path]
        lora = PromptBuilder.lora_tags(models, art_style)

        return FrameRequest(
            prompt=PromptBuilder.shot_prompt(shot.visual_prompt, art_style, lora),
            negative_prompt=PromptBuilder.negative_prompt(art_style),
            asset_references=references,
            input_image=input_image,
        )

    async def generate_frame(self, request: FrameRequest, seed: Optional[int] = None) -> str:
        """
        Raises:
            GenerationError: ImageAgent 실패
        """
        if seed is None:
            seed = random.randint(0, 999999)
        return await self.image_agent.generate_image(
            request.prompt,
            request.negative_prompt,
            seed,
            request.asset_references,
            request.input_image,
        )

    # ------------------------------------------------------------------
    # 상태 전이
    # ------------------------------------------------------------------

    @staticmethod
    def mark_generating(shot: Shot) -> Shot:
        return shot.evolve(status=ShotStatus.GENERATING)

    @staticmethod
    def apply_frame(shot: Shot, frame: str, url: str) -> Shot:
        if frame == FRAME_END:
            return shot.evolve(status=ShotStatus.DONE, end_frame_url=url)
        return shot.evolve(status=ShotStatus.DONE, image_url=url)

    @staticmethod
    def revert(shot: Shot) -> Shot:
        """실패한 생성은 조용히 PENDING으로"""
        return shot.evolve(status=ShotStatus.PENDING)

    # ------------------------------------------------------------------
    # 편집
    # ------------------------------------------------------------------

    @staticmethod
    def add_middle_frames(shot: Shot, urls: Sequence[str]) -> Shot:
        return shot.evolve(middle_frame_urls=list(shot.middle_frame_urls) + list(urls))

    @staticmethod
    def remove_middle_frame(shot: Shot, index: int) -> Shot:
        if not 0 <= index < len(shot.middle_frame_urls):
            raise ValidationError(f"Middle frame index out of range: {index}")
        frames = [url for i, url in enumerate(shot.middle_frame_urls) if i != index]
        return shot.evolve(middle_frame_urls=frames)

    @staticmethod
    def set_end_frame(shot: Shot, url: str) -> Shot:
        return shot.evolve(end_frame_url=url)

    @staticmethod
    def set_video(shot: Shot, url: str) -> Shot:
        return shot.evolve(video_url=url)

    @staticmethod
    def assign_assets(shot: Shot, asset_ids: Sequence[str]) -> Shot:
        return shot.evolve(assigned_asset_ids=list(asset_ids))

    @staticmethod
    def move_shot(shots: Sequence[Shot], shot_id: str, direction: str) -> List[Shot]:
        """
        컷을 위/아래로 한 칸 이동. 두 컷의 위치와 sequence를 맞바꿉니다.
        첫 컷 위로, 마지막 컷 아래로는 변화 없음.
        """
        if direction not in (MOVE_UP, MOVE_DOWN):
            raise ValidationError(f"Unknown direction: {direction}")
        new_shots = list(shots)
        index = next((i for i, s in enumerate(new_shots) if s.id == shot_id), -1)
        if index == -1:
            raise NotFoundError(f"Shot not found: {shot_id}")

        target = index - 1 if direction == MOVE_UP else index + 1
        if not 0 <= target < len(new_shots):
            return new_shots

        a, b = new_shots[index], new_shots[target]
        new_shots[index] = b.evolve(sequence=a.sequence)
        new_shots[target] = a.evolve(sequence=b.sequence)
        return new_shots
