"""
Asset Agent: 프로젝트 에셋 라이브러리 조작.

상태 머신:
    PENDING → GENERATING → (LOCKED | ERROR)
    - 후보 생성 성공 시 PENDING + candidates, 후보 선택 시 LOCKED
    - LOCKED → PENDING 은 unlock으로만 (대표 이미지 폐기)
    - ERROR → GENERATING 은 재시도

모든 조작은 새 Asset / 새 리스트를 반환합니다 (입력은 변경하지 않음).
"""

from typing import List, Optional, Sequence

from schemas import (
    Asset,
    AssetScope,
    AssetStatus,
    AssetType,
    AssetUsageLog,
    ScriptAnalysis,
    ScriptSegment,
    new_id,
    now_ms,
)
from utils.constants import (
    ASSET_CANDIDATE_COUNT,
    ASSET_NEGATIVE_PROMPT,
    NEW_ASSET_BASE_NAMES,
    NEW_ASSET_FALLBACK_NAME,
    TAG_AUTO_EXTRACTED,
    TAG_FROM_SHOT,
    TAG_MANUAL,
)
from utils.errors import NotFoundError, ValidationError
from utils.logger import get_logger

logger = get_logger("asset_agent")


class AssetAgent:
    """
    에셋 생성/잠금/병합 에이전트

    Args:
        image_agent: 후보 이미지 생성용 ImageAgent
    """

    def __init__(self, image_agent=None):
        self.image_agent = image_agent

    # ------------------------------------------------------------------
    # 추출 / 병합
    # ------------------------------------------------------------------

    @staticmethod
    def extract_assets(analysis: ScriptAnalysis, segment: ScriptSegment) -> List[Asset]:
        """해석 결과의 캐릭터/장면을 PENDING 에셋으로 변환 (AutoExtracted 태그)"""
        usage = AssetUsageLog(segment_id=segment.id, segment_name=segment.name)

        def _build(entity, asset_type: AssetType, prefix: str) -> Asset:
            return Asset(
                id=new_id(prefix),
                name=entity.name,
                type=asset_type,
                description=entity.description,
                visual_prompt=entity.visual_prompt,
                status=AssetStatus.PENDING,
                tags=[TAG_AUTO_EXTRACTED],
                scope=AssetScope.PROJECT,
                usage_log=[usage],
            )

        return (
            [_build(c, AssetType.CHARACTER, "char") for c in analysis.characters]
            + [_build(s, AssetType.SCENE, "scene") for s in analysis.scenes]
        )

    @staticmethod
    def merge_assets(existing: Sequence[Asset], incoming: Sequence[Asset]) -> List[Asset]:
        """
        이름 기준 병합. 기존 이름이 우선하며, 새 목록 안의 중복도 버립니다.
        """
        seen = {a.name for a in existing}
        merged = list(existing)
        for asset in incoming:
            if asset.name in seen:
                continue
            seen.add(asset.name)
            merged.append(asset)
        return merged

    # ------------------------------------------------------------------
    # CRUD
    # ------------------------------------------------------------------

    @staticmethod
    def unique_name(existing: Sequence[Asset], base_name: str) -> str:
        names = {a.name for a in existing}
        name, counter = base_name, 1
        while name in names:
            name = f"{base_name}_{counter}"
            counter += 1
        return name

    @classmethod
    def new_asset(cls, existing: Sequence[Asset], asset_type: AssetType) -> Asset:
        """수동 추가 에셋 (유형별 기본 이름 + 중복 시 _1, _2 ...)"""
        asset_type = AssetType(asset_type)
        base_name = NEW_ASSET_BASE_NAMES.get(asset_type.value, NEW_ASSET_FALLBACK_NAME)
        return Asset(
            id=new_id("user"),
            name=cls.unique_name(existing, base_name),
            type=asset_type,
            tags=[TAG_MANUAL],
            scope=AssetScope.PROJECT,
            status=AssetStatus.PENDING,
        )

    @staticmethod
    def find(assets: Sequence[Asset], asset_id: str) -> Asset:
        for asset in assets:
            if asset.id == asset_id:
                return asset
        raise NotFoundError(f"Asset not found: {asset_id}")

    @staticmethod
    def replace(assets: Sequence[Asset], updated: Asset) -> List[Asset]:
        return [updated if a.id == updated.id else a for a in assets]

    @staticmethod
    def remove(assets: Sequence[Asset], asset_id: str) -> List[Asset]:
        return [a for a in assets if a.id != asset_id]

    # ------------------------------------------------------------------
    # 상태 전이
    # ------------------------------------------------------------------

    @staticmethod
    def mark_generating(asset: Asset) -> Asset:
        if asset.status == AssetStatus.LOCKED:
            raise ValidationError(f"Asset '{asset.name}' is locked; unlock it before regenerating")
        if not asset.type.is_visual:
            raise ValidationError(f"Asset type {asset.type.value} cannot be generated")
        return asset.evolve(status=AssetStatus.GENERATING)

    @staticmethod
    def with_candidates(asset: Asset, urls: List[str]) -> Asset:
        return asset.evolve(status=AssetStatus.PENDING, candidates=list(urls))

    @staticmethod
    def mark_error(asset: Asset) -> Asset:
        return asset.evolve(status=AssetStatus.ERROR)

    @staticmethod
    def select_candidate(asset: Asset, url: str) -> Asset:
        """후보 하나를 대표 이미지로 잠금 (후보 목록은 비움)"""
        if not asset.candidates or url not in asset.candidates:
            raise ValidationError(f"'{url}' is not a candidate of asset '{asset.name}'")
        return asset.evolve(status=AssetStatus.LOCKED, reference_image=url, candidates=None)

    @staticmethod
    def unlock(asset: Asset) -> Asset:
        """LOCKED → PENDING, 대표 이미지 폐기 (시각형 에셋만)"""
        if asset.status != AssetStatus.LOCKED:
            raise ValidationError(f"Asset '{asset.name}' is not locked")
        if not asset.type.is_visual:
            raise ValidationError(f"Asset type {asset.type.value} cannot be unlocked")
        return asset.evolve(status=AssetStatus.PENDING, reference_image=None)

    @staticmethod
    def attach_media(asset: Asset, url: str, cover: bool = False, filename: Optional[str] = None) -> Asset:
        """
        업로드된 파일을 에셋에 연결.

        Args:
            url: 업로드된 파일 URL
            cover: 대표 이미지(커버)로 업로드하는 경우 True
            filename: 원본 파일명 (MODEL 에셋의 local_path)
        """
        if cover:
            updates = {"reference_image": url}
            if asset.type != AssetType.MODEL:
                updates["status"] = AssetStatus.LOCKED
                updates["candidates"] = None
            return asset.evolve(**updates)

        if asset.type.is_audio:
            return asset.evolve(audio_url=url, status=AssetStatus.LOCKED)
        if asset.type == AssetType.MODEL:
            return asset.evolve(model_url=url, local_path=filename or url)
        raise ValidationError(f"Visual asset '{asset.name}' takes media as a cover image")

    # ------------------------------------------------------------------
    # 글로벌 라이브러리
    # ------------------------------------------------------------------

    @staticmethod
    def to_global(asset: Asset) -> Asset:
        return asset.evolve(id=new_id("g"), scope=AssetScope.GLOBAL, project_id=None)

    @staticmethod
    def import_global(asset: Asset, project_id: Optional[str] = None) -> Asset:
        return asset.evolve(id=new_id("imp"), scope=AssetScope.PROJECT, project_id=project_id)

    @staticmethod
    def from_shot_image(existing: Sequence[Asset], url: str) -> Asset:
        """콘티 이미지를 새 SCENE 에셋으로 저장 (즉시 LOCKED)"""
        return Asset(
            id=new_id("shot_asset"),
            name=AssetAgent.unique_name(existing, f"Shot_Asset_{str(now_ms())[-4:]}"),
            type=AssetType.SCENE,
            description="Created from storyboard",
            tags=[TAG_FROM_SHOT],
            scope=AssetScope.PROJECT,
            status=AssetStatus.LOCKED,
            reference_image=url,
        )

    # ------------------------------------------------------------------
    # 생성
    # ------------------------------------------------------------------

    async def generate_candidates(self, asset: Asset, count: int = ASSET_CANDIDATE_COUNT) -> List[str]:
        """
        후보 이미지 count장 동시 생성 (하나라도 실패하면 전체 실패).

        Raises:
            GenerationError: 배치 중 하나라도 실패
        """
        logger.info(f"Generating {count} candidates for asset '{asset.name}'")
        return await self.image_agent.generate_batch(asset.visual_prompt, ASSET_NEGATIVE_PROMPT, count=count)
