"""
DirectorAI 스튜디오 컨트롤러

열린 프로젝트 하나를 소유하고 모든 상태 전이를 담당하는 루트 컨트롤러.
화면(또는 API/CLI)은 읽기 전용 뷰(project, settings)만 보고,
변경은 모두 이 클래스의 메서드를 거칩니다.

작업 흐름:
1. 프로젝트 생성/열기 (챕터 1개로 시작)
2. 스크립트 저장 → ScriptAgent 해석 → 에셋 병합 + 컷 교체
3. AssetAgent - 에셋 후보 생성/선택/잠금
4. StoryboardAgent - 컷 프레임 생성/편집
5. VideoAgent - 컷 영상 (mock) + 순서 편집

auto_save 가 켜져 있으면 매 전이 후 ProjectStore에 저장합니다.
비동기 생성은 취소가 없으며, 늦게 도착한 결과가 최신 상태를 덮어씁니다.
"""

import asyncio
from typing import Callable, Dict, List, Optional, Sequence

from dotenv import load_dotenv
from pydantic import ValidationError as PydanticValidationError

# .env 파일 로드
load_dotenv()

from agents import AssetAgent, ImageAgent, ScriptAgent, StoryboardAgent, VideoAgent
from agents.script_agent import DEFAULT_SYSTEM_INSTRUCTION
from agents.storyboard_agent import FRAME_START
from config import load_art_styles, load_settings
from schemas import (
    ArtStyle,
    Asset,
    AssetType,
    ConfirmationResult,
    ConfirmationStatus,
    GenerationEngine,
    ParsingRule,
    Project,
    ProjectMetadata,
    ProjectSettings,
    ScriptSegment,
    Shot,
    new_id,
    now_ms,
)
from utils.constants import (
    ANALYZE_FAILED_MESSAGE,
    CONFIRM_DELETE_ASSET,
    CONFIRM_DELETE_PROJECT,
    CONFIRM_DELETE_RULE,
    CONFIRM_SHOT_TO_ASSET,
    CONFIRM_UNLOCK_ASSET,
    EMPTY_RULE_NAME_MESSAGE,
    EMPTY_SCRIPT_MESSAGE,
    EMPTY_TITLE_MESSAGE,
    FIRST_SEGMENT_NAME,
    GENERATION_FAILED_MESSAGE,
    NEW_RULE_NAME,
    NEW_SEGMENT_NAME_TEMPLATE,
)
from utils.errors import GenerationError, NotFoundError, ScriptParseError, ValidationError
from utils.logger import get_logger
from utils.project_store import ProjectStore
from utils.storage import StorageManager

logger = get_logger("studio")

DEFAULT_STYLE_ID = "cyberpunk"

# update_asset 로 수정 가능한 필드
EDITABLE_ASSET_FIELDS = {"name", "description", "visual_prompt", "tags", "trigger_words", "seed", "local_path"}


class StudioController:
    """
    DirectorAI 루트 컨트롤러

    Args:
        store: ProjectStore (기본: settings.local_data_path 의 StorageManager)
        image_agent: ImageAgent (기본: settings 의 엔진/URL)
        script_agent: ScriptAgent (기본: GOOGLE_API_KEY)
        video_agent: VideoAgent (mock)
        settings: 초기 설정 (기본: config/settings.yaml + 환경변수, 저장된 설정 우선)
    """

    def __init__(
        self,
        store: Optional[ProjectStore] = None,
        image_agent: Optional[ImageAgent] = None,
        script_agent: Optional[ScriptAgent] = None,
        video_agent: Optional[VideoAgent] = None,
        settings: Optional[ProjectSettings] = None,
    ):
        defaults = settings or ProjectSettings.model_validate(load_settings())
        if store is None:
            store = ProjectStore(
                StorageManager(data_dir=defaults.local_data_path),
                default_instruction=DEFAULT_SYSTEM_INSTRUCTION,
            )
        self.store = store
        self._settings = settings or store.load_settings(defaults)

        self.script_agent = script_agent or ScriptAgent()
        self.video_agent = video_agent or VideoAgent()
        self._wire_image_agent(image_agent or self._build_image_agent(self._settings))

        self.art_styles = [ArtStyle.model_validate(s) for s in load_art_styles()]

        self._project: Optional[Project] = None
        self.active_segment_id: Optional[str] = None

    @staticmethod
    def _build_image_agent(settings: ProjectSettings) -> ImageAgent:
        return ImageAgent(base_url=settings.comfy_ui_url, engine=settings.generation_engine)

    def _wire_image_agent(self, image_agent: ImageAgent) -> None:
        self.image_agent = image_agent
        self.asset_agent = AssetAgent(image_agent)
        self.storyboard_agent = StoryboardAgent(image_agent)

    # ------------------------------------------------------------------
    # 읽기 전용 뷰
    # ------------------------------------------------------------------

    @property
    def project(self) -> Optional[Project]:
        return self._project

    @property
    def settings(self) -> ProjectSettings:
        return self._settings

    @property
    def active_segment(self) -> Optional[ScriptSegment]:
        if self._project is None or self.active_segment_id is None:
            return None
        return self._project.find_segment(self.active_segment_id)

    # ------------------------------------------------------------------
    # 내부 헬퍼
    # ------------------------------------------------------------------

    def _require_project(self) -> Project:
        if self._project is None:
            raise ValidationError("No project is open")
        return self._project

    def _latest(self, project_id: str) -> Optional[Project]:
        """await 이후 반영 대상: 열린 프로젝트면 현재 상태, 아니면 저장본"""
        if self._project is not None and self._project.id == project_id:
            return self._project
        return self.store.get_project(project_id)

    def _commit(self, project: Project) -> Project:
        is_current = self._project is not None and self._project.id == project.id
        if self._settings.auto_save or not is_current:
            project = self.store.update_project(project)
        if is_current:
            self._project = project
        return project

    @staticmethod
    def _segment(project: Project, segment_id: str) -> ScriptSegment:
        segment = project.find_segment(segment_id)
        if segment is None:
            raise NotFoundError(f"Segment not found: {segment_id}")
        return segment

    @staticmethod
    def _with_segment(project: Project, segment: ScriptSegment) -> Project:
        stamped = segment.evolve(last_modified=now_ms())
        return project.evolve(segments=[stamped if s.id == segment.id else s for s in project.segments])

    def _update_asset(self, project: Project, asset_id: str, fn: Callable[[Asset], Asset]) -> Asset:
        asset = fn(self.asset_agent.find(project.assets, asset_id))
        self._commit(project.evolve(assets=self.asset_agent.replace(project.assets, asset)))
        return asset

    def _update_shot(self, project: Project, segment_id: str, shot_id: str, fn: Callable[[Shot], Shot]) -> Shot:
        segment = self._segment(project, segment_id)
        shot = fn(self.storyboard_agent.find(segment.shots, shot_id))
        segment = segment.evolve(shots=self.storyboard_agent.replace(segment.shots, shot))
        self._commit(self._with_segment(project, segment))
        return shot

    @staticmethod
    def _confirm(action: str, target_id: str, message: str, confirmed: Optional[bool]) -> Optional[ConfirmationResult]:
        """확인이 필요하거나 취소됐으면 결과를, 진행해도 되면 None을 반환"""
        if confirmed is None:
            return ConfirmationResult(
                status=ConfirmationStatus.CONFIRMATION_REQUIRED,
                action=action,
                target_id=target_id,
                message=message,
            )
        if not confirmed:
            return ConfirmationResult(status=ConfirmationStatus.CANCELLED, action=action, target_id=target_id)
        return None

    @staticmethod
    def _completed(action: str, target_id: str) -> ConfirmationResult:
        return ConfirmationResult(status=ConfirmationStatus.COMPLETED, action=action, target_id=target_id)

    # ------------------------------------------------------------------
    # 프로젝트
    # ------------------------------------------------------------------

    def list_projects(self) -> List[ProjectMetadata]:
        return self.store.list_projects()

    def get_art_style(self, style_id: str) -> ArtStyle:
        style = next((s for s in self.art_styles if s.id == style_id), None)
        if style is None:
            raise NotFoundError(f"Art style not found: {style_id}")
        return style

    def create_project(
        self,
        title: str,
        style_id: str = DEFAULT_STYLE_ID,
        positive_prompt: Optional[str] = None,
        negative_prompt: Optional[str] = None,
    ) -> Project:
        """
        새 프로젝트 생성 후 엽니다.

        챕터 1개, 에셋 0개로 시작합니다. 아트 스타일은 이후 변경할 수 없습니다.

        Args:
            title: 프로젝트 이름 (필수)
            style_id: 아트 스타일 프리셋 ID
            positive_prompt / negative_prompt: 프리셋 프롬프트 대체 (사용자 정의 스타일)
        """
        title = (title or "").strip()
        if not title:
            raise ValidationError(EMPTY_TITLE_MESSAGE)

        style = self.get_art_style(style_id)
        overrides = {k: v for k, v in (("positive_prompt", positive_prompt),
                                       ("negative_prompt", negative_prompt)) if v is not None}
        if overrides:
            style = style.evolve(**overrides)

        project = Project(
            id=new_id("proj"),
            title=title,
            directory_path=f"Local\\{title}",
            art_style_config=style,
            assets=[],
            segments=[ScriptSegment(id=new_id("seg"), name=FIRST_SEGMENT_NAME)],
        )
        self.store.create_project(project)
        self._project = project
        self.active_segment_id = project.segments[0].id
        return project

    def open_project(self, project_id: str) -> Project:
        project = self.store.get_project(project_id)
        if project is None:
            raise NotFoundError(f"Project not found: {project_id}")
        self._project = project
        self.active_segment_id = project.segments[0].id if project.segments else None
        logger.info(f"Opened project {project_id} ({project.title})")
        return project

    def close_project(self) -> None:
        if self._project is not None and self._settings.auto_save:
            self.store.update_project(self._project)
        self._project = None
        self.active_segment_id = None

    def save_project(self) -> Project:
        """수동 저장 (auto_save 여부와 무관)"""
        self._project = self.store.update_project(self._require_project())
        return self._project

    def delete_project(self, project_id: str, confirmed: Optional[bool] = None) -> ConfirmationResult:
        pending = self._confirm("delete_project", project_id, CONFIRM_DELETE_PROJECT, confirmed)
        if pending:
            return pending
        if self.store.get_project(project_id) is None:
            raise NotFoundError(f"Project not found: {project_id}")
        self.store.delete_project(project_id)
        if self._project is not None and self._project.id == project_id:
            self._project = None
            self.active_segment_id = None
        return self._completed("delete_project", project_id)

    def update_project_title(self, title: str) -> Project:
        title = (title or "").strip()
        if not title:
            raise ValidationError(EMPTY_TITLE_MESSAGE)
        return self._commit(self._require_project().evolve(title=title))

    def set_bgm(self, asset_id: Optional[str]) -> Project:
        """배경음악 지정 (MUSIC 에셋만, None이면 해제)"""
        project = self._require_project()
        if asset_id is not None:
            asset = self.asset_agent.find(project.assets, asset_id)
            if asset.type != AssetType.MUSIC:
                raise ValidationError(f"Asset '{asset.name}' is not a MUSIC asset")
        return self._commit(project.evolve(bgm_asset_id=asset_id))

    # ------------------------------------------------------------------
    # 챕터 / 스크립트
    # ------------------------------------------------------------------

    def add_segment(self) -> ScriptSegment:
        project = self._require_project()
        segment = ScriptSegment(
            id=new_id("seg"),
            name=NEW_SEGMENT_NAME_TEMPLATE.format(n=len(project.segments) + 1),
        )
        self._commit(project.evolve(segments=list(project.segments) + [segment]))
        self.active_segment_id = segment.id
        return segment

    def select_segment(self, segment_id: str) -> ScriptSegment:
        segment = self._segment(self._require_project(), segment_id)
        self.active_segment_id = segment.id
        return segment

    def save_script(self, segment_id: str, script_raw: str) -> ScriptSegment:
        project = self._require_project()
        segment = self._segment(project, segment_id).evolve(script_raw=script_raw)
        project = self._commit(self._with_segment(project, segment))
        return self._segment(project, segment_id)

    async def analyze_script(
        self,
        segment_id: str,
        script_raw: Optional[str] = None,
        rule_id: Optional[str] = None,
        rule_instruction: Optional[str] = None,
    ) -> ScriptSegment:
        """
        스크립트를 해석해 에셋을 병합하고 챕터의 컷을 교체합니다.

        스크립트(script_raw)와 규칙의 미저장 수정(rule_instruction)을 먼저 저장한 뒤 해석합니다.

        Raises:
            ValidationError: 빈 스크립트
            ScriptParseError: 해석 실패 (메시지는 ANALYZE_FAILED_MESSAGE)
        """
        project = self._require_project()
        if script_raw is not None:
            self.save_script(segment_id, script_raw)
            project = self._require_project()
        segment = self._segment(project, segment_id)
        if not segment.script_raw.strip():
            raise ValidationError(EMPTY_SCRIPT_MESSAGE)

        if rule_id is None:
            # 규칙을 고르지 않으면 저장된 기본 규칙 (수정됐을 수 있음)
            rule = next((r for r in self.store.list_parsing_rules() if r.is_default), None)
        else:
            rule = self.store.get_parsing_rule(rule_id)
            if rule is None:
                raise NotFoundError(f"Parsing rule not found: {rule_id}")
        if rule is None:
            instruction = rule_instruction
        else:
            if rule_instruction is not None and rule_instruction != rule.system_instruction:
                self.store.save_parsing_rule(rule.evolve(system_instruction=rule_instruction))
            instruction = rule_instruction or rule.system_instruction

        try:
            analysis = await asyncio.to_thread(self.script_agent.parse, segment.script_raw, instruction)
        except ScriptParseError as e:
            logger.error(f"Script analysis failed for segment {segment_id}: {e}")
            raise ScriptParseError(ANALYZE_FAILED_MESSAGE, e.details) from e

        project = self._latest(project.id)
        if project is None:
            raise NotFoundError("Project was deleted during analysis")
        segment = self._segment(project, segment_id)
        extracted = self.asset_agent.extract_assets(analysis, segment)
        segment = segment.evolve(shots=self.storyboard_agent.shots_from_analysis(analysis, segment))
        project = self._with_segment(project, segment).evolve(
            assets=self.asset_agent.merge_assets(project.assets, extracted)
        )
        project = self._commit(project)
        return self._segment(project, segment_id)

    # ------------------------------------------------------------------
    # 에셋
    # ------------------------------------------------------------------

    def add_asset(self, asset_type: AssetType) -> Asset:
        project = self._require_project()
        asset = self.asset_agent.new_asset(project.assets, asset_type).evolve(project_id=project.id)
        self._commit(project.evolve(assets=list(project.assets) + [asset]))
        return asset

    def update_asset(self, asset_id: str, updates: Dict) -> Asset:
        unknown = set(updates) - EDITABLE_ASSET_FIELDS
        if unknown:
            raise ValidationError(f"Fields cannot be edited: {sorted(unknown)}")

        def _apply(asset: Asset) -> Asset:
            try:
                return asset.evolve(**updates)
            except PydanticValidationError as e:
                raise ValidationError(f"Invalid asset update for '{asset.name}'", {"errors": e.error_count()}) from e

        return self._update_asset(self._require_project(), asset_id, _apply)

    def delete_asset(self, asset_id: str, confirmed: Optional[bool] = None) -> ConfirmationResult:
        pending = self._confirm("delete_asset", asset_id, CONFIRM_DELETE_ASSET, confirmed)
        if pending:
            return pending
        project = self._require_project()
        self.asset_agent.find(project.assets, asset_id)

        # 컷의 assigned_asset_ids, bgm_asset_id 는 그대로 둠 (ID 간 참조 무결성 없음)
        self._commit(project.evolve(assets=self.asset_agent.remove(project.assets, asset_id)))
        return self._completed("delete_asset", asset_id)

    async def generate_asset(self, asset_id: str) -> Asset:
        """
        에셋 후보 이미지 4장 생성.

        오디오형은 업로드가 필요하고, MODEL 은 아무 것도 하지 않습니다.
        GENERATING 상태를 먼저 저장한 뒤 생성하며, 실패 시 ERROR 로 저장하고 GenerationError 를 올립니다.
        """
        project = self._require_project()
        asset = self.asset_agent.find(project.assets, asset_id)
        if asset.type.is_audio:
            raise ValidationError(f"Asset '{asset.name}' requires an uploaded audio file")
        if asset.type == AssetType.MODEL:
            return asset

        asset = self._update_asset(project, asset_id, self.asset_agent.mark_generating)
        try:
            urls = await self.asset_agent.generate_candidates(asset)
        except GenerationError as e:
            logger.error(f"Candidate generation failed for asset {asset_id}: {e}")
            latest = self._latest(project.id)
            if latest is not None and latest.find_asset(asset_id):
                self._update_asset(latest, asset_id, self.asset_agent.mark_error)
            raise GenerationError(GENERATION_FAILED_MESSAGE, e.details) from e

        latest = self._latest(project.id)
        if latest is None or latest.find_asset(asset_id) is None:
            logger.warning(f"Asset {asset_id} disappeared during generation; dropping candidates")
            return asset.evolve(candidates=urls)
        return self._update_asset(latest, asset_id, lambda a: self.asset_agent.with_candidates(a, urls))

    def select_candidate(self, asset_id: str, url: str) -> Asset:
        return self._update_asset(
            self._require_project(), asset_id, lambda a: self.asset_agent.select_candidate(a, url)
        )

    def unlock_asset(self, asset_id: str, confirmed: Optional[bool] = None) -> ConfirmationResult:
        pending = self._confirm("unlock_asset", asset_id, CONFIRM_UNLOCK_ASSET, confirmed)
        if pending:
            return pending
        self._update_asset(self._require_project(), asset_id, self.asset_agent.unlock)
        return self._completed("unlock_asset", asset_id)

    def attach_asset_media(self, asset_id: str, url: str, cover: bool = False,
                           filename: Optional[str] = None) -> Asset:
        return self._update_asset(
            self._require_project(),
            asset_id,
            lambda a: self.asset_agent.attach_media(a, url, cover=cover, filename=filename),
        )

    # ------------------------------------------------------------------
    # 글로벌 라이브러리
    # ------------------------------------------------------------------

    def list_global_assets(self) -> List[Asset]:
        return self.store.list_global_assets()

    def add_to_global(self, asset_id: str) -> Asset:
        """프로젝트 에셋 사본을 글로벌 라이브러리에 추가"""
        asset = self.asset_agent.find(self._require_project().assets, asset_id)
        global_asset = self.asset_agent.to_global(asset)
        self.store.save_global_assets(self.store.list_global_assets() + [global_asset])
        return global_asset

    def delete_global_asset(self, global_id: str, confirmed: Optional[bool] = None) -> ConfirmationResult:
        pending = self._confirm("delete_global_asset", global_id, CONFIRM_DELETE_ASSET, confirmed)
        if pending:
            return pending
        assets = self.store.list_global_assets()
        self.asset_agent.find(assets, global_id)
        self.store.save_global_assets(self.asset_agent.remove(assets, global_id))
        return self._completed("delete_global_asset", global_id)

    def import_global_asset(self, global_id: str) -> Asset:
        project = self._require_project()
        source = self.asset_agent.find(self.store.list_global_assets(), global_id)
        asset = self.asset_agent.import_global(source, project.id)
        self._commit(project.evolve(assets=list(project.assets) + [asset]))
        return asset

    # ------------------------------------------------------------------
    # 콘티 (컷)
    # ------------------------------------------------------------------

    def save_shot_as_asset(self, segment_id: str, shot_id: str,
                           confirmed: Optional[bool] = None) -> ConfirmationResult:
        """컷 이미지를 LOCKED SCENE 에셋으로 저장 (확인 필요)"""
        project = self._require_project()
        shot = self.storyboard_agent.find(self._segment(project, segment_id).shots, shot_id)
        if not shot.image_url:
            raise ValidationError(f"Shot {shot_id} has no image")

        pending = self._confirm("save_shot_as_asset", shot_id, CONFIRM_SHOT_TO_ASSET, confirmed)
        if pending:
            return pending
        asset = self.asset_agent.from_shot_image(project.assets, shot.image_url).evolve(project_id=project.id)
        self._commit(project.evolve(assets=list(project.assets) + [asset]))
        return self._completed("save_shot_as_asset", asset.id)

    def assign_shot_assets(self, segment_id: str, shot_id: str, asset_ids: Sequence[str]) -> Shot:
        project = self._require_project()
        for asset_id in asset_ids:
            self.asset_agent.find(project.assets, asset_id)
        return self._update_shot(
            project, segment_id, shot_id, lambda s: self.storyboard_agent.assign_assets(s, asset_ids)
        )

    async def generate_shot_frame(self, segment_id: str, shot_id: str, frame: str = FRAME_START) -> Shot:
        """
        컷 시작/끝 프레임 생성.

        실패하면 컷은 PENDING 으로 돌아가고 GenerationError 를 올립니다.

        Raises:
            ValidationError: 시작 프레임 없이 끝 프레임 요청
            GenerationError: 생성 실패
        """
        project = self._require_project()
        shot = self.storyboard_agent.find(self._segment(project, segment_id).shots, shot_id)
        request = self.storyboard_agent.build_frame_request(
            shot, project.assets, project.art_style_config, frame
        )

        self._update_shot(project, segment_id, shot_id, self.storyboard_agent.mark_generating)
        try:
            url = await self.storyboard_agent.generate_frame(request)
        except GenerationError as e:
            logger.error(f"Frame generation failed for shot {shot_id}: {e}")
            self._apply_shot_result(project.id, segment_id, shot_id, self.storyboard_agent.revert)
            raise GenerationError(GENERATION_FAILED_MESSAGE, e.details) from e

        return self._apply_shot_result(
            project.id, segment_id, shot_id, lambda s: self.storyboard_agent.apply_frame(s, frame, url)
        )

    def _apply_shot_result(self, project_id: str, segment_id: str, shot_id: str,
                           fn: Callable[[Shot], Shot]) -> Optional[Shot]:
        latest = self._latest(project_id)
        segment = latest.find_segment(segment_id) if latest else None
        if segment is None or not any(s.id == shot_id for s in segment.shots):
            logger.warning(f"Shot {shot_id} disappeared during generation; result dropped")
            return None
        return self._update_shot(latest, segment_id, shot_id, fn)

    def move_shot(self, segment_id: str, shot_id: str, direction: str) -> List[Shot]:
        project = self._require_project()
        segment = self._segment(project, segment_id)
        segment = segment.evolve(shots=self.storyboard_agent.move_shot(segment.shots, shot_id, direction))
        self._commit(self._with_segment(project, segment))
        return list(segment.shots)

    def add_middle_frames(self, segment_id: str, shot_id: str, urls: Sequence[str]) -> Shot:
        return self._update_shot(
            self._require_project(), segment_id, shot_id,
            lambda s: self.storyboard_agent.add_middle_frames(s, urls),
        )

    def remove_middle_frame(self, segment_id: str, shot_id: str, index: int) -> Shot:
        return self._update_shot(
            self._require_project(), segment_id, shot_id,
            lambda s: self.storyboard_agent.remove_middle_frame(s, index),
        )

    def set_end_frame(self, segment_id: str, shot_id: str, url: str) -> Shot:
        return self._update_shot(
            self._require_project(), segment_id, shot_id,
            lambda s: self.storyboard_agent.set_end_frame(s, url),
        )

    async def generate_shot_video(self, segment_id: str, shot_id: str) -> Shot:
        project = self._require_project()
        shot = self.storyboard_agent.find(self._segment(project, segment_id).shots, shot_id)
        url = await self.video_agent.generate_video(shot)
        return self._apply_shot_result(
            project.id, segment_id, shot_id, lambda s: self.storyboard_agent.set_video(s, url)
        )

    def upload_shot_video(self, segment_id: str, shot_id: str, url: str) -> Shot:
        return self._update_shot(
            self._require_project(), segment_id, shot_id,
            lambda s: self.storyboard_agent.set_video(s, url),
        )

    # ------------------------------------------------------------------
    # 파싱 규칙
    # ------------------------------------------------------------------

    def list_rules(self) -> List[ParsingRule]:
        return self.store.list_parsing_rules()

    def create_rule(self) -> ParsingRule:
        """기본 규칙의 지시문을 복사한 새 사용자 규칙"""
        rules = self.store.list_parsing_rules()
        default = next((r for r in rules if r.is_default), None)
        rule = ParsingRule(
            id=new_id("rule"),
            name=NEW_RULE_NAME,
            system_instruction=default.system_instruction if default else DEFAULT_SYSTEM_INSTRUCTION,
        )
        self.store.save_parsing_rule(rule)
        return rule

    def save_rule(self, rule: ParsingRule) -> ParsingRule:
        if not rule.name.strip():
            raise ValidationError(EMPTY_RULE_NAME_MESSAGE)
        self.store.save_parsing_rule(rule)
        return rule

    def delete_rule(self, rule_id: str, confirmed: Optional[bool] = None) -> ConfirmationResult:
        rule = self.store.get_parsing_rule(rule_id)
        if rule is None:
            raise NotFoundError(f"Parsing rule not found: {rule_id}")
        if rule.is_default:
            raise ValidationError("The default parsing rule cannot be deleted")
        pending = self._confirm("delete_rule", rule_id, CONFIRM_DELETE_RULE, confirmed)
        if pending:
            return pending
        self.store.delete_parsing_rule(rule_id)
        return self._completed("delete_rule", rule_id)

    # ------------------------------------------------------------------
    # 설정
    # ------------------------------------------------------------------

    def save_settings(self, settings: ProjectSettings) -> ProjectSettings:
        """설정 저장 후 새 엔진/URL 로 ImageAgent 를 다시 만듭니다."""
        self.store.save_settings(settings)
        self._settings = settings
        self._wire_image_agent(self._build_image_agent(settings))
        logger.info(f"Settings saved (engine={settings.generation_engine.value})")
        return settings

    async def check_connection(self, url: Optional[str] = None) -> bool:
        """ComfyUI 연결 테스트 (엔진 설정과 무관하게 실제로 접속해 봄)"""
        probe = ImageAgent(base_url=url or self._settings.comfy_ui_url, engine=GenerationEngine.COMFY_LOCAL)
        return await probe.check_connection()
