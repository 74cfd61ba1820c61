"""
Project Store

프로젝트/파싱 규칙/설정/글로벌 에셋 문서를 키-값 저장소에 보관합니다.

- directorai_projects_map: {project_id: Project}
- directorai_projects_list: [ProjectMetadata] (최신 생성순)
- directorai_parsing_rules: [ParsingRule]

프로젝트 저장 시 상세 맵과 메타데이터 목록을 차례로 덮어씁니다.
두 쓰기 사이에 중단되면 둘이 어긋날 수 있습니다 (트랜잭션 없음).
"""

from typing import Dict, List, Optional

from schemas import (
    Asset,
    ParsingRule,
    Project,
    ProjectMetadata,
    ProjectSettings,
    now_ms,
)
from utils.constants import (
    DEFAULT_RULE_NAME,
    STORAGE_KEY_GLOBAL_ASSETS,
    STORAGE_KEY_META,
    STORAGE_KEY_PROJECTS,
    STORAGE_KEY_RULES,
    STORAGE_KEY_SETTINGS,
)
from utils.logger import get_logger
from utils.storage import StorageManager

logger = get_logger("project_store")


def _first_cover_image(project: Project) -> Optional[str]:
    for seg in project.segments:
        for shot in seg.shots:
            if shot.image_url:
                return shot.image_url
    return None


class ProjectStore:
    """프로젝트/규칙 CRUD (문서 단위 덮어쓰기)"""

    def __init__(self, storage: StorageManager, default_instruction: str = ""):
        self.storage = storage
        self.default_instruction = default_instruction

    # ------------------------------------------------------------------
    # Projects
    # ------------------------------------------------------------------

    def _load_project_map(self) -> Dict[str, dict]:
        return self.storage.get(STORAGE_KEY_PROJECTS) or {}

    def _load_metas(self) -> List[dict]:
        return self.storage.get(STORAGE_KEY_META) or []

    def list_projects(self) -> List[ProjectMetadata]:
        return [ProjectMetadata.model_validate(m) for m in self._load_metas()]

    def get_project(self, project_id: str) -> Optional[Project]:
        data = self._load_project_map().get(project_id)
        return Project.model_validate(data) if data else None

    def create_project(self, project: Project) -> None:
        all_projects = self._load_project_map()
        all_projects[project.id] = project.model_dump(mode="json")
        self.storage.put(STORAGE_KEY_PROJECTS, all_projects)

        first_shots = project.segments[0].shots if project.segments else []
        meta = ProjectMetadata(
            id=project.id,
            title=project.title,
            last_modified=now_ms(),
            shot_count=project.shot_count,
            cover_image=first_shots[0].image_url if first_shots else None,
            art_style_label=project.art_style_config.label,
        )
        metas = self._load_metas()
        self.storage.put(STORAGE_KEY_META, [meta.model_dump(mode="json")] + metas)
        logger.info(f"Created project {project.id} ({project.title})")

    def update_project(self, project: Project) -> Project:
        """
        프로젝트 전체를 덮어쓰고 메타데이터 요약을 재계산합니다.

        Returns:
            last_modified가 갱신된 프로젝트
        """
        timestamp = now_ms()
        saved = project.evolve(last_modified=timestamp)

        all_projects = self._load_project_map()
        all_projects[project.id] = saved.model_dump(mode="json")
        self.storage.put(STORAGE_KEY_PROJECTS, all_projects)

        metas = self._load_metas()
        index = next((i for i, m in enumerate(metas) if m.get("id") == project.id), -1)
        if index != -1:
            cover = metas[index].get("cover_image") or _first_cover_image(project)
            metas[index] = {
                **metas[index],
                "title": project.title,
                "last_modified": timestamp,
                "shot_count": project.shot_count,
                "cover_image": cover,
            }
            self.storage.put(STORAGE_KEY_META, metas)
        return saved

    def delete_project(self, project_id: str) -> None:
        all_projects = self._load_project_map()
        all_projects.pop(project_id, None)
        self.storage.put(STORAGE_KEY_PROJECTS, all_projects)

        metas = [m for m in self._load_metas() if m.get("id") != project_id]
        self.storage.put(STORAGE_KEY_META, metas)
        logger.info(f"Deleted project {project_id}")

    # ------------------------------------------------------------------
    # Parsing rules
    # ------------------------------------------------------------------

    def list_parsing_rules(self) -> List[ParsingRule]:
        """저장된 규칙 목록. 처음 호출 시 기본 규칙 하나를 시드합니다."""
        stored = self.storage.get(STORAGE_KEY_RULES)
        if stored is None:
            default_rules = [ParsingRule(
                id="default",
                name=DEFAULT_RULE_NAME,
                system_instruction=self.default_instruction,
                is_default=True,
            )]
            self.storage.put(STORAGE_KEY_RULES, [r.model_dump(mode="json") for r in default_rules])
            return default_rules
        return [ParsingRule.model_validate(r) for r in stored]

    def get_parsing_rule(self, rule_id: str) -> Optional[ParsingRule]:
        return next((r for r in self.list_parsing_rules() if r.id == rule_id), None)

    def save_parsing_rule(self, rule: ParsingRule) -> None:
        """같은 id가 있으면 교체, 없으면 추가"""
        rules = [r.model_dump(mode="json") for r in self.list_parsing_rules()]
        index = next((i for i, r in enumerate(rules) if r["id"] == rule.id), -1)
        if index != -1:
            rules[index] = rule.model_dump(mode="json")
        else:
            rules.append(rule.model_dump(mode="json"))
        self.storage.put(STORAGE_KEY_RULES, rules)

    def delete_parsing_rule(self, rule_id: str) -> None:
        rules = [r.model_dump(mode="json") for r in self.list_parsing_rules() if r.id != rule_id]
        self.storage.put(STORAGE_KEY_RULES, rules)

    # ------------------------------------------------------------------
    # Settings / global assets
    # ------------------------------------------------------------------

    def load_settings(self, defaults: Optional[ProjectSettings] = None) -> ProjectSettings:
        stored = self.storage.get(STORAGE_KEY_SETTINGS)
        if stored is None:
            return defaults or ProjectSettings()
        return ProjectSettings.model_validate(stored)

    def save_settings(self, settings: ProjectSettings) -> None:
        self.storage.put(STORAGE_KEY_SETTINGS, settings.model_dump(mode="json"))

    def list_global_assets(self) -> List[Asset]:
        return [Asset.model_validate(a) for a in self.storage.get(STORAGE_KEY_GLOBAL_ASSETS) or []]

    def save_global_assets(self, assets: List[Asset]) -> None:
        self.storage.put(STORAGE_KEY_GLOBAL_ASSETS, [a.model_dump(mode="json") for a in assets])
