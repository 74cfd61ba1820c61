"""
Unit tests for ProjectStore (projects, metadata, parsing rules, settings).
"""
import os
import sys

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from schemas import (
    ArtStyle,
    Asset,
    AssetType,
    GenerationEngine,
    ParsingRule,
    Project,
    ProjectSettings,
    ScriptSegment,
    Shot,
)
from utils.constants import DEFAULT_RULE_NAME


def _project(project_id="proj_1", title="Noir", shots=()):
    return Project(
        id=project_id,
        title=title,
        art_style_config=ArtStyle(id="film_noir", label="필름 누아르 (Film Noir)"),
        segments=[ScriptSegment(id="seg_1", name="제1장 (Chapter 1)", shots=list(shots))],
    )


class TestProjects:

    def test_create_prepends_metadata(self, store):
        store.create_project(_project("proj_a", "A"))
        store.create_project(_project("proj_b", "B"))

        metas = store.list_projects()
        assert [m.id for m in metas] == ["proj_b", "proj_a"]
        assert metas[0].art_style_label == "필름 누아르 (Film Noir)"
        assert metas[0].shot_count == 0
        assert store.get_project("proj_a").title == "A"

    def test_unknown_project_is_none(self, store):
        assert store.get_project("missing") is None

    def test_update_recomputes_summary(self, store):
        project = _project()
        store.create_project(project)

        shots = [
            Shot(id="s1", sequence=1),
            Shot(id="s2", sequence=2, image_url="http://img/2.png"),
        ]
        segment = project.segments[0].evolve(shots=shots)
        saved = store.update_project(project.evolve(title="Noir 2", segments=[segment]))

        assert saved.last_modified >= project.last_modified
        meta = store.list_projects()[0]
        assert meta.title == "Noir 2"
        assert meta.shot_count == 2
        assert meta.cover_image == "http://img/2.png"
        assert meta.last_modified == saved.last_modified
        assert store.get_project(project.id).segments[0].shots[1].image_url == "http://img/2.png"

    def test_existing_cover_is_kept(self, store):
        project = _project(shots=[Shot(id="s1", sequence=1, image_url="http://img/first.png")])
        store.create_project(project)
        segment = project.segments[0].evolve(shots=[Shot(id="s9", sequence=1, image_url="http://img/new.png")])
        store.update_project(project.evolve(segments=[segment]))
        assert store.list_projects()[0].cover_image == "http://img/first.png"

    def test_delete_removes_both_documents(self, store):
        store.create_project(_project("proj_a"))
        store.create_project(_project("proj_b"))
        store.delete_project("proj_a")

        assert store.get_project("proj_a") is None
        assert [m.id for m in store.list_projects()] == ["proj_b"]

    def test_assets_survive_round_trip(self, store):
        asset = Asset(id="char_1", name="侦探", type=AssetType.CHARACTER)
        store.create_project(_project().evolve(assets=[asset]))
        assert store.get_project("proj_1").assets == [asset]


class TestParsingRules:

    def test_default_rule_is_seeded(self, store):
        rules = store.list_parsing_rules()
        assert len(rules) == 1
        assert rules[0].id == "default"
        assert rules[0].is_default
        assert rules[0].name == DEFAULT_RULE_NAME
        assert rules[0].system_instruction == store.default_instruction
        assert store.list_parsing_rules() == rules

    def test_save_is_upsert(self, store):
        rule = ParsingRule(id="rule_1", name="Action", system_instruction="fast cuts")
        store.save_parsing_rule(rule)
        store.save_parsing_rule(rule.evolve(name="Action v2"))

        rules = store.list_parsing_rules()
        assert [r.id for r in rules] == ["default", "rule_1"]
        assert store.get_parsing_rule("rule_1").name == "Action v2"

    def test_delete(self, store):
        store.save_parsing_rule(ParsingRule(id="rule_1", name="Action", system_instruction="x"))
        store.delete_parsing_rule("rule_1")
        assert store.get_parsing_rule("rule_1") is None
        assert store.get_parsing_rule("default") is not None


class TestSettingsAndGlobalAssets:

    def test_settings_default_then_saved(self, store):
        assert store.load_settings() == ProjectSettings()
        custom = ProjectSettings(generation_engine=GenerationEngine.COMFY_REMOTE, auto_save=False)
        store.save_settings(custom)
        assert store.load_settings() == custom

    def test_global_assets(self, store):
        assert store.list_global_assets() == []
        asset = Asset(id="g_1", name="Rain", type=AssetType.SCENE)
        store.save_global_assets([asset])
        assert store.list_global_assets() == [asset]
