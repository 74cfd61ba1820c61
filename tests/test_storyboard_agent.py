"""
Unit tests for StoryboardAgent (shot prompts, frames, reorder).
"""
import asyncio
import json
import os
import sys

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from agents.storyboard_agent import FRAME_END, FRAME_START, StoryboardAgent
from conftest import DETECTIVE_RESPONSE
from schemas import (
    ArtStyle,
    Asset,
    AssetStatus,
    AssetType,
    ScriptAnalysis,
    ScriptSegment,
    Shot,
    ShotStatus,
)
from utils.errors import NotFoundError, ValidationError
from utils.prompt_builder import PromptBuilder

NOIR = ArtStyle(id="film_noir", label="Noir", positive_prompt="film noir", negative_prompt="color")

DETECTIVE = Asset(id="char_1", name="侦探", type=AssetType.CHARACTER, visual_prompt="1man, trench coat",
                  status=AssetStatus.LOCKED, reference_image="http://img/det.png")
STREET = Asset(id="scene_1", name="雨夜街道", type=AssetType.SCENE, visual_prompt="rainy street")
LORA = Asset(id="model_1", name="DetLoRA", type=AssetType.MODEL,
             local_path="/loras/detective.safetensors", trigger_words="dtv")


def _shots(n):
    return [Shot(id=f"s{i}", sequence=i) for i in range(1, n + 1)]


class TestShotsFromAnalysis:

    def test_pending_shots_without_assets(self):
        analysis = ScriptAnalysis.model_validate(json.loads(DETECTIVE_RESPONSE))
        shots = StoryboardAgent.shots_from_analysis(analysis, ScriptSegment(id="seg_1", name="c1"))

        assert len(shots) == 1
        assert shots[0].id.startswith("shot_seg_1_1_")
        assert shots[0].sequence == 1
        assert shots[0].status == ShotStatus.PENDING
        assert shots[0].assigned_asset_ids == []
        assert shots[0].camera_movement == "Dolly"


class TestFrameRequest:

    def test_assigned_ids_take_priority(self):
        shot = Shot(id="s1", sequence=1, script_content="侦探 and 雨夜街道", assigned_asset_ids=["scene_1"])
        assert StoryboardAgent.relevant_assets(shot, [DETECTIVE, STREET]) == [STREET]

    def test_name_matching_fallback(self):
        shot = Shot(id="s1", sequence=1, script_content="侦探 walks alone")
        assert StoryboardAgent.relevant_assets(shot, [DETECTIVE, STREET]) == [DETECTIVE]

    def test_prompt_layout(self):
        shot = Shot(id="s1", sequence=1, visual_prompt="walking in rain",
                    assigned_asset_ids=["char_1", "scene_1", "model_1"])

        request = StoryboardAgent.build_frame_request(shot, [DETECTIVE, STREET, LORA], NOIR)

        assert request.prompt == "(film noir), <lora:detective:1.0> dtv, walking in rain"
        assert request.negative_prompt == "color, blurry, ugly, low quality"
        # 잠금되지 않은 장면은 참조에서 제외
        assert [r.name for r in request.asset_references] == ["侦探"]
        assert request.input_image is None

    def test_style_lora_appended(self):
        style = NOIR.evolve(lora_model="noir_v2")
        assert PromptBuilder.lora_tags([LORA], style) == "<lora:detective:1.0> dtv, <lora:noir_v2:0.8>, "

    def test_plain_style(self):
        shot = Shot(id="s1", sequence=1, visual_prompt="empty room")
        request = StoryboardAgent.build_frame_request(shot, [], ArtStyle(id="custom", label="Custom"))
        assert request.prompt == "empty room"
        assert request.negative_prompt == "blurry, ugly, low quality"

    def test_end_frame_requires_start(self):
        with pytest.raises(ValidationError):
            StoryboardAgent.build_frame_request(Shot(id="s1", sequence=1), [], NOIR, FRAME_END)

    def test_end_frame_uses_start_as_input(self):
        shot = Shot(id="s1", sequence=1, image_url="http://img/start.png")
        request = StoryboardAgent.build_frame_request(shot, [], NOIR, FRAME_END)
        assert request.input_image == "http://img/start.png"

    def test_generate_frame_in_mock_mode(self, mock_image_agent):
        request = StoryboardAgent.build_frame_request(Shot(id="s1", sequence=1), [], NOIR)
        url = asyncio.run(StoryboardAgent(mock_image_agent).generate_frame(request, seed=42))
        assert url == "https://picsum.photos/seed/42/800/450"


class TestTransitions:

    def test_apply_start_and_end(self):
        shot = StoryboardAgent.mark_generating(Shot(id="s1", sequence=1))
        assert shot.status == ShotStatus.GENERATING

        shot = StoryboardAgent.apply_frame(shot, FRAME_START, "http://img/a.png")
        assert shot.status == ShotStatus.DONE
        assert shot.image_url == "http://img/a.png"

        shot = StoryboardAgent.apply_frame(shot, FRAME_END, "http://img/b.png")
        assert shot.end_frame_url == "http://img/b.png"
        assert shot.image_url == "http://img/a.png"

    def test_revert_to_pending(self):
        shot = StoryboardAgent.mark_generating(Shot(id="s1", sequence=1))
        assert StoryboardAgent.revert(shot).status == ShotStatus.PENDING

    def test_middle_frames(self):
        shot = StoryboardAgent.add_middle_frames(Shot(id="s1", sequence=1), ["m1", "m2"])
        shot = StoryboardAgent.add_middle_frames(shot, ["m3"])
        assert shot.middle_frame_urls == ["m1", "m2", "m3"]

        shot = StoryboardAgent.remove_middle_frame(shot, 1)
        assert shot.middle_frame_urls == ["m1", "m3"]
        with pytest.raises(ValidationError):
            StoryboardAgent.remove_middle_frame(shot, 5)


class TestMoveShot:

    def test_move_down_swaps_neighbours(self):
        moved = StoryboardAgent.move_shot(_shots(3), "s1", "down")
        assert [s.id for s in moved] == ["s2", "s1", "s3"]
        assert [s.sequence for s in moved] == [1, 2, 3]

    def test_reorder_is_a_permutation(self):
        shots = _shots(4)
        moved = StoryboardAgent.move_shot(StoryboardAgent.move_shot(shots, "s3", "up"), "s4", "up")
        assert sorted(s.id for s in moved) == sorted(s.id for s in shots)
        assert len(moved) == len(shots)

    def test_edges_are_no_ops(self):
        shots = _shots(3)
        assert StoryboardAgent.move_shot(shots, "s1", "up") == shots
        assert StoryboardAgent.move_shot(shots, "s3", "down") == shots

    def test_unknown_shot_or_direction(self):
        with pytest.raises(NotFoundError):
            StoryboardAgent.move_shot(_shots(2), "nope", "up")
        with pytest.raises(ValidationError):
            StoryboardAgent.move_shot(_shots(2), "s1", "left")
