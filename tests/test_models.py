"""
Unit tests for data models (invariants, immutability, LLM decoding).
"""
import os
import sys

import pytest
from pydantic import ValidationError as PydanticValidationError

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from schemas import (
    Asset,
    AssetStatus,
    AssetType,
    ConfirmationResult,
    ConfirmationStatus,
    ScriptAnalysis,
    Shot,
    new_id,
)


class TestLockedInvariant:

    def test_locked_visual_requires_reference_image(self):
        with pytest.raises(PydanticValidationError):
            Asset(id="a", name="侦探", type=AssetType.CHARACTER, status=AssetStatus.LOCKED)

    def test_locked_visual_with_image(self):
        asset = Asset(id="a", name="侦探", type=AssetType.CHARACTER,
                      status=AssetStatus.LOCKED, reference_image="http://img/a.png")
        assert asset.media_reference == "http://img/a.png"

    def test_locked_audio_needs_audio_url_not_image(self):
        with pytest.raises(PydanticValidationError):
            Asset(id="m", name="Theme", type=AssetType.MUSIC,
                  status=AssetStatus.LOCKED, reference_image="http://img/cover.png")
        asset = Asset(id="m", name="Theme", type=AssetType.MUSIC,
                      status=AssetStatus.LOCKED, audio_url="http://audio/theme.mp3")
        assert asset.media_reference == "http://audio/theme.mp3"

    def test_locked_model_accepts_local_path(self):
        asset = Asset(id="l", name="LoRA", type=AssetType.MODEL,
                      status=AssetStatus.LOCKED, local_path="detective.safetensors")
        assert asset.media_reference == "detective.safetensors"

    def test_evolve_enforces_invariant(self):
        asset = Asset(id="a", name="侦探", type=AssetType.CHARACTER,
                      status=AssetStatus.LOCKED, reference_image="http://img/a.png")
        with pytest.raises(PydanticValidationError):
            asset.evolve(reference_image=None)


class TestImmutability:

    def test_models_are_frozen(self):
        shot = Shot(id="s1", sequence=1)
        with pytest.raises(PydanticValidationError):
            shot.sequence = 2

    def test_evolve_returns_new_instance(self):
        shot = Shot(id="s1", sequence=1)
        moved = shot.evolve(sequence=2)
        assert shot.sequence == 1
        assert moved.sequence == 2
        assert moved.id == "s1"

    def test_new_id_prefix(self):
        first, second = new_id("char"), new_id("char")
        assert first.startswith("char_")
        assert first != second

    def test_asset_type_groups(self):
        assert AssetType.PROP.is_visual
        assert AssetType.VOICE.is_audio
        assert not AssetType.MODEL.is_visual and not AssetType.MODEL.is_audio


class TestAnalysisDecoding:

    def test_camel_case_aliases(self):
        analysis = ScriptAnalysis.model_validate({
            "characters": [{"name": "侦探", "description": "d", "visualPrompt": "1man"}],
            "scenes": [],
            "shots": [{"sequence": 1, "scriptContent": "text", "visualPrompt": "vp",
                       "shotType": "Close Up", "cameraMovement": "Pan", "extra": "ignored"}],
        })
        assert analysis.characters[0].visual_prompt == "1man"
        assert analysis.shots[0].script_content == "text"
        assert analysis.shots[0].camera_movement == "Pan"

    def test_missing_sections_rejected(self):
        with pytest.raises(PydanticValidationError):
            ScriptAnalysis.model_validate({"characters": []})

    def test_empty_entity_name_rejected(self):
        with pytest.raises(PydanticValidationError):
            ScriptAnalysis.model_validate({
                "characters": [{"name": ""}], "scenes": [], "shots": [],
            })


class TestConfirmationResult:

    def test_completed_flag(self):
        done = ConfirmationResult(status=ConfirmationStatus.COMPLETED, action="delete_asset", target_id="a")
        pending = ConfirmationResult(status=ConfirmationStatus.CONFIRMATION_REQUIRED,
                                     action="delete_asset", target_id="a", message="?")
        assert done.completed
        assert not pending.completed
