"""
Prompt Builder for ComfyUI (Stable Diffusion) generations.

컷 프롬프트 구성 순서:
1. 아트 스타일 positive prompt (괄호로 강조)
2. LoRA 태그 (MODEL 에셋 + 스타일 LoRA)
3. 컷 visual prompt

참조 에셋 프롬프트는 ImageAgent가 최종 프롬프트 앞에 붙입니다.
"""

import os
from typing import List, Optional, Sequence

from schemas import ArtStyle, Asset, AssetReference
from utils.constants import DEFAULT_LORA_WEIGHT, SHOT_NEGATIVE_SUFFIX

_MODEL_EXTENSIONS = (".safetensors", ".ckpt")


class PromptBuilder:
    """ComfyUI 텍스트 프롬프트 조립기"""

    @staticmethod
    def with_asset_context(prompt: str, asset_references: Optional[Sequence[AssetReference]] = None) -> str:
        """참조 에셋 프롬프트 조각을 앞에 붙임 (토큰 예산 절단 없음)."""
        if not asset_references:
            return prompt
        asset_context = ", ".join(f"({ref.visual_prompt})" for ref in asset_references)
        return f"{asset_context}, {prompt}"

    @staticmethod
    def lora_tags(model_assets: Sequence[Asset], art_style: Optional[ArtStyle] = None) -> str:
        """
        MODEL 에셋과 스타일 LoRA를 <lora:name:weight> 태그로 변환.

        Returns:
            "<lora:a:1.0> trigger, <lora:style:0.8>, " 형태 (없으면 빈 문자열)
        """
        tags = ""
        for model in model_assets:
            if not model.local_path:
                continue
            filename = os.path.basename(model.local_path)
            for ext in _MODEL_EXTENSIONS:
                filename = filename.replace(ext, "")
            tags += f"<lora:{filename}:1.0> {model.trigger_words or ''}, "

        if art_style and art_style.lora_model:
            weight = art_style.lora_weight or DEFAULT_LORA_WEIGHT
            tags += f"<lora:{art_style.lora_model}:{weight}>, "
        return tags

    @staticmethod
    def shot_prompt(visual_prompt: str, art_style: ArtStyle, lora_tags: str = "") -> str:
        parts: List[str] = []
        if art_style.positive_prompt:
            parts.append(f"({art_style.positive_prompt}),")
        if lora_tags:
            parts.append(lora_tags.strip())
        parts.append(visual_prompt)
        return " ".join(p for p in parts if p)

    @staticmethod
    def negative_prompt(art_style: ArtStyle) -> str:
        if art_style.negative_prompt:
            return f"{art_style.negative_prompt}, {SHOT_NEGATIVE_SUFFIX}"
        return SHOT_NEGATIVE_SUFFIX
