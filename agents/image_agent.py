"""
Image Agent: ComfyUI 기반 이미지 생성 게이트웨이.

- CLOUD_MOCK 엔진이거나 ComfyUI 연결 확인(/system_stats)이 실패하면
  seed 기반 플레이스홀더 URL을 반환 (고정 지연 후)
- 실제 모드: /prompt 로 워크플로우 제출 → /ws 에서 완료 이벤트 대기 → /history 조회
- Img2Img(끝 프레임)는 KSampler denoise 값만 낮춰서 표현

타임아웃/재연결/재시도 없음. 제출 실패나 소켓 오류는 GenerationError로 전파됩니다.
"""

import asyncio
import copy
import json
import random
from typing import Optional, List, Sequence
from urllib.parse import urlencode, urlsplit

import aiohttp

from schemas import AssetReference, GenerationEngine, now_ms
from utils.constants import (
    ASSET_CANDIDATE_COUNT,
    COMFY_CLIENT_PREFIX,
    CONNECTION_PROBE_TIMEOUT_SEC,
    DEFAULT_COMFYUI_URL,
    IMG2IMG_DENOISE,
    MAX_SEED,
    MOCK_GENERATION_DELAY_SEC,
    PLACEHOLDER_URL_TEMPLATE,
    SAVE_IMAGE_NODE,
)
from utils.error_manager import ErrorManager
from utils.errors import GenerationError
from utils.logger import get_logger
from utils.prompt_builder import PromptBuilder

logger = get_logger("image_agent")


# 기본 Txt2Img 워크플로우 (ComfyUI API 포맷)
T2I_WORKFLOW = {
    "3": {"inputs": {"seed": 0, "steps": 20, "cfg": 8, "sampler_name": "euler", "scheduler": "normal",
                     "denoise": 1, "model": ["4", 0], "positive": ["6", 0], "negative": ["7", 0],
                     "latent_image": ["5", 0]}, "class_type": "KSampler"},
    "4": {"inputs": {"ckpt_name": "v1-5-pruned-emaonly.ckpt"}, "class_type": "CheckpointLoaderSimple"},
    "5": {"inputs": {"width": 512, "height": 512, "batch_size": 1}, "class_type": "EmptyLatentImage"},
    "6": {"inputs": {"text": "", "clip": ["4", 1]}, "class_type": "CLIPTextEncode"},
    "7": {"inputs": {"text": "text, watermark, low quality", "clip": ["4", 1]}, "class_type": "CLIPTextEncode"},
    "8": {"inputs": {"samples": ["3", 0], "vae": ["4", 2]}, "class_type": "VAEDecode"},
    "9": {"inputs": {"filename_prefix": "DirectorAI", "images": ["8", 0]}, "class_type": "SaveImage"},
}


def placeholder_url(seed: Optional[int] = None) -> str:
    """seed 기반 플레이스홀더 이미지 URL (seed 없으면 무작위)"""
    if seed is None:
        seed = random.randint(0, 9999)
    return PLACEHOLDER_URL_TEMPLATE.format(seed=seed)


def build_workflow(prompt: str, negative_prompt: str, seed: int, img2img: bool = False) -> dict:
    """T2I 템플릿 복사본에 프롬프트/시드를 채움"""
    workflow = copy.deepcopy(T2I_WORKFLOW)
    workflow["6"]["inputs"]["text"] = prompt
    workflow["7"]["inputs"]["text"] = negative_prompt
    workflow["3"]["inputs"]["seed"] = seed
    if img2img:
        workflow["3"]["inputs"]["denoise"] = IMG2IMG_DENOISE
    return workflow


class ImageAgent:
    """
    이미지 생성 에이전트 (ComfyUI)

    Args:
        base_url: ComfyUI 서버 주소 (예: http://127.0.0.1:8188)
        engine: COMFY_LOCAL / COMFY_REMOTE / CLOUD_MOCK
        mock_delay_sec: 플레이스홀더 반환 전 인위적 지연
    """

    def __init__(
        self,
        base_url: str = DEFAULT_COMFYUI_URL,
        engine: GenerationEngine = GenerationEngine.CLOUD_MOCK,
        mock_delay_sec: float = MOCK_GENERATION_DELAY_SEC,
    ):
        self.base_url = base_url.rstrip("/")
        self.client_id = f"{COMFY_CLIENT_PREFIX}-{now_ms()}"
        self.engine = GenerationEngine(engine)
        self.is_mock = self.engine == GenerationEngine.CLOUD_MOCK
        self.mock_delay_sec = mock_delay_sec

    async def check_connection(self) -> bool:
        """ComfyUI 연결 확인 (GET /system_stats, 3초 제한)"""
        if self.is_mock:
            return True
        try:
            timeout = aiohttp.ClientTimeout(total=CONNECTION_PROBE_TIMEOUT_SEC)
            async with aiohttp.ClientSession(timeout=timeout) as session:
                async with session.get(f"{self.base_url}/system_stats") as res:
                    return res.ok
        except (aiohttp.ClientError, asyncio.TimeoutError, OSError) as e:
            logger.warning(f"ComfyUI connection failed: {e!r}")
            return False

    async def generate_image(
        self,
        prompt: str,
        negative_prompt: str = "",
        seed: Optional[int] = None,
        asset_references: Optional[Sequence[AssetReference]] = None,
        input_image: Optional[str] = None,
    ) -> str:
        """
        이미지를 생성하고 URL을 반환합니다.

        Args:
            prompt: 컷/에셋 프롬프트
            negative_prompt: 네거티브 프롬프트
            seed: 시드 (없으면 무작위)
            asset_references: 잠금된 참조 에셋 (프롬프트 앞에 붙음)
            input_image: 시작 프레임 URL. 있으면 Img2Img(끝 프레임) 모드

        Returns:
            이미지 URL

        Raises:
            GenerationError: 제출 실패, 소켓 오류, 해석 불가 응답, 결과 없음
        """
        effective_prompt = PromptBuilder.with_asset_context(prompt, asset_references)
        mode = "Img2Img" if input_image else "Txt2Img"

        if self.is_mock or not await self.check_connection():
            logger.info(f"[{mode}] Prompt: {effective_prompt[:50]}...")
            await asyncio.sleep(self.mock_delay_sec)
            return placeholder_url(seed)

        if seed is None:
            seed = random.randint(0, MAX_SEED)

        workflow = build_workflow(effective_prompt, negative_prompt, seed, img2img=bool(input_image))
        logger.info(f"[{mode}] Queueing ComfyUI job (seed={seed})")

        try:
            async with aiohttp.ClientSession() as session:
                prompt_id = await self._queue_prompt(session, workflow)
                await self._wait_for_completion(session, prompt_id)
                return await self._fetch_result_url(session, prompt_id)
        except aiohttp.ClientError as e:
            ErrorManager.log_error("ComfyUI", "Connection error during generation", repr(e))
            raise GenerationError("ComfyUI connection error", {"error": repr(e)}) from e
        except (ValueError, KeyError, AttributeError, TypeError) as e:
            # 소켓 프레임이나 /history 응답을 해석할 수 없음
            ErrorManager.log_error("ComfyUI", "Unreadable response during generation", repr(e))
            raise GenerationError("ComfyUI returned an unreadable response", {"error": repr(e)}) from e

    async def generate_batch(
        self,
        prompt: str,
        negative_prompt: str = "",
        count: int = ASSET_CANDIDATE_COUNT,
        base_seed: Optional[int] = None,
    ) -> List[str]:
        """
        연속 시드로 count장을 동시에 생성 (all-or-nothing).

        하나라도 실패하면 전체가 실패합니다.
        """
        if base_seed is None:
            base_seed = random.randint(0, 100000)
        seeds = [base_seed + i for i in range(count)]
        return list(await asyncio.gather(
            *(self.generate_image(prompt, negative_prompt, seed) for seed in seeds)
        ))

    async def _queue_prompt(self, session: aiohttp.ClientSession, workflow: dict) -> str:
        payload = {"client_id": self.client_id, "prompt": workflow}
        async with session.post(f"{self.base_url}/prompt", json=payload) as res:
            if not res.ok:
                body = await res.text()
                ErrorManager.log_error("ComfyUI", "Failed to queue prompt", f"HTTP {res.status}: {body[:200]}")
                raise GenerationError("Failed to queue prompt", {"status": res.status})
            data = await res.json()
        prompt_id = data.get("prompt_id")
        if not prompt_id:
            raise GenerationError("ComfyUI returned no prompt_id", {"response": data})
        logger.debug(f"Queued prompt {prompt_id}")
        return prompt_id

    def _ws_url(self) -> str:
        parts = urlsplit(self.base_url)
        scheme = "wss" if parts.scheme == "https" else "ws"
        return f"{scheme}://{parts.netloc}/ws?{urlencode({'clientId': self.client_id})}"

    @staticmethod
    def _is_completion(message: dict, prompt_id: str) -> bool:
        # node == null 인 executing 이벤트가 작업 종료 신호
        if message.get("type") != "executing":
            return False
        data = message.get("data") or {}
        return data.get("node") is None and data.get("prompt_id") == prompt_id

    async def _wait_for_completion(self, session: aiohttp.ClientSession, prompt_id: str) -> None:
        async with session.ws_connect(self._ws_url()) as ws:
            async for msg in ws:
                if msg.type == aiohttp.WSMsgType.TEXT:
                    if self._is_completion(json.loads(msg.data), prompt_id):
                        return
                elif msg.type == aiohttp.WSMsgType.ERROR:
                    ErrorManager.log_error("ComfyUI", "WebSocket error", repr(ws.exception()))
                    raise GenerationError("ComfyUI WebSocket error", {"prompt_id": prompt_id})
                # BINARY 프레임은 미리보기 이미지 → 무시
        raise GenerationError("ComfyUI WebSocket closed before completion", {"prompt_id": prompt_id})

    async def _fetch_result_url(self, session: aiohttp.ClientSession, prompt_id: str) -> str:
        async with session.get(f"{self.base_url}/history/{prompt_id}") as res:
            history = await res.json()

        outputs = (history.get(prompt_id) or {}).get("outputs") or {}
        images = (outputs.get(SAVE_IMAGE_NODE) or {}).get("images") or []
        if not images:
            ErrorManager.log_error("ComfyUI", "No image output found", f"prompt_id={prompt_id}")
            raise GenerationError("No image output found", {"prompt_id": prompt_id})

        image = images[0]
        query = urlencode({
            "filename": image.get("filename", ""),
            "subfolder": image.get("subfolder", ""),
            "type": image.get("type", ""),
        })
        return f"{self.base_url}/view?{query}"
