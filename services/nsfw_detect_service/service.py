import asyncio
import logging
from functools import partial
from typing import Any, Dict, Optional

from services.base import BaseService
from core.config import Settings, get_settings
from .errors import InferenceError
from .model_loader import ModelLifecycle, ModelLoader, load_pipeline
from .utils import decode_image, top_result


logger = logging.getLogger(__name__)

# 出错时的判定结果：False = fail-open（分类失败不拦截内容）。需要 fail-closed 时改这里。
FAIL_OPEN_VERDICT = False


class NsfwDetectService(BaseService):
    """
    NsfwDetectService: 上传图片 -> 是否 NSFW。
    模型句柄由 ModelLifecycle 持有；测试时可以通过 loader 注入假的加载函数：
        factory.register("nsfw", lambda **kw: NsfwDetectService(settings=settings, loader=fake_loader))
    """
    def __init__(self, settings: Optional[Settings] = None, loader: Optional[ModelLoader] = None):
        self.settings = settings or get_settings()
        if loader is None:
            loader = partial(load_pipeline, task=self.settings.MODEL_TASK,
                             device=self.settings.MODEL_DEVICE, cache_dir=self.settings.MODEL_CACHE_DIR)
        self.lifecycle = ModelLifecycle(
            model_id=self.settings.MODEL_ID,
            loader=loader,
            cache_root=self.settings.MODEL_CACHE_DIR,
            max_attempts=self.settings.MAX_INIT_ATTEMPTS,
            retry_delay_s=self.settings.INIT_RETRY_DELAY_S,
        )
        self.nsfw_label = self.settings.NSFW_LABEL
        self._warmup_task: Optional[asyncio.Task] = None
        self._ready = False

    async def startup(self) -> None:
        self._ready = True
        if self.settings.EAGER_MODEL_INIT:
            self._warmup_task = asyncio.create_task(self._warmup())

    async def _warmup(self) -> None:
        try:
            await self.lifecycle.ensure_ready()
        except Exception as e:
            logger.error("Failed to initialize NSFW detection model on startup: %s", e)
            logger.info("Model will be initialized on first request")

    async def shutdown(self) -> None:
        self._ready = False
        task, self._warmup_task = self._warmup_task, None
        if task is not None and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        self.lifecycle.unload()

    def info(self) -> Dict[str, Any]:
        return {"name": "NsfwDetectService", "ready": self._ready, "model": self.lifecycle.info()}

    async def classify(self, image_bytes: bytes, mime_type: Optional[str] = None) -> bool:
        pipe = await self.lifecycle.ensure_ready()

        try:
            image = decode_image(image_bytes, mime_type)
            result = await asyncio.to_thread(pipe, image, top_k=1)
            top = top_result(result)
        except Exception as e:
            raise InferenceError(f"NSFW classification failed: {e}") from e

        label = top.get("label")
        logger.info("NSFW classification: label=%s score=%s", label, top.get("score"))
        return label == self.nsfw_label
