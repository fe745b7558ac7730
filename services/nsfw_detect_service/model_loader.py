"""
模型加载与缓存自愈。

ModelLifecycle 独占一个共享的 pipeline 句柄和连续失败计数：
加载失败且错误文本符合“缓存损坏”特征时，删除本地模型缓存、等待后重试一次；
计数达到上限后直接报 ModelInitExhaustedError。其他错误不计数、不重试，原样抛出。
"""
import asyncio
import logging
import shutil
from pathlib import Path
from typing import Any, Awaitable, Callable, Dict, Optional

from .errors import ModelInitExhaustedError
from .utils import InitErrorKind, classify_init_error, repo_cache_folder

logger = logging.getLogger(__name__)

ModelLoader = Callable[[str], Any]


def default_cache_root() -> Path:
    from huggingface_hub import constants

    return Path(constants.HF_HUB_CACHE)


def load_pipeline(model_id: str, task: str = "image-classification", device: Optional[str] = None,
                  cache_dir: Optional[Path] = None):
    """transformers.pipeline 的薄封装；阻塞调用，由 ModelLifecycle 放到线程里执行"""
    import torch
    from transformers import pipeline

    if device is None:
        device = "cuda:0" if torch.cuda.is_available() else "cpu"
    model_kwargs = {"cache_dir": str(cache_dir)} if cache_dir else None
    return pipeline(task, model=model_id, device=device, model_kwargs=model_kwargs)


class ModelLifecycle:
    def __init__(self, model_id: str, loader: ModelLoader, cache_root: Optional[Path] = None,
                 max_attempts: int = 3, retry_delay_s: float = 1.0,
                 sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep):
        self.model_id = model_id
        self.max_attempts = max_attempts
        self.retry_delay_s = retry_delay_s
        self._loader = loader
        self._cache_root = Path(cache_root) if cache_root else None
        self._sleep = sleep
        self._handle = None
        self._attempts = 0
        # 单飞初始化：并发请求在锁上等待，而不是各自再触发一次加载
        self._init_lock = asyncio.Lock()

    @property
    def handle(self):
        return self._handle

    @property
    def attempts(self) -> int:
        return self._attempts

    @property
    def is_ready(self) -> bool:
        return self._handle is not None

    @property
    def cache_dir(self) -> Path:
        root = self._cache_root or default_cache_root()
        return root / repo_cache_folder(self.model_id)

    async def ensure_ready(self):
        if self._handle is not None:
            return self._handle

        async with self._init_lock:
            if self._handle is not None:
                return self._handle
            return await self._initialize()

    async def _initialize(self):
        try:
            handle = await self._load()
        except Exception as e:
            if classify_init_error(e) is not InitErrorKind.CACHE_CORRUPTION:
                self._handle = None
                logger.error("Model loading failed for %s: %s", self.model_id, e)
                raise

            self._attempts += 1
            logger.error("Model loading failed (attempt %d/%d): %s", self._attempts, self.max_attempts, e)

            if self._attempts >= self.max_attempts:
                self._handle = None
                raise ModelInitExhaustedError(self._attempts) from e

            await asyncio.to_thread(self.clear_cache)
            logger.info("Retrying model initialization in %.1fs...", self.retry_delay_s)
            await self._sleep(self.retry_delay_s)

            try:
                handle = await self._load()
            except Exception as retry_error:
                logger.error("Retry failed: %s", retry_error)
                self._handle = None
                raise
            self._store(handle)
            logger.info("Model %s loaded successfully after cache clear", self.model_id)
            return handle

        self._store(handle)
        logger.info("Model %s loaded successfully", self.model_id)
        return handle

    async def _load(self):
        return await asyncio.to_thread(self._loader, self.model_id)

    def _store(self, handle) -> None:
        self._handle = handle
        self._attempts = 0

    def clear_cache(self) -> bool:
        """
        删除该模型的本地缓存目录（递归、强制）。删除失败只记日志，不抛异常。
        :return: 目录是否被删除
        """
        try:
            path = self.cache_dir
            if not path.exists():
                return False
            logger.info("Clearing corrupted model cache: %s", path)
            shutil.rmtree(path)
            logger.info("Cache cleared successfully")
            return True
        except Exception as e:
            logger.error("Error clearing cache: %s", e)
            return False

    def unload(self) -> None:
        self._handle = None
        self._attempts = 0

    def info(self) -> Dict[str, Any]:
        try:
            cache_dir = str(self.cache_dir)
        except Exception:
            cache_dir = None
        return {
            "model_id": self.model_id,
            "ready": self.is_ready,
            "attempts": self._attempts,
            "max_attempts": self.max_attempts,
            "cache_dir": cache_dir,
        }
