# app/services/nsfw_detect_service/utils.py
import io
import logging
from enum import Enum
from typing import Any, Dict, List, Optional

from PIL import Image

logger = logging.getLogger(__name__)

DEFAULT_MIME_TYPE = "image/jpeg"

# 模型加载库给出的是非结构化错误文本，只能按子串匹配（区分大小写）
CACHE_CORRUPTION_SIGNATURES = (
    "system error number 13",
    "failed:system error",
    "Permission denied",
)


class InitErrorKind(str, Enum):
    CACHE_CORRUPTION = "cache_corruption"
    OTHER = "other"


def classify_init_error(exc: BaseException) -> InitErrorKind:
    message = str(exc)
    if message and any(sig in message for sig in CACHE_CORRUPTION_SIGNATURES):
        return InitErrorKind.CACHE_CORRUPTION
    return InitErrorKind.OTHER


def repo_cache_folder(model_id: str) -> str:
    """huggingface_hub 的缓存目录命名：models--{org}--{name}"""
    return "models--" + model_id.replace("/", "--")


def decode_image(data: bytes, mime_type: Optional[str] = None) -> Image.Image:
    """
    把上传的字节解码成 RGB 图片。mime_type 只作提示，实际格式由 Pillow 根据内容识别。
    """
    mime_type = mime_type or DEFAULT_MIME_TYPE
    image = Image.open(io.BytesIO(data))
    image.load()
    logger.debug("Decoded image: mime_type=%s format=%s size=%s", mime_type, image.format, image.size)
    return image.convert("RGB")


def top_result(result: Any) -> Dict[str, Any]:
    """pipeline 返回 [{label, score}, ...]（按 score 降序）；只取第一个"""
    if isinstance(result, dict):
        return result
    items: List[Dict[str, Any]] = list(result or [])
    if not items:
        raise ValueError("classifier returned no results")
    first = items[0]
    # batched output: [[{...}]]
    if isinstance(first, list):
        if not first:
            raise ValueError("classifier returned no results")
        first = first[0]
    return first
