from typing import List, Optional
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict
from pathlib import Path
from functools import lru_cache


BASE_DIR = Path(__file__).resolve().parent.parent


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=str(BASE_DIR / ".env"),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # 基本环境
    APP_ENV: str = "test"   # e.g. "prod" or "test" or "dev"
    APP_NAME: str = "nsfw_detect"
    DEBUG: bool = True
    HOST: str = "0.0.0.0"
    PORT: int = 3002

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FILE: Optional[str] = "nsfw_detect_server.log"

    # Model
    MODEL_TASK: str = "image-classification"
    MODEL_ID: str = "AdamCodd/vit-base-nsfw-detector"
    MODEL_DEVICE: Optional[str] = None     # None -> cuda:0 if available else cpu
    MODEL_CACHE_DIR: Optional[Path] = None  # None -> huggingface_hub 默认缓存目录
    NSFW_LABEL: str = "nsfw"

    # 模型初始化重试（缓存损坏时清缓存后重试）
    MAX_INIT_ATTEMPTS: int = Field(3, ge=1)
    INIT_RETRY_DELAY_S: float = Field(1.0, ge=0)
    EAGER_MODEL_INIT: bool = True

    # Upload
    MAX_UPLOAD_BYTES: int = 100 * 1024 * 1024

    # CORS
    CORS_ALLOW_ORIGINS: List[str] = ["*"]


@lru_cache()
def get_settings() -> Settings:
    return Settings()
