import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from services.factory import ServiceFactory, get_service_factory
from services.nsfw_detect_service import register as register_nsfw, router as nsfw_router
from services.nsfw_detect_service.model_loader import ModelLoader
from core.config import Settings, get_settings
from core.logging import setup_logging

logger = logging.getLogger(__name__)

ALL_METHODS = ["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]
# multipart 边界、表单头等的余量；文件本身的大小在 api 里再精确检查
MULTIPART_OVERHEAD_BYTES = 64 * 1024


def create_app(settings: Optional[Settings] = None, factory: Optional[ServiceFactory] = None,
               loader: Optional[ModelLoader] = None) -> FastAPI:
    settings = settings or get_settings()
    factory = factory or get_service_factory()

    service_kwargs = dict()
    if loader is not None:
        service_kwargs["loader"] = loader

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        register_nsfw(factory, settings=settings, **service_kwargs)
        await factory.startup_all()
        yield
        await factory.shutdown_all()

    app = FastAPI(title=settings.APP_NAME, lifespan=lifespan)
    app.state.settings = settings
    app.state.factory = factory

    # 在读取 multipart 之前按 Content-Length 拒绝超大上传
    @app.middleware("http")
    async def upload_size_guard(request: Request, call_next):
        if request.method == "POST" and request.url.path.startswith("/detect/"):
            limit = settings.MAX_UPLOAD_BYTES + MULTIPART_OVERHEAD_BYTES
            try:
                content_length = int(request.headers.get("content-length", "0"))
            except ValueError:
                content_length = 0
            if content_length > limit:
                logger.warning("detect rejected: Content-Length %d exceeds %d", content_length, limit)
                return JSONResponse(status_code=413, content={"error": "Image file too large"})
        return await call_next(request)

    # 预检请求一律 200：不按方法/请求头过滤
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ALLOW_ORIGINS,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(nsfw_router, prefix="/detect", tags=["detect"])

    @app.get("/health", tags=["health"])
    async def health():
        return {"status": "ok", "services": factory.info_all()}

    # 兜底：其余路径/方法一律 405；非 CORS 预检的 OPTIONS 直接 200
    @app.api_route("/{path:path}", methods=ALL_METHODS, include_in_schema=False)
    async def fallback(request: Request, path: str):
        if request.method == "OPTIONS":
            return PlainTextResponse("OK", status_code=200)
        return JSONResponse(status_code=405, content={"error": "Method not allowed"})

    return app


setup_logging()
app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(app, host=settings.HOST, port=settings.PORT, log_level=settings.LOG_LEVEL.lower())
