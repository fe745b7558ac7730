import logging
import time
from typing import Union

from fastapi import APIRouter, Depends, File, Request, UploadFile
from fastapi.responses import JSONResponse
from starlette.datastructures import UploadFile as StarletteUploadFile
from core.config import Settings
from services.factory import ServiceFactory
from .errors import ImageTooLargeError, NoImageProvidedError
from .schemas import DetectFailureResponse, DetectResponse, ErrorResponse
from .service import FAIL_OPEN_VERDICT

router = APIRouter()
logger = logging.getLogger(__name__)


def _get_factory(request: Request) -> ServiceFactory:
    return request.app.state.factory


def _get_settings(request: Request) -> Settings:
    return request.app.state.settings


def _failure() -> JSONResponse:
    body = DetectFailureResponse(nsfw=FAIL_OPEN_VERDICT)
    return JSONResponse(status_code=500, content=body.model_dump())


@router.post(
    "/{subpath:path}",
    response_model=DetectResponse,
    responses={400: {"model": ErrorResponse}, 413: {"model": ErrorResponse}, 500: {"model": DetectFailureResponse}},
)
async def detect(subpath: str, image: Union[UploadFile, str, None] = File(None),
                 factory: ServiceFactory = Depends(_get_factory),
                 settings: Settings = Depends(_get_settings)):
    logger.info("Received /detect/%s request: filename=%s content_type=%s",
                subpath, getattr(image, "filename", None), getattr(image, "content_type", None))

    start_pc = time.perf_counter()
    try:
        # image 是普通文本字段时等同于没有上传文件
        if not isinstance(image, StarletteUploadFile):
            raise NoImageProvidedError()
        if image.size is not None and image.size > settings.MAX_UPLOAD_BYTES:
            raise ImageTooLargeError(image.size, settings.MAX_UPLOAD_BYTES)
        data = await image.read()
        if not data:
            raise NoImageProvidedError()
        if len(data) > settings.MAX_UPLOAD_BYTES:
            raise ImageTooLargeError(len(data), settings.MAX_UPLOAD_BYTES)
    except NoImageProvidedError as e:
        logger.warning("detect rejected: %s", e)
        return JSONResponse(status_code=400, content=ErrorResponse(error=str(e)).model_dump())
    except ImageTooLargeError as e:
        logger.warning("detect rejected: %s", e)
        return JSONResponse(status_code=413, content=ErrorResponse(error="Image file too large").model_dump())

    try:
        svc = factory.create("nsfw")
    except KeyError:
        logger.error("NSFW service not registered; filename=%s", image.filename)
        return _failure()

    try:
        is_nsfw = await svc.classify(data, image.content_type)
    except Exception as e:
        elapsed_ms = (time.perf_counter() - start_pc) * 1000
        logger.exception("NSFW detection error: %s; filename=%s; elapsed_ms=%.2fms",
                         e, image.filename, elapsed_ms)
        return _failure()

    elapsed_ms = (time.perf_counter() - start_pc) * 1000
    logger.info("detect success: filename=%s bytes=%d nsfw=%s elapsed_ms=%.2fms",
                image.filename, len(data), is_nsfw, elapsed_ms)

    return DetectResponse(success=True, nsfw=is_nsfw)
