from .api import router
from .service import NsfwDetectService

__all__ = ["router", "NsfwDetectService"]


def register(factory, settings=None, **service_kwargs):

    factory.register("nsfw", lambda **kw: NsfwDetectService(settings=settings, **{**service_kwargs, **kw}))
