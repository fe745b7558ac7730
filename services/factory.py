from __future__ import annotations
import asyncio
from functools import lru_cache
from typing import Callable, Dict, Optional, Any, List

from .base import BaseService
import logging

logger = logging.getLogger(__name__)


class ServiceFactory:
    """
    ServiceFactory：登记 service 构造器，按名字懒创建并缓存实例，统一 startup / shutdown。

    用法示例:
        factory = ServiceFactory()
        factory.register("nsfw", lambda **kw: NsfwDetectService(settings=settings, **kw))
        svc = factory.create("nsfw")
        await factory.startup_all()
    """

    def __init__(self):
        self._registry: Dict[str, Callable[..., BaseService]] = {}
        self._instances: Dict[str, BaseService] = {}

    def register(self, name: str, ctor: Callable[..., BaseService]) -> None:
        if not callable(ctor):
            raise TypeError("ctor must be callable")
        logger.debug("Register service %s -> %s", name, getattr(ctor, "__name__", str(ctor)))
        self._registry[name] = ctor

    def unregister(self, name: str) -> None:
        logger.debug("Unregister service %s", name)
        self._registry.pop(name, None)
        self._instances.pop(name, None)

    def create(self, name: str, *, force_new: bool = False, **kwargs: Any) -> BaseService:
        """
        返回已存在的实例，或用注册的构造器创建一个。
        - force_new: True 时总是新建（覆盖旧实例）
        """
        if name not in self._registry:
            raise KeyError(f"service '{name}' is not registered")

        if not force_new and name in self._instances:
            return self._instances[name]

        inst = self._registry[name](**kwargs)
        if not isinstance(inst, BaseService):
            raise TypeError("created object is not an instance of BaseService")

        self._instances[name] = inst
        logger.info("Service '%s' instantiated", name)
        return inst

    def get(self, name: str) -> Optional[BaseService]:
        return self._instances.get(name)

    def list_registered(self) -> List[str]:
        return list(self._registry.keys())

    def list_instances(self) -> List[str]:
        return list(self._instances.keys())

    def clear_instances(self) -> None:
        self._instances.clear()

    # ---------------- lifecycle ----------------
    async def startup_all(self) -> None:
        """
        实例化所有已注册的 service 并并行调用 startup()。
        单个 service 启动失败只记日志，不影响其他 service 和进程启动。
        """
        for name in list(self._registry.keys()):
            if name not in self._instances:
                try:
                    self.create(name)
                except Exception:
                    logger.exception("failed to instantiate service %s during startup_all", name)

        names = list(self._instances.keys())
        results = await asyncio.gather(*(self._instances[n].startup() for n in names), return_exceptions=True)
        for name, res in zip(names, results):
            if isinstance(res, Exception):
                logger.error("service %s startup() failed: %s", name, res)
        logger.info("ServiceFactory: startup_all finished for %s", ", ".join(names))

    async def shutdown_all(self) -> None:
        names = list(self._instances.keys())
        results = await asyncio.gather(*(self._instances[n].shutdown() for n in names), return_exceptions=True)
        for name, res in zip(names, results):
            if isinstance(res, Exception):
                logger.error("service %s shutdown() failed: %s", name, res)
        logger.info("ServiceFactory: shutdown_all finished for %s", ", ".join(names))

    def info_all(self) -> Dict[str, Dict[str, Any]]:
        """返回所有已实例化服务的 info()"""
        out: Dict[str, Dict[str, Any]] = {}
        for name, inst in self._instances.items():
            try:
                out[name] = inst.info()
            except Exception:
                logger.exception("service %s info() failed", name)
                out[name] = {"error": True}
        return out


@lru_cache()
def get_service_factory() -> ServiceFactory:
    return ServiceFactory()
