from abc import ABC, abstractmethod
from typing import Any, Dict


class BaseService(ABC):
    """由 ServiceFactory 管理的 service：应用启动时 startup()，退出时 shutdown()。"""

    @abstractmethod
    async def startup(self) -> None:
        raise NotImplementedError

    @abstractmethod
    async def shutdown(self) -> None:
        raise NotImplementedError

    @abstractmethod
    def info(self) -> Dict[str, Any]:
        """/health 中展示的状态"""
        raise NotImplementedError
