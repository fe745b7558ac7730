import unittest
from typing import Any, Dict

from services.base import BaseService
from services.factory import ServiceFactory


class DummyService(BaseService):
    def __init__(self, name="dummy", fail_startup=False):
        self.name = name
        self.fail_startup = fail_startup
        self.started = False
        self.stopped = False

    async def startup(self) -> None:
        if self.fail_startup:
            raise RuntimeError("boom")
        self.started = True

    async def shutdown(self) -> None:
        self.stopped = True

    def info(self) -> Dict[str, Any]:
        return {"name": self.name, "ready": self.started}


class ServiceFactoryTestCase(unittest.IsolatedAsyncioTestCase):
    def setUp(self):
        self.factory = ServiceFactory()

    def test_register_requires_callable(self):
        with self.assertRaises(TypeError):
            self.factory.register("bad", "not callable")

    def test_create_unregistered(self):
        with self.assertRaises(KeyError):
            self.factory.create("missing")

    def test_create_rejects_non_service(self):
        self.factory.register("obj", lambda **kw: object())
        with self.assertRaises(TypeError):
            self.factory.create("obj")

    def test_create_caches_instance(self):
        self.factory.register("dummy", DummyService)
        first = self.factory.create("dummy")
        self.assertIs(self.factory.create("dummy"), first)
        self.assertIsNot(self.factory.create("dummy", force_new=True), first)
        self.assertEqual(self.factory.list_registered(), ["dummy"])
        self.assertEqual(self.factory.list_instances(), ["dummy"])

    def test_unregister(self):
        self.factory.register("dummy", DummyService)
        self.factory.create("dummy")
        self.factory.unregister("dummy")
        self.assertIsNone(self.factory.get("dummy"))
        self.assertEqual(self.factory.list_registered(), [])

    async def test_startup_and_shutdown_all(self):
        self.factory.register("a", lambda **kw: DummyService("a"))
        self.factory.register("b", lambda **kw: DummyService("b", fail_startup=True))

        with self.assertLogs("services.factory", level="ERROR"):
            await self.factory.startup_all()

        a, b = self.factory.get("a"), self.factory.get("b")
        self.assertTrue(a.started)
        self.assertFalse(b.started)
        self.assertEqual(self.factory.info_all(), {"a": {"name": "a", "ready": True},
                                                   "b": {"name": "b", "ready": False}})

        await self.factory.shutdown_all()
        self.assertTrue(a.stopped and b.stopped)


if __name__ == "__main__":
    unittest.main()
