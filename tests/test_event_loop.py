import asyncio
import time

import httpx
import pytest

from conftest import FakeDatabase, ScriptedProvider, make_settings
from jalsetu.api.main import create_app
from jalsetu.database.operations import FarmRepository
from jalsetu.providers import ProviderRegistry
from jalsetu.services.weather import WeatherService

DB_DELAY = 0.5


class SlowDatabase(FakeDatabase):
    """A database whose every call blocks the calling thread, like pymongo waiting on a server."""

    def __getitem__(self, name):
        time.sleep(DB_DELAY)
        return super().__getitem__(name)

    def command(self, name):
        time.sleep(DB_DELAY)
        return super().command(name)


def slow_app():
    settings = make_settings()
    providers = {
        "gemini": ScriptedProvider("gemini", [("Water at dawn.", [])] * 3),
        "perplexity": ScriptedProvider("perplexity"),
        "edenai": ScriptedProvider("edenai"),
    }
    return create_app(
        settings,
        registry=ProviderRegistry(settings, providers=providers),
        repository=FarmRepository(database=SlowDatabase()),
        weather=WeatherService(None),
        configure_logging=False,
    )


@pytest.mark.asyncio
@pytest.mark.parametrize("method,path", [
    ("GET", "/api/farm-data"),
    ("GET", "/api/farm/1/water-quality"),
    ("POST", "/api/farm/1/dashboard/refresh"),
    ("GET", "/health"),
])
async def test_chat_is_not_held_up_by_a_slow_database(method, path):
    transport = httpx.ASGITransport(app=slow_app())
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as client:
        farm_request = asyncio.create_task(client.request(method, path))
        await asyncio.sleep(0.05)

        start = time.perf_counter()
        chat = await client.post("/api/chat", json={"message": "hi"})
        chat_latency = time.perf_counter() - start

        farm = await farm_request

    assert chat.status_code == 200
    assert chat.json() == {"response": "Water at dawn."}
    assert chat_latency < DB_DELAY / 2
    assert farm.status_code in (200, 404)
