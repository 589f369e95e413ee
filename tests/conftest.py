"""Shared fixtures: an in-process HTTP catalog and archive helpers."""

import hashlib
import io
import json
import zipfile
from collections import Counter
from pathlib import Path
from typing import Dict, Union

import pytest
import pytest_asyncio
from aiohttp import web
from aiohttp.test_utils import TestServer

from mosaic.config import LauncherSettings
from mosaic.utils.platform_facts import PlatformFacts


def sha1(data: bytes) -> str:
    return hashlib.sha1(data).hexdigest()


def make_zip(entries: Dict[str, bytes]) -> bytes:
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as archive:
        for name, data in entries.items():
            archive.writestr(name, data)
    return buffer.getvalue()


class CatalogServer:
    """Serves registered bytes by path and counts every request."""

    def __init__(self):
        self.routes: Dict[str, tuple] = {}
        self.requests: Counter = Counter()
        self.server = None

    def add(self, path: str, body: Union[bytes, str, dict, list], status: int = 200):
        if isinstance(body, (dict, list)):
            body = json.dumps(body)
        if isinstance(body, str):
            body = body.encode("utf-8")
        self.routes[path] = (status, body)

    def add_json(self, path: str, document) -> str:
        """Register a JSON document and return its SHA-1."""
        body = json.dumps(document).encode("utf-8")
        self.add(path, body)
        return sha1(body)

    def url(self, path: str) -> str:
        return str(self.server.make_url(path))

    @property
    def total_requests(self) -> int:
        return sum(self.requests.values())

    async def handle(self, request: web.Request) -> web.Response:
        path = request.path
        self.requests[path] += 1
        if path not in self.routes:
            return web.Response(status=404, text="not found")
        status, body = self.routes[path]
        return web.Response(status=status, body=body)


@pytest_asyncio.fixture
async def catalog():
    catalog = CatalogServer()
    app = web.Application()
    app.router.add_route("GET", "/{path:.*}", catalog.handle)
    catalog.server = TestServer(app)
    await catalog.server.start_server()
    try:
        yield catalog
    finally:
        await catalog.server.close()


@pytest.fixture
def settings(tmp_path: Path) -> LauncherSettings:
    return LauncherSettings(
        minecraft_dir=tmp_path / "minecraft",
        cache_dir=tmp_path / "cache",
        installer_retry_delay=0,
    )


@pytest.fixture
def linux_x64() -> PlatformFacts:
    return PlatformFacts(os_name="linux", arch="x86_64", os_version="6.1.0")


@pytest.fixture
def windows_x64() -> PlatformFacts:
    return PlatformFacts(os_name="windows", arch="x86_64", os_version="10.0")
