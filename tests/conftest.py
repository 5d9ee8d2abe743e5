"""Shared fixtures."""

import asyncio
import zipfile
from collections import Counter
from pathlib import Path
from typing import Awaitable, Callable, Dict, Tuple

import pytest
import pytest_asyncio
from aiohttp import test_utils, web

from minelaunch.core.platform import PlatformContext


class FileServer:
    """In-process HTTP server serving fixed payloads and counting requests."""

    def __init__(self):
        self.routes: Dict[str, Tuple[int, bytes]] = {}
        self.handlers: Dict[str, Callable[[web.Request], Awaitable[web.StreamResponse]]] = {}
        self.hits: Counter = Counter()
        self.release = asyncio.Event()
        app = web.Application()
        app.router.add_get("/{path:.*}", self._handle)
        self.server = test_utils.TestServer(app)

    def add(self, path: str, body: bytes, status: int = 200) -> str:
        path = "/" + path.lstrip("/")
        self.routes[path] = (status, body)
        return self.url(path)

    def add_handler(self, path: str, handler) -> str:
        path = "/" + path.lstrip("/")
        self.handlers[path] = handler
        return self.url(path)

    def url(self, path: str) -> str:
        return str(self.server.make_url("/" + path.lstrip("/")))

    async def _handle(self, request: web.Request) -> web.StreamResponse:
        self.hits[request.path] += 1
        if request.path in self.handlers:
            return await self.handlers[request.path](request)
        status, body = self.routes.get(request.path, (404, b"not found"))
        return web.Response(status=status, body=body)

    async def stall(self, request: web.Request) -> web.StreamResponse:
        """Send a few bytes, then hang until the server shuts down."""
        resp = web.StreamResponse()
        await resp.prepare(request)
        await resp.write(b"partial")
        await self.release.wait()
        return resp

    async def __aenter__(self):
        await self.server.start_server()
        return self

    async def __aexit__(self, exc_type, exc, tb):
        self.release.set()
        await self.server.close()


@pytest_asyncio.fixture
async def file_server():
    async with FileServer() as server:
        yield server


@pytest.fixture
def linux_amd64():
    return PlatformContext(os_name="linux", arch="amd64", os_version="6.1.0-generic")


@pytest.fixture
def make_zip(tmp_path):
    def _make(name: str, entries: Dict[str, bytes]) -> Path:
        path = tmp_path / name
        path.parent.mkdir(parents=True, exist_ok=True)
        with zipfile.ZipFile(path, "w") as zf:
            for entry, data in entries.items():
                if entry.endswith("/"):
                    zf.writestr(zipfile.ZipInfo(entry), b"")
                else:
                    zf.writestr(entry, data)
        return path
    return _make
