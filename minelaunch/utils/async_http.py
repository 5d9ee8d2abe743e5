"""Async HTTP client utilities."""

import asyncio
import json
from typing import Any, Dict, Optional

import aiohttp

from ..errors import HTTPRejection, MalformedManifest, NetworkFailure


class AsyncHTTPClient:
    """Reusable async HTTP client for small JSON documents."""

    def __init__(self, headers: Optional[Dict[str, str]] = None, timeout: float = 60.0):
        self.default_headers = headers or {}
        self.timeout = aiohttp.ClientTimeout(total=timeout)
        self.session: Optional[aiohttp.ClientSession] = None

    async def __aenter__(self):
        self.session = aiohttp.ClientSession(headers=self.default_headers, timeout=self.timeout)
        return self

    async def __aexit__(self, exc_type, exc, tb):
        if self.session:
            await self.session.close()
            self.session = None

    async def get_bytes(self, url: str, headers: Optional[Dict[str, str]] = None) -> bytes:
        """GET request returning the raw body."""
        if not self.session:
            raise RuntimeError("AsyncHTTPClient used outside of 'async with'")
        try:
            async with self.session.get(url, headers=headers) as resp:
                if resp.status < 200 or resp.status >= 300:
                    raise HTTPRejection(url, resp.status, resp.reason or "")
                return await resp.read()
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise NetworkFailure(f"failed to fetch {url}: {e}", url) from e

    async def get(self, url: str, headers: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
        """GET request decoding a JSON object."""
        blob = await self.get_bytes(url, headers)
        try:
            return json.loads(blob)
        except ValueError as e:
            raise MalformedManifest(f"invalid JSON from {url}: {e}") from e
