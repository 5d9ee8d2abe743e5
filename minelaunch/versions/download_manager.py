"""Download manager for assets and libraries.

Every file is content addressed: a file already at its target path with the
expected SHA1 is never fetched again. New data is streamed into a sibling
``.new`` file while being hashed and only renamed onto the target once the
digest matches, so a target path never holds unverified bytes.
"""

import asyncio
import hashlib
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Awaitable, Dict, Iterable, List, Optional, Tuple, TypeVar

import aiofiles
import aiohttp
from pydantic import ValidationError

from ..config import RESOURCES_URL, LauncherSettings
from ..errors import (ConflictingFetch, DownloadFailed, FilesystemFailure, HashMismatch,
                      HTTPRejection, LauncherError, MalformedManifest, NetworkFailure)
from .models import AssetIndex, VersionManifest

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class FetchResult:
    """Proof that ``path`` holds a file whose SHA1 is ``sha1``."""
    path: Path
    sha1: str
    downloaded: bool


async def run_all_or_abort(coros: Iterable[Awaitable[T]]) -> List[T]:
    """Run coroutines concurrently; on the first failure cancel the rest and re-raise it."""
    tasks = [asyncio.ensure_future(coro) for coro in coros]
    if not tasks:
        return []

    try:
        done, pending = await asyncio.wait(tasks, return_when=asyncio.FIRST_EXCEPTION)
    except asyncio.CancelledError:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        raise

    failures = [task.exception() for task in tasks
                if task in done and not task.cancelled() and task.exception() is not None]
    if failures:
        for task in pending:
            task.cancel()
        await asyncio.gather(*pending, return_exceptions=True)
        raise failures[0]
    return [task.result() for task in tasks]


def _remove_temp(path: Path) -> None:
    try:
        path.unlink(missing_ok=True)
    except OSError as e:
        logger.warning("Failed to remove temporary file %s: %s", path, e)


class DownloadManager:
    def __init__(self, concurrent_downloads: int = 8, timeout: float = 60.0,
                 resources_url: str = RESOURCES_URL, chunk_size: int = 64 * 1024):
        self.concurrent_downloads = concurrent_downloads
        self.timeout = aiohttp.ClientTimeout(total=timeout)
        self.resources_url = resources_url.rstrip("/")
        self.chunk_size = chunk_size
        self.session: Optional[aiohttp.ClientSession] = None
        self.semaphore = asyncio.Semaphore(concurrent_downloads)
        self._in_flight: Dict[Path, Tuple[str, asyncio.Task]] = {}

    @classmethod
    def from_settings(cls, settings: LauncherSettings, **kwargs) -> "DownloadManager":
        return cls(
            concurrent_downloads=settings.concurrent_downloads,
            timeout=settings.request_timeout,
            resources_url=settings.resources_url,
            **kwargs,
        )

    async def __aenter__(self):
        self.session = aiohttp.ClientSession(timeout=self.timeout)
        return self

    async def __aexit__(self, exc_type, exc, tb):
        if self.session:
            await self.session.close()
            self.session = None

    async def fetch_verified(self, target: Path, url: str, expected_sha1: str) -> FetchResult:
        """Make sure ``target`` holds the file with SHA1 ``expected_sha1``, downloading it if needed.

        Concurrent calls for the same target share one transfer.
        """
        target = Path(target).absolute()
        expected_sha1 = expected_sha1.lower()
        entry = self._in_flight.get(target)
        if entry is None:
            task = asyncio.ensure_future(self._fetch(target, url, expected_sha1))
            self._in_flight[target] = (expected_sha1, task)
            task.add_done_callback(lambda done, key=target: self._forget(key, done))
        else:
            in_flight_sha1, task = entry
            if in_flight_sha1 != expected_sha1:
                logger.error("Conflicting fetches of %s: %s and %s", target, in_flight_sha1, expected_sha1)
                raise ConflictingFetch(str(target), in_flight_sha1, expected_sha1)
        return await task

    def _forget(self, target: Path, task: asyncio.Task) -> None:
        entry = self._in_flight.get(target)
        if entry is not None and entry[1] is task:
            del self._in_flight[target]

    async def _fetch(self, target: Path, url: str, expected_sha1: str) -> FetchResult:
        # Hash checks and transfers share the same slots.
        async with self.semaphore:
            if target.is_file():
                if await self.verify_sha1(target, expected_sha1):
                    logger.debug("Up to date: %s", target)
                    return FetchResult(target, expected_sha1, downloaded=False)
                logger.info("Checksum of %s does not match, downloading again", target)

            return await self._download(target, url, expected_sha1)

    async def _download(self, target: Path, url: str, expected_sha1: str) -> FetchResult:
        if not self.session:
            raise RuntimeError("DownloadManager used outside of 'async with'")

        logger.info("Downloading %s...", url)
        temp = target.with_name(target.name + ".new")
        try:
            actual_sha1 = await self._stream_to(temp, url)
        except BaseException:
            _remove_temp(temp)
            raise

        if actual_sha1 != expected_sha1:
            _remove_temp(temp)
            raise HashMismatch(url, expected_sha1, actual_sha1)

        try:
            os.replace(temp, target)
        except OSError as e:
            _remove_temp(temp)
            raise FilesystemFailure(f"failed to rename {temp} to {target}: {e}") from e
        return FetchResult(target, expected_sha1, downloaded=True)

    async def _stream_to(self, temp: Path, url: str) -> str:
        hash_sha1 = hashlib.sha1()
        try:
            async with self.session.get(url) as resp:
                if resp.status < 200 or resp.status >= 300:
                    raise HTTPRejection(url, resp.status, resp.reason or "")
                try:
                    temp.parent.mkdir(parents=True, exist_ok=True)
                    async with aiofiles.open(temp, "wb") as f:
                        async for chunk in resp.content.iter_chunked(self.chunk_size):
                            hash_sha1.update(chunk)
                            await f.write(chunk)
                except (aiohttp.ClientError, asyncio.TimeoutError):
                    raise
                except OSError as e:
                    raise FilesystemFailure(f"failed to write {temp}: {e}") from e
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise NetworkFailure(f"failed to download {url}: {e!r}", url) from e
        return hash_sha1.hexdigest()

    @staticmethod
    async def verify_sha1(file_path: Path, expected_sha1: str) -> bool:
        """Verify SHA1 hash of a file."""
        hash_sha1 = hashlib.sha1()
        try:
            async with aiofiles.open(file_path, 'rb') as f:
                while chunk := await f.read(64 * 1024):
                    hash_sha1.update(chunk)
        except OSError as e:
            raise FilesystemFailure(f"failed to read {file_path}: {e}") from e
        return hash_sha1.hexdigest() == expected_sha1.lower()

    async def download_version_jar(self, manifest: VersionManifest, versions_dir: Path) -> FetchResult:
        """Download the client jar to ``versions/<id>/<id>.jar``."""
        client = manifest.client
        if client is None:
            raise MalformedManifest(f"version {manifest.id} has no client download")
        dest = versions_dir / manifest.id / f"{manifest.id}.jar"
        try:
            return await self.fetch_verified(dest, client.url, client.sha1)
        except LauncherError as e:
            raise DownloadFailed(manifest.id, "failed to download client") from e

    async def download_asset_index(self, manifest: VersionManifest, assets_dir: Path) -> AssetIndex:
        """Download ``assets/indexes/<id>.json`` and parse it."""
        ref = manifest.asset_index
        if ref is None:
            logger.info("Version %s has no asset index", manifest.id)
            return AssetIndex()

        dest = assets_dir / "indexes" / f"{ref.id}.json"
        try:
            fetched = await self.fetch_verified(dest, ref.url, ref.sha1)
        except LauncherError as e:
            raise DownloadFailed(ref.id, "failed to download asset index") from e

        try:
            async with aiofiles.open(fetched.path, "rb") as f:
                blob = await f.read()
        except OSError as e:
            raise FilesystemFailure(f"failed to read asset index {fetched.path}: {e}") from e
        try:
            return AssetIndex.model_validate_json(blob)
        except ValidationError as e:
            raise MalformedManifest(f"failed to parse asset index {ref.id}: {e}") from e

    async def download_assets(self, asset_index: AssetIndex, assets_dir: Path) -> List[FetchResult]:
        """Download all assets from index into ``assets/objects/<xx>/<hash>``."""
        objects_dir = assets_dir / "objects"
        return await run_all_or_abort(
            self._download_asset(logical_path, asset.hash, asset.shard, objects_dir)
            for logical_path, asset in asset_index.objects.items()
        )

    async def _download_asset(self, logical_path: str, sha1: str, shard: str,
                              objects_dir: Path) -> FetchResult:
        url = f"{self.resources_url}/{shard}/{sha1}"
        try:
            return await self.fetch_verified(objects_dir / shard / sha1, url, sha1)
        except LauncherError as e:
            raise DownloadFailed(logical_path, "failed to download asset") from e
