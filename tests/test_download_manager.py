"""Tests for verified downloads."""

import asyncio
import hashlib
import sys

import pytest

from minelaunch.errors import (ConflictingFetch, DownloadFailed, HashMismatch, HTTPRejection,
                               NetworkFailure)
from minelaunch.versions.download_manager import DownloadManager, run_all_or_abort
from minelaunch.versions.models import AssetIndex

PAYLOAD = b"library bytes" * 1000


def sha1(data: bytes) -> str:
    return hashlib.sha1(data).hexdigest()


@pytest.mark.asyncio
async def test_fetch_writes_verified_file(tmp_path, file_server):
    url = file_server.add("lib.jar", PAYLOAD)
    target = tmp_path / "deep" / "dir" / "lib.jar"

    async with DownloadManager() as downloader:
        result = await downloader.fetch_verified(target, url, sha1(PAYLOAD))

    assert result.downloaded
    assert result.path == target.absolute()
    assert target.read_bytes() == PAYLOAD
    assert not (tmp_path / "deep" / "dir" / "lib.jar.new").exists()


@pytest.mark.asyncio
async def test_fetch_is_idempotent(tmp_path, file_server):
    url = file_server.add("lib.jar", PAYLOAD)
    target = tmp_path / "lib.jar"

    async with DownloadManager() as downloader:
        first = await downloader.fetch_verified(target, url, sha1(PAYLOAD))
        second = await downloader.fetch_verified(target, url, sha1(PAYLOAD).upper())

    assert first.downloaded and not second.downloaded
    assert file_server.hits["/lib.jar"] == 1
    assert sha1(target.read_bytes()) == sha1(PAYLOAD)


@pytest.mark.asyncio
async def test_stale_file_is_replaced(tmp_path, file_server):
    url = file_server.add("lib.jar", PAYLOAD)
    target = tmp_path / "lib.jar"
    target.write_bytes(b"stale")

    async with DownloadManager() as downloader:
        result = await downloader.fetch_verified(target, url, sha1(PAYLOAD))

    assert result.downloaded
    assert target.read_bytes() == PAYLOAD


@pytest.mark.asyncio
async def test_hash_mismatch_leaves_no_file(tmp_path, file_server):
    url = file_server.add("lib.jar", b"corrupted")
    target = tmp_path / "lib.jar"

    async with DownloadManager() as downloader:
        with pytest.raises(HashMismatch) as info:
            await downloader.fetch_verified(target, url, sha1(PAYLOAD))

    assert info.value.expected == sha1(PAYLOAD)
    assert info.value.actual == sha1(b"corrupted")
    assert not target.exists()
    assert not (tmp_path / "lib.jar.new").exists()


@pytest.mark.asyncio
async def test_hash_mismatch_keeps_existing_file(tmp_path, file_server):
    url = file_server.add("lib.jar", b"corrupted")
    target = tmp_path / "lib.jar"
    target.write_bytes(b"previous copy")

    async with DownloadManager() as downloader:
        with pytest.raises(HashMismatch):
            await downloader.fetch_verified(target, url, sha1(PAYLOAD))

    assert target.read_bytes() == b"previous copy"


@pytest.mark.asyncio
async def test_http_error(tmp_path, file_server):
    url = file_server.add("missing.jar", b"gone", status=404)

    async with DownloadManager() as downloader:
        with pytest.raises(HTTPRejection) as info:
            await downloader.fetch_verified(tmp_path / "missing.jar", url, sha1(PAYLOAD))

    assert info.value.status == 404
    assert not (tmp_path / "missing.jar").exists()


@pytest.mark.asyncio
async def test_timeout_is_network_failure(tmp_path, file_server):
    url = file_server.add_handler("slow.jar", file_server.stall)

    async with DownloadManager(timeout=0.5) as downloader:
        with pytest.raises(NetworkFailure):
            await downloader.fetch_verified(tmp_path / "slow.jar", url, sha1(PAYLOAD))

    assert not (tmp_path / "slow.jar.new").exists()


@pytest.mark.asyncio
async def test_cancel_removes_temp_file(tmp_path, file_server):
    url = file_server.add_handler("slow.jar", file_server.stall)
    temp = tmp_path / "slow.jar.new"

    async with DownloadManager() as downloader:
        task = asyncio.ensure_future(downloader.fetch_verified(tmp_path / "slow.jar", url, sha1(PAYLOAD)))
        for _ in range(500):
            if temp.exists():
                break
            await asyncio.sleep(0.01)
        assert temp.exists()

        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

    assert not temp.exists()
    assert not (tmp_path / "slow.jar").exists()


@pytest.mark.asyncio
async def test_concurrent_fetches_are_deduplicated(tmp_path, file_server):
    url = file_server.add("lib.jar", PAYLOAD)
    target = tmp_path / "lib.jar"

    async with DownloadManager() as downloader:
        results = await asyncio.gather(*(
            downloader.fetch_verified(target, url, sha1(PAYLOAD)) for _ in range(5)
        ))

    assert file_server.hits["/lib.jar"] == 1
    assert all(result.path == target.absolute() for result in results)


@pytest.mark.asyncio
async def test_assets_use_hash_shards(tmp_path, file_server):
    sound = b"ogg data"
    lang = b"en_us json"
    for data in (sound, lang):
        digest = sha1(data)
        file_server.add(f"resources/{digest[:2]}/{digest}", data)
    index = AssetIndex.model_validate({"objects": {
        "minecraft/sounds/ambient.ogg": {"hash": sha1(sound), "size": len(sound)},
        "minecraft/lang/en_us.json": {"hash": sha1(lang), "size": len(lang)},
    }})

    async with DownloadManager(resources_url=file_server.url("resources/")) as downloader:
        results = await downloader.download_assets(index, tmp_path / "assets")

    assert len(results) == 2
    stored = tmp_path / "assets" / "objects" / sha1(sound)[:2] / sha1(sound)
    assert stored.read_bytes() == sound


@pytest.mark.asyncio
async def test_asset_failure_names_asset(tmp_path, file_server):
    index = AssetIndex.model_validate({"objects": {
        "minecraft/sounds/missing.ogg": {"hash": sha1(b"nothing"), "size": 7},
    }})

    async with DownloadManager(resources_url=file_server.url("resources")) as downloader:
        with pytest.raises(DownloadFailed) as info:
            await downloader.download_assets(index, tmp_path / "assets")

    assert "minecraft/sounds/missing.ogg" in str(info.value)
    assert isinstance(info.value.__cause__, HTTPRejection)


@pytest.mark.asyncio
async def test_run_all_or_abort_cancels_remaining():
    cancelled = asyncio.Event()

    async def slow():
        try:
            await asyncio.sleep(10)
        except asyncio.CancelledError:
            cancelled.set()
            raise

    async def failing():
        await asyncio.sleep(0)
        raise ValueError("first failure")

    with pytest.raises(ValueError, match="first failure"):
        await run_all_or_abort([slow(), failing()])
    assert cancelled.is_set()


@pytest.mark.asyncio
async def test_run_all_or_abort_keeps_order():
    async def value(n, delay):
        await asyncio.sleep(delay)
        return n

    assert await run_all_or_abort([value(1, 0.02), value(2, 0)]) == [1, 2]
    assert await run_all_or_abort([]) == []


def seed_assets(assets_dir, count):
    objects = {}
    for n in range(count):
        data = f"asset {n}".encode()
        digest = sha1(data)
        path = assets_dir / "objects" / digest[:2] / digest
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)
        objects[f"minecraft/textures/{n}.png"] = {"hash": digest, "size": len(data)}
    return AssetIndex.model_validate({"objects": objects})


@pytest.mark.asyncio
async def test_hash_checks_respect_concurrency_limit(tmp_path):
    index = seed_assets(tmp_path / "assets", 200)
    active = 0
    peak = 0

    async with DownloadManager(concurrent_downloads=4) as downloader:
        verify = downloader.verify_sha1

        async def counting_verify(path, expected):
            nonlocal active, peak
            active += 1
            peak = max(peak, active)
            try:
                return await verify(path, expected)
            finally:
                active -= 1

        downloader.verify_sha1 = counting_verify
        results = await downloader.download_assets(index, tmp_path / "assets")

    assert len(results) == 200
    assert not any(result.downloaded for result in results)
    assert 1 <= peak <= 4


@pytest.mark.asyncio
@pytest.mark.skipif(sys.platform == "win32", reason="needs RLIMIT_NOFILE")
async def test_reverify_many_assets_under_low_fd_limit(tmp_path):
    import resource

    index = seed_assets(tmp_path / "assets", 1100)
    soft, hard = resource.getrlimit(resource.RLIMIT_NOFILE)
    resource.setrlimit(resource.RLIMIT_NOFILE, (min(256, hard), hard))
    try:
        async with DownloadManager() as downloader:
            results = await downloader.download_assets(index, tmp_path / "assets")
    finally:
        resource.setrlimit(resource.RLIMIT_NOFILE, (soft, hard))

    assert len(results) == 1100
    assert not any(result.downloaded for result in results)


@pytest.mark.asyncio
async def test_conflicting_in_flight_fetch_is_rejected(tmp_path, file_server):
    url = file_server.add_handler("slow.jar", file_server.stall)
    target = tmp_path / "slow.jar"

    async with DownloadManager() as downloader:
        first = asyncio.ensure_future(downloader.fetch_verified(target, url, sha1(PAYLOAD)))
        await asyncio.sleep(0)
        with pytest.raises(ConflictingFetch) as info:
            await downloader.fetch_verified(target, url, sha1(b"other"))
        first.cancel()
        with pytest.raises(asyncio.CancelledError):
            await first

    assert info.value.in_flight == sha1(PAYLOAD)
    assert info.value.requested == sha1(b"other")
