#!/usr/bin/env python3
"""Launcher entry point: install a version and run it."""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from minelaunch.auth import OfflineAuthenticator
from minelaunch.config import LauncherSettings
from minelaunch.core.profile import Profile
from minelaunch.errors import LauncherError
from minelaunch.utils import setup_logging
from minelaunch.versions.manager import VersionManager

logger = logging.getLogger("minelaunch")


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Install and launch a game version.")
    parser.add_argument("version", nargs="?", help="version id, defaults to the latest release")
    parser.add_argument("--username", default="Player")
    parser.add_argument("--root", type=Path, help="data directory (default: ~/.minecraft)")
    parser.add_argument("--game-dir", type=Path, help="working directory of the game")
    parser.add_argument("--java", type=Path, help="java binary to use")
    parser.add_argument("--heap", type=int, default=0, help="heap ceiling in MB")
    parser.add_argument("--install-only", action="store_true")
    parser.add_argument("-v", "--verbose", action="store_true")
    return parser.parse_args(argv)


async def main(args: argparse.Namespace) -> int:
    """Main launcher entry point"""
    overrides = {"root_dir": args.root} if args.root else {}
    settings = LauncherSettings.from_env(**overrides)

    async with VersionManager(settings) as manager:
        version_id = args.version
        if not version_id:
            await manager.versions()
            version_id = manager.latest_release

        manifest = await manager.get_version(version_id)
        await manager.update_version(manifest)
        if args.install_only:
            return 0

        auth = await OfflineAuthenticator().login(args.username)
        profile = Profile(
            game_dir=args.game_dir or settings.root_dir,
            java_path=args.java,
            heap_max_mb=args.heap,
            version_id=version_id,
        )
        return await manager.run_version(manifest, profile, auth)


if __name__ == "__main__":
    options = parse_args()
    setup_logging(level=logging.DEBUG if options.verbose else logging.INFO)
    try:
        sys.exit(asyncio.run(main(options)))
    except LauncherError as e:
        logger.error("%s", e)
        sys.exit(1)
    except KeyboardInterrupt:
        pass
