"""Minelaunch: resolve, fetch, verify and launch versioned game bundles."""

__version__ = "0.1.0"
LAUNCHER_NAME = "minelaunch"
