"""
Error types for plugin and link operations.

Every failure the store, scanner or link layer reports deliberately is a
PluginError subclass carrying the fields a caller needs to display it.
Plain OSError is left to propagate for generic I/O failures.
"""

from pathlib import Path
from typing import Optional


class PluginError(Exception):
    """Base class for plugin lifecycle errors."""


class InvalidUrl(PluginError):
    def __init__(self, url: str):
        self.url = url
        super().__init__(f"invalid URL: {url}")


class CloneFailed(PluginError):
    def __init__(self, url: str, stderr: str, returncode: Optional[int] = None):
        self.url = url
        self.stderr = stderr
        self.returncode = returncode
        super().__init__(f"clone failed for {url}: {stderr.strip()}")


class UpdateFailed(PluginError):
    def __init__(self, path: Path, stderr: str, returncode: Optional[int] = None):
        self.path = path
        self.stderr = stderr
        self.returncode = returncode
        super().__init__(f"update failed for {path}: {stderr.strip()}")


class NotInstalled(PluginError):
    def __init__(self, name: str):
        self.name = name
        super().__init__(f"plugin not installed: {name}")


class LinkFailed(PluginError):
    def __init__(self, name: str, reason: str):
        self.name = name
        self.reason = reason
        super().__init__(f"failed to link skill {name}: {reason}")


class AlreadyLinked(PluginError):
    def __init__(self, name: str):
        self.name = name
        super().__init__(f"skill already linked: {name}")


class NotLinked(PluginError):
    def __init__(self, name: str):
        self.name = name
        super().__init__(f"skill not linked: {name}")


class CacheDirectoryNotFound(PluginError):
    def __init__(self) -> None:
        super().__init__("cache directory not found")
