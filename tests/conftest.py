"""
Pytest configuration and fixtures.
"""

import asyncio
import os
import shutil
import tempfile
from pathlib import Path
from typing import Callable, Optional
from unittest.mock import AsyncMock, patch

import pytest

# Keep a developer's own config.yaml and SKIR_* environment out of the tests
os.environ["SKIR_CONFIG_DIR"] = tempfile.mkdtemp(prefix="skir-test-config-")
for _name in list(os.environ):
    if _name.startswith("SKIR_") and _name != "SKIR_CONFIG_DIR":
        del os.environ[_name]

from skir.core.store import PluginStore  # noqa: E402
from skir.core.targets import LinkTargetRegistry  # noqa: E402
from skir.models.plugin import Skill  # noqa: E402

MakeRepo = Callable[..., Path]


def _write_skill(directory: Path, description: Optional[str] = None) -> Path:
    """Create directory/SKILL.md, optionally with a description in frontmatter."""
    directory.mkdir(parents=True, exist_ok=True)
    marker = directory / "SKILL.md"
    if description is None:
        marker.write_text(f"# {directory.name}\n")
    else:
        marker.write_text(f"---\ndescription: {description}\n---\n\n# {directory.name}\n")
    return marker


@pytest.fixture
def write_skill() -> Callable[..., Path]:
    return _write_skill


@pytest.fixture
def home(tmp_path: Path) -> Path:
    home_dir = tmp_path / "home"
    home_dir.mkdir()
    return home_dir


@pytest.fixture
def cache_dir(tmp_path: Path) -> Path:
    return tmp_path / "cache" / "repos"


@pytest.fixture
def targets(home: Path) -> LinkTargetRegistry:
    return LinkTargetRegistry.resolve(home)


@pytest.fixture
def claude(targets: LinkTargetRegistry):
    return targets.get("claude")


@pytest.fixture
def codex(targets: LinkTargetRegistry):
    return targets.get("codex")


@pytest.fixture
def store(cache_dir: Path, targets: LinkTargetRegistry) -> PluginStore:
    return PluginStore(cache_dir, targets)


@pytest.fixture
def make_repo(cache_dir: Path) -> MakeRepo:
    """Create a fake cloned repo in the cache.

    skills maps a relative skill directory ("" for the repo root) to its
    description (None for no frontmatter).
    """

    def _make(
        owner: str = "acme",
        repo: str = "tools",
        skills: Optional[dict[str, Optional[str]]] = None,
        host: str = "github.com",
    ) -> Path:
        path = cache_dir / host / owner / repo
        (path / ".git").mkdir(parents=True, exist_ok=True)
        for rel, description in (skills or {}).items():
            _write_skill(path / rel if rel else path, description)
        return path

    return _make


@pytest.fixture
def make_skill(tmp_path: Path) -> Callable[..., Skill]:
    """Create a standalone skill directory outside the cache."""

    def _make(name: str = "pdf", owner: str = "acme", repo: str = "tools") -> Skill:
        marker = _write_skill(tmp_path / "skills-src" / owner / repo / name)
        return Skill(name=name, path=marker, owner=owner, repo=repo)

    return _make


class FakeRemote:
    """Skill layout served by the fake git, as {relative dir: description}."""

    def __init__(self):
        self.skills: dict[str, Optional[str]] = {}

    def checkout(self, dest: Path) -> None:
        for child in dest.iterdir() if dest.exists() else []:
            if child.name != ".git":
                if child.is_dir():
                    shutil.rmtree(child)
                else:
                    child.unlink()
        (dest / ".git").mkdir(parents=True, exist_ok=True)
        for rel, description in self.skills.items():
            _write_skill(dest / rel if rel else dest, description)


@pytest.fixture
def remote():
    return FakeRemote()


@pytest.fixture
def fake_git(remote):
    """Patch git in the store with clone/pull that check out `remote`."""
    async def clone(url, dest, timeout=None):
        await asyncio.sleep(0)
        remote.checkout(dest)

    async def pull(path, timeout=None):
        await asyncio.sleep(0)
        remote.checkout(path)

    with patch("skir.core.store.git_clone", new=AsyncMock(side_effect=clone)) as clone_mock, \
            patch("skir.core.store.git_pull", new=AsyncMock(side_effect=pull)) as pull_mock:
        yield clone_mock, pull_mock


@pytest.fixture(autouse=True)
def config_dir(tmp_path: Path, monkeypatch) -> Path:
    """Point config.yaml at a per-test directory and drop cached settings."""
    directory = tmp_path / "config"
    monkeypatch.setenv("SKIR_CONFIG_DIR", str(directory))
    monkeypatch.setattr("skir.config._settings", None)
    return directory
