"""
Plugin store: the on-disk cache of cloned plugin repositories.

Cache layout:
    {cache_dir}/
    └── {host}/
        └── {owner}/
            └── {repo}/      # git working tree, one per plugin

There is no index file. Installed plugins are whatever working trees exist
in the cache, and their skills are rescanned every time a Plugin is built.
"""

import asyncio
import logging
import os
import shutil
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator, Optional

from skir.config import Settings
from skir.core.errors import NotInstalled, PluginError, UpdateFailed
from skir.core.git import git_clone, git_pull, is_git_repo
from skir.core.linking import remove_link
from skir.core.scanner import scan_for_skills
from skir.core.source import parse_source
from skir.core.targets import LinkTargetRegistry
from skir.models.plugin import Plugin, RepoIdentity, Skill
from skir.models.target import LinkTarget

logger = logging.getLogger(__name__)


class PluginStore:
    """Installs, updates, lists and removes plugins in the cache."""

    def __init__(
        self,
        cache_dir: Path,
        targets: LinkTargetRegistry,
        *,
        git_timeout: Optional[float] = None,
    ):
        self.cache_dir = Path(cache_dir).expanduser().absolute()
        self.targets = targets
        self.git_timeout = git_timeout
        self._locks: dict[Path, asyncio.Lock] = {}
        self._lock_users: dict[Path, int] = {}

    @classmethod
    def from_settings(cls, settings: Settings) -> "PluginStore":
        """Build a store from settings.

        Raises:
            CacheDirectoryNotFound: If the cache root cannot be resolved
            LinkFailed: If link target directories cannot be resolved
        """
        return cls(
            cache_dir=settings.repos_dir(),
            targets=LinkTargetRegistry.from_settings(settings),
            git_timeout=settings.git_timeout,
        )

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def local_path(self, identity: RepoIdentity) -> Path:
        return self.cache_dir / identity.host / identity.owner / identity.repo

    def is_installed(self, identity: RepoIdentity) -> bool:
        return is_git_repo(self.local_path(identity))

    def build_plugin(self, host: str, owner: str, repo: str, path: Path) -> Plugin:
        """Scan path and wrap the result in a fresh Plugin."""
        skills = tuple(
            Skill(
                name=found.name,
                path=found.path,
                description=found.description,
                owner=owner,
                repo=repo,
            )
            for found in scan_for_skills(path)
        )
        return Plugin(host=host, owner=owner, repo=repo, path=path, skills=skills)

    def load(self, identity: RepoIdentity) -> Plugin:
        """Build the Plugin for an installed identity.

        Raises:
            NotInstalled: If the identity has no working tree in the cache
        """
        path = self.local_path(identity)
        if not is_git_repo(path):
            raise NotInstalled(identity.slug)
        return self.build_plugin(identity.host, identity.owner, identity.repo, path)

    def list_installed(self) -> list[Plugin]:
        """Scan {host}/{owner}/{repo} in the cache and build every plugin."""
        plugins: list[Plugin] = []

        if not self.cache_dir.is_dir():
            return plugins

        for host_path in sorted(self.cache_dir.iterdir()):
            if not host_path.is_dir():
                continue
            for owner_path in sorted(host_path.iterdir()):
                if not owner_path.is_dir():
                    continue
                for repo_path in sorted(owner_path.iterdir()):
                    if not repo_path.is_dir() or not is_git_repo(repo_path):
                        continue
                    try:
                        plugin = self.build_plugin(
                            host_path.name, owner_path.name, repo_path.name, repo_path
                        )
                    except OSError as e:
                        logger.warning(f"Skipping unreadable plugin at {repo_path}: {e}")
                        continue
                    plugins.append(plugin)

        logger.debug(f"Found {len(plugins)} installed plugins in {self.cache_dir}")
        return plugins

    # ------------------------------------------------------------------
    # Install / update
    # ------------------------------------------------------------------

    @asynccontextmanager
    async def _path_lock(self, path: Path) -> AsyncIterator[None]:
        """Serialize work on one working tree.

        The lock is dropped once its last holder or waiter is done.
        """
        lock = self._locks.get(path)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[path] = lock
        self._lock_users[path] = self._lock_users.get(path, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._lock_users[path] -= 1
            if not self._lock_users[path]:
                del self._lock_users[path]
                del self._locks[path]

    async def install(self, ref: str) -> Plugin:
        """Install a plugin from a repository reference.

        If the repository is already cloned, pulls instead, so installing
        twice is the same as updating.

        Raises:
            InvalidUrl: If ref cannot be parsed
            CloneFailed: If git clone fails
            UpdateFailed: If the existing clone cannot be pulled
        """
        identity = parse_source(ref)
        path = self.local_path(identity)

        async with self._path_lock(path):
            if is_git_repo(path):
                logger.info(f"{identity.slug} already cloned, pulling instead")
                await git_pull(path, timeout=self.git_timeout)
            else:
                await git_clone(identity.url, path, timeout=self.git_timeout)

            plugin = await asyncio.to_thread(
                self.build_plugin, identity.host, identity.owner, identity.repo, path
            )

        logger.info(f"Installed {plugin.slug}: {len(plugin.skills)} skills")
        return plugin

    async def update(self, plugin: Plugin) -> Plugin:
        """Pull a plugin and reconcile links of skills that moved or vanished.

        Returns a new Plugin; the one passed in is left untouched.

        Raises:
            UpdateFailed: If the plugin is not installed or git pull fails
        """
        if not is_git_repo(plugin.path):
            raise UpdateFailed(plugin.path, "plugin is not installed")

        async with self._path_lock(plugin.path):
            linked_before = self._linked_snapshot(plugin)

            await git_pull(plugin.path, timeout=self.git_timeout)

            new_plugin = await asyncio.to_thread(
                self.build_plugin, plugin.host, plugin.owner, plugin.repo, plugin.path
            )
            self._reconcile_links(linked_before, new_plugin)

        logger.info(f"Updated {new_plugin.slug}: {len(new_plugin.skills)} skills")
        return new_plugin

    def _linked_snapshot(self, plugin: Plugin) -> list[tuple[LinkTarget, str, Path]]:
        """(target, qualified_name, marker path) for every live link of plugin."""
        return [
            (target, skill.qualified_name, skill.path)
            for skill in plugin.skills
            for target in self.targets.all()
            if skill.is_linked_to(target)
        ]

    def _reconcile_links(
        self,
        linked_before: list[tuple[LinkTarget, str, Path]],
        new_plugin: Plugin,
    ) -> None:
        """Drop links to vanished skills and re-point links to moved ones.

        Best-effort: link errors are logged and ignored.
        """
        new_skills: dict[str, Skill] = {}
        for skill in new_plugin.skills:
            new_skills.setdefault(skill.qualified_name, skill)

        for target, qualified_name, old_path in linked_before:
            skill = new_skills.get(qualified_name)
            if skill is not None and skill.path == old_path:
                continue

            try:
                remove_link(target, qualified_name)
            except OSError as e:
                logger.debug(f"Could not remove stale link {qualified_name} ({target.key}): {e}")

            if skill is None:
                logger.info(f"Removed link to deleted skill {qualified_name} ({target.key})")
                continue

            try:
                skill.link_to(target)
                logger.info(f"Relinked moved skill {qualified_name} ({target.key})")
            except (PluginError, OSError) as e:
                logger.debug(f"Could not relink {qualified_name} ({target.key}): {e}")

    # ------------------------------------------------------------------
    # Remove
    # ------------------------------------------------------------------

    def _is_cache_entry(self, path: Path) -> bool:
        try:
            relative = path.absolute().relative_to(self.cache_dir)
        except ValueError:
            return False
        return len(relative.parts) == 3

    def remove(self, plugin: Plugin) -> None:
        """Unlink every skill, delete the working tree and prune empty parents.

        Raises:
            NotInstalled: If the plugin directory does not exist
        """
        if not plugin.path.exists():
            raise NotInstalled(plugin.slug)

        if not self._is_cache_entry(plugin.path):
            logger.error(f"Refusing to delete plugin outside the cache: {plugin.path}")
            raise NotInstalled(plugin.slug)

        for skill in plugin.skills:
            for target in self.targets.all():
                try:
                    skill.unlink_from(target)
                except (PluginError, OSError) as e:
                    logger.debug(f"Could not unlink {skill.qualified_name} ({target.key}): {e}")

        shutil.rmtree(plugin.path)

        owner_dir = plugin.path.parent
        host_dir = owner_dir.parent
        for directory in (owner_dir, host_dir):
            try:
                os.rmdir(directory)
            except OSError:
                break

        logger.info(f"Removed plugin {plugin.slug}")
