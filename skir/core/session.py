"""
Session controller.

Holds the installed plugin list and the status board, starts background
jobs, and applies their results when ticked. A front end (the CLI, or an
interactive shell) drives it from the event loop thread:

    session = Session.from_settings(settings)
    session.refresh()
    session.start_install("owner/repo")
    await session.run_until_idle()
    print(session.status.display())
"""

import asyncio
import logging
from typing import Optional

from skir.config import Settings
from skir.core.errors import InvalidUrl, PluginError
from skir.core.jobs import JobResult, JobRunner
from skir.core.linking import BulkLinkResult, toggle_all_targets
from skir.core.source import parse_source
from skir.core.status import StatusBoard, StatusKind
from skir.core.store import PluginStore
from skir.core.targets import LinkTargetRegistry
from skir.models.plugin import Plugin, Skill

logger = logging.getLogger(__name__)


class Session:
    def __init__(
        self,
        store: PluginStore,
        status: Optional[StatusBoard] = None,
        runner: Optional[JobRunner] = None,
        poll_interval: float = 0.1,
    ):
        self.store = store
        self.status = status if status is not None else StatusBoard()
        self.runner = runner if runner is not None else JobRunner(store)
        self.poll_interval = poll_interval
        self.plugins: list[Plugin] = []

    @classmethod
    def from_settings(cls, settings: Settings) -> "Session":
        store = PluginStore.from_settings(settings)
        return cls(
            store=store,
            status=StatusBoard(display_duration=settings.status_display_seconds),
            poll_interval=settings.poll_interval,
        )

    @property
    def targets(self) -> LinkTargetRegistry:
        return self.store.targets

    def find_plugin(self, name: str) -> Optional[Plugin]:
        """Look up an installed plugin by repo name, owner/repo or any parseable ref."""
        for plugin in self.plugins:
            if name in (plugin.repo, plugin.slug):
                return plugin
        try:
            identity = parse_source(name)
        except InvalidUrl:
            return None
        for plugin in self.plugins:
            if (plugin.host, plugin.owner, plugin.repo) == (identity.host, identity.owner, identity.repo):
                return plugin
        return None

    # ------------------------------------------------------------------
    # Plugin list
    # ------------------------------------------------------------------

    def refresh(self) -> bool:
        """Reload the installed plugin list from the cache."""
        try:
            self.plugins = self.store.list_installed()
        except (PluginError, OSError) as e:
            self.status.add("refresh", f"Error: {e}", StatusKind.ERROR)
            return False
        self.status.add("refresh", "Refreshed plugin list", StatusKind.SUCCESS)
        return True

    def _replace_plugin(self, plugin: Plugin, append: bool) -> bool:
        for i, existing in enumerate(self.plugins):
            if existing.same_repo(plugin):
                self.plugins[i] = plugin
                return True
        if append:
            self.plugins.append(plugin)
            return True
        return False

    # ------------------------------------------------------------------
    # Install / update / delete
    # ------------------------------------------------------------------

    def start_install(self, ref: str) -> bool:
        """Validate ref and spawn an install job. Returns True if a job started."""
        ref = ref.strip()
        if not ref:
            self.status.add("install:error", "URL cannot be empty", StatusKind.ERROR)
            return False

        try:
            identity = parse_source(ref)
        except InvalidUrl as e:
            self.status.add("install:error", f"Invalid URL: {e}", StatusKind.ERROR)
            return False

        status_id = f"install:{ref}"
        if self.store.is_installed(identity):
            self.status.add(status_id, f"Already installed: {identity.slug}", StatusKind.INFO)
            return False

        self.status.add(status_id, f"Installing {ref}...", StatusKind.PROGRESS)
        self.runner.spawn_install(ref)
        return True

    def start_update(self, plugin: Plugin) -> None:
        self.status.add(f"update:{plugin.slug}", f"Updating {plugin.slug}...", StatusKind.PROGRESS)
        self.runner.spawn_update(plugin)

    def update_all(self) -> int:
        for plugin in self.plugins:
            self.start_update(plugin)
        return len(self.plugins)

    def delete(self, plugin: Plugin) -> bool:
        status_id = f"delete:{plugin.slug}"
        try:
            self.store.remove(plugin)
        except (PluginError, OSError) as e:
            self.status.add(status_id, f"Delete failed: {e}", StatusKind.ERROR)
            return False

        self.plugins = [p for p in self.plugins if not p.same_repo(plugin)]
        self.status.add(status_id, f"Deleted: {plugin.slug}", StatusKind.SUCCESS)
        return True

    # ------------------------------------------------------------------
    # Linking
    # ------------------------------------------------------------------

    def toggle_link(self, skill: Skill, target_key: str) -> bool:
        """Unlink skill from the target if linked there, otherwise link it."""
        try:
            target = self.targets.get(target_key)
        except PluginError as e:
            self.status.add(f"link:{target_key}:{skill.name}", f"Link failed: {e}", StatusKind.ERROR)
            return False

        status_id = f"link:{target.display_name}:{skill.name}"

        if skill.is_linked_to(target):
            try:
                skill.unlink_from(target)
            except (PluginError, OSError) as e:
                self.status.add(status_id, f"Unlink failed: {e}", StatusKind.ERROR)
                return False
            self.status.add(
                status_id, f"Unlinked {skill.name} from {target.display_name}", StatusKind.SUCCESS
            )
            return True

        try:
            skill.link_to(target)
        except (PluginError, OSError) as e:
            self.status.add(status_id, f"Link failed: {e}", StatusKind.ERROR)
            return False
        self.status.add(status_id, f"Linked {skill.name} to {target.display_name}", StatusKind.SUCCESS)
        return True

    def link_all(self, skill: Skill) -> BulkLinkResult:
        """Toggle skill across every target; see toggle_all_targets."""
        status_id = f"link:all:{skill.name}"
        result = toggle_all_targets(skill, self.targets.all())

        if not result.ok:
            target_name = result.failed_target.display_name
            if result.action == "unlink":
                message = f"Unlink from {target_name} failed: {result.error}"
            else:
                message = f"Link to {target_name} failed: {result.error}"
            self.status.add(status_id, message, StatusKind.ERROR)
        elif result.action == "unlink":
            self.status.add(status_id, f"Unlinked {skill.name} from all targets", StatusKind.SUCCESS)
        else:
            self.status.add(status_id, f"Linked {skill.name} to all targets", StatusKind.SUCCESS)

        return result

    # ------------------------------------------------------------------
    # Job results
    # ------------------------------------------------------------------

    def tick(self) -> list[JobResult]:
        """Apply finished job results, then expire old status messages."""
        results = self.runner.poll()
        for result in results:
            if result.kind == "install":
                self._apply_install(result)
            else:
                self._apply_update(result)
        self.status.clear_expired()
        return results

    def _apply_install(self, result: JobResult) -> None:
        ref = result.job.description
        status_id = f"install:{ref}"
        if not result.ok:
            self.status.add(status_id, f"Install failed ({ref}): {result.error}", StatusKind.ERROR)
            return
        self._replace_plugin(result.plugin, append=True)
        self.status.add(status_id, f"Installed: {result.plugin.slug}", StatusKind.SUCCESS)

    def _apply_update(self, result: JobResult) -> None:
        slug = result.job.description
        status_id = f"update:{slug}"
        if not result.ok:
            self.status.add(status_id, f"Update failed: {result.error}", StatusKind.ERROR)
            return
        if not self._replace_plugin(result.plugin, append=False):
            # Deleted while the update was running
            logger.debug(f"Dropping update result for removed plugin {slug}")
            self.status.remove(status_id)
            return
        self.status.add(status_id, f"Updated: {slug}", StatusKind.SUCCESS)

    async def run_until_idle(self) -> list[JobResult]:
        """Tick until no job is pending. Returns every result applied."""
        applied: list[JobResult] = []
        while True:
            applied.extend(self.tick())
            if not self.runner.has_pending():
                return applied
            await asyncio.sleep(self.poll_interval)

    def shutdown(self) -> int:
        """Cancel outstanding jobs."""
        return self.runner.cancel_all()
