"""
Link helpers shared by Skill and the plugin store.

Links live at {target_dir}/{owner}:{repo}:{skill} and point at the skill
directory inside the plugin cache.
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Literal, Optional, Sequence

from skir.core.errors import PluginError

if TYPE_CHECKING:
    from skir.models.plugin import Skill
    from skir.models.target import LinkTarget

logger = logging.getLogger(__name__)


def symlink_exists(path: Path) -> bool:
    """True if anything occupies path, including a broken symlink."""
    return os.path.lexists(path)


def remove_link(target: "LinkTarget", qualified_name: str) -> bool:
    """Remove a link by qualified name, broken or not.

    Returns True if a link was removed. Missing links are not an error.
    """
    link_path = target.directory / qualified_name
    if not symlink_exists(link_path):
        return False
    link_path.unlink()
    return True


@dataclass
class BulkLinkResult:
    """Outcome of linking/unlinking one skill across all targets."""

    action: Literal["link", "unlink"]
    changed: list["LinkTarget"] = field(default_factory=list)
    failed_target: Optional["LinkTarget"] = None
    error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def toggle_all_targets(skill: "Skill", targets: Sequence["LinkTarget"]) -> BulkLinkResult:
    """Unlink from every target if all are linked, otherwise link the rest.

    Not atomic: stops at the first failure and leaves earlier changes in
    place. The result names the target that failed.
    """
    all_linked = all(skill.is_linked_to(t) for t in targets)

    if all_linked:
        result = BulkLinkResult(action="unlink")
        for target in targets:
            try:
                skill.unlink_from(target)
            except (PluginError, OSError) as e:
                result.failed_target = target
                result.error = e
                return result
            result.changed.append(target)
        return result

    result = BulkLinkResult(action="link")
    for target in targets:
        if skill.is_linked_to(target):
            continue
        try:
            skill.link_to(target)
        except (PluginError, OSError) as e:
            result.failed_target = target
            result.error = e
            return result
        result.changed.append(target)
    return result
