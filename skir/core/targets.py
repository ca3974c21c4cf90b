"""
Link target registry.

Targets are data: each entry maps a key to a display name and a function
from the home directory to that consumer's skills directory. Adding a
consumer means adding a row here or a `link_targets` entry in config.yaml.
"""

import logging
from pathlib import Path
from typing import Callable, Optional, Sequence

from skir.config import Settings
from skir.core.errors import LinkFailed
from skir.models.target import LinkTarget

logger = logging.getLogger(__name__)

TARGET_DEFINITIONS: dict[str, tuple[str, Callable[[Path], Path]]] = {
    "claude": ("Claude Code", lambda home: home / ".claude" / "skills"),
    "codex": ("Codex", lambda home: home / ".codex" / "skills"),
}


class LinkTargetRegistry:
    """An ordered set of resolved link targets."""

    def __init__(self, targets: Sequence[LinkTarget]):
        self._targets = tuple(targets)

    @classmethod
    def resolve(
        cls,
        home: Optional[Path],
        overrides: Optional[dict[str, Path]] = None,
    ) -> "LinkTargetRegistry":
        """Resolve every known target against home, then apply overrides.

        Raises:
            LinkFailed: If home is None and a built-in target is not overridden
        """
        overrides = dict(overrides or {})
        targets: list[LinkTarget] = []

        for key, (display_name, resolve_dir) in TARGET_DEFINITIONS.items():
            directory = overrides.pop(key, None)
            if directory is None:
                if home is None:
                    raise LinkFailed(key, "cannot determine home directory")
                directory = resolve_dir(home)
            targets.append(
                LinkTarget(key=key, display_name=display_name, directory=Path(directory).expanduser())
            )

        for key, directory in overrides.items():
            targets.append(
                LinkTarget(key=key, display_name=key, directory=Path(directory).expanduser())
            )

        return cls(targets)

    @classmethod
    def from_settings(cls, settings: Settings) -> "LinkTargetRegistry":
        return cls.resolve(settings.home_directory(), settings.link_targets)

    def all(self) -> tuple[LinkTarget, ...]:
        return self._targets

    def keys(self) -> list[str]:
        return [t.key for t in self._targets]

    def get(self, key: str) -> LinkTarget:
        for target in self._targets:
            if target.key == key:
                return target
        raise LinkFailed(key, "unknown link target")

    def __iter__(self):
        return iter(self._targets)

    def __len__(self) -> int:
        return len(self._targets)
