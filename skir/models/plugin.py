"""
Plugin models.

A plugin is a git repository cached at {cache_dir}/{host}/{owner}/{repo}.
Skills are the SKILL.md bundles found inside it:

  {repo}/SKILL.md                 single-skill repo, named after the repo dir
  {repo}/skills/{name}/SKILL.md   one skill per directory, named {name}

All models are frozen. An update produces a new Plugin instead of mutating
the old one, so a snapshot held elsewhere stays valid until replaced.
"""

import logging
import os
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, ConfigDict

from skir.core.errors import AlreadyLinked, LinkFailed, NotLinked
from skir.core.linking import symlink_exists
from skir.models.target import LinkTarget

logger = logging.getLogger(__name__)


class RepoIdentity(BaseModel):
    """Canonical identity of a repository reference."""

    model_config = ConfigDict(frozen=True)

    host: str  # e.g. "github.com"
    owner: str  # e.g. "anthropics"
    repo: str  # e.g. "skills"
    url: str  # Clone URL (original string for https/ssh input)

    @property
    def slug(self) -> str:
        return f"{self.owner}/{self.repo}"


class Skill(BaseModel):
    """A skill discovered in a plugin."""

    model_config = ConfigDict(frozen=True)

    name: str
    path: Path  # The SKILL.md file
    description: Optional[str] = None
    owner: str
    repo: str

    @property
    def qualified_name(self) -> str:
        """owner:repo:name, unique across plugins. Used as the link name."""
        return f"{self.owner}:{self.repo}:{self.name}"

    @property
    def directory(self) -> Path:
        """The directory a link points at (parent of SKILL.md)."""
        return self.path.parent

    def link_path(self, target: LinkTarget) -> Path:
        return target.directory / self.qualified_name

    def is_linked_to(self, target: LinkTarget) -> bool:
        """True if the link exists and resolves. Broken links count as unlinked."""
        return self.link_path(target).exists()

    def link_to(self, target: LinkTarget) -> None:
        """Symlink this skill's directory into the target directory."""
        link_path = self.link_path(target)

        if symlink_exists(link_path):
            raise AlreadyLinked(self.qualified_name)

        try:
            link_path.parent.mkdir(parents=True, exist_ok=True)
            os.symlink(self.directory, link_path, target_is_directory=True)
        except OSError as e:
            raise LinkFailed(self.qualified_name, str(e)) from e

        logger.debug(f"Linked {self.qualified_name} -> {self.directory} ({target.key})")

    def unlink_from(self, target: LinkTarget) -> None:
        """Remove this skill's link from the target directory, even if broken."""
        link_path = self.link_path(target)

        if not symlink_exists(link_path):
            raise NotLinked(self.qualified_name)

        if not link_path.is_symlink():
            raise LinkFailed(self.qualified_name, f"not a symlink: {link_path}")

        try:
            link_path.unlink()
        except OSError as e:
            raise LinkFailed(self.qualified_name, str(e)) from e

        logger.debug(f"Unlinked {self.qualified_name} ({target.key})")


class Plugin(BaseModel):
    """An installed plugin and the skills scanned from it."""

    model_config = ConfigDict(frozen=True)

    host: str
    owner: str
    repo: str
    path: Path  # Working tree in the cache
    skills: tuple[Skill, ...] = ()

    @property
    def name(self) -> str:
        return self.repo

    @property
    def slug(self) -> str:
        return f"{self.owner}/{self.repo}"

    @property
    def identity(self) -> RepoIdentity:
        return RepoIdentity(
            host=self.host,
            owner=self.owner,
            repo=self.repo,
            url=f"https://{self.host}/{self.owner}/{self.repo}",
        )

    def same_repo(self, other: "Plugin") -> bool:
        return (self.host, self.owner, self.repo) == (other.host, other.owner, other.repo)

    def find_skill(self, name: str) -> Optional[Skill]:
        """Look up a skill by name or qualified name (first match wins)."""
        for skill in self.skills:
            if skill.name == name or skill.qualified_name == name:
                return skill
        return None
