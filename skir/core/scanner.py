"""
Skill discovery inside a plugin working tree.

Any file named exactly SKILL.md marks a skill, at any depth except inside
version-control metadata. The skill is named after the directory holding
the marker, or after the scan root when the marker sits at the root.

Descriptions come from optional YAML frontmatter:

---
description: What the skill does
---
"""

import logging
import os
from collections import Counter
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import frontmatter
import yaml

logger = logging.getLogger(__name__)

SKILL_MARKER = "SKILL.md"
VCS_DIRECTORIES = frozenset({".git", ".svn", ".hg"})


@dataclass(frozen=True)
class ScannedSkill:
    """A marker file found by the scanner."""

    name: str
    path: Path
    description: Optional[str] = None


def read_skill_description(path: Path) -> Optional[str]:
    """Return the frontmatter description of a SKILL.md, or None.

    A missing file, missing frontmatter, missing field or malformed YAML all
    yield None.
    """
    try:
        post = frontmatter.loads(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, ValueError, yaml.YAMLError) as e:
        logger.debug(f"No description for {path}: {e}")
        return None

    value = post.metadata.get("description")
    if value is None:
        return None
    description = str(value).strip()
    return description or None


def _raise(error: OSError) -> None:
    raise error


def _derive_skill_name(root: Path, marker_dir: Path) -> str:
    if marker_dir == root:
        return root.name or "unknown"
    return marker_dir.name or "unknown"


def scan_for_skills(root: Path) -> list[ScannedSkill]:
    """Recursively find SKILL.md files under root.

    Walk order is sorted so results are stable between scans. Symlinked
    directories are followed, but each real directory is visited once, so
    symlink cycles terminate. Duplicate names are returned as-is.
    """
    skills: list[ScannedSkill] = []
    visited: set[str] = set()

    for dirpath, dirnames, filenames in os.walk(root, onerror=_raise, followlinks=True):
        real = os.path.realpath(dirpath)
        if real in visited:
            dirnames[:] = []
            continue
        visited.add(real)
        dirnames[:] = sorted(d for d in dirnames if d not in VCS_DIRECTORIES)

        if SKILL_MARKER not in filenames:
            continue

        marker = Path(dirpath) / SKILL_MARKER
        if not marker.is_file():
            continue

        skills.append(
            ScannedSkill(
                name=_derive_skill_name(root, Path(dirpath)),
                path=marker,
                description=read_skill_description(marker),
            )
        )

    duplicates = [name for name, count in Counter(s.name for s in skills).items() if count > 1]
    if duplicates:
        logger.warning(f"Duplicate skill names in {root}: {', '.join(sorted(duplicates))}")

    logger.debug(f"Found {len(skills)} skills in {root}")
    return skills
