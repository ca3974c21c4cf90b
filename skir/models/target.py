"""
Link target model.

A link target is a consumer directory (one per agent tool) that skills are
symlinked into. Which targets exist is decided by skir.core.targets.
"""

from pathlib import Path

from pydantic import BaseModel, ConfigDict


class LinkTarget(BaseModel):
    """A resolved link target."""

    model_config = ConfigDict(frozen=True)

    key: str  # Stable identifier, e.g. "claude"
    display_name: str  # e.g. "Claude Code"
    directory: Path  # Absolute skills directory of the consumer
