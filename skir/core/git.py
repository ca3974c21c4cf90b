"""
Git subprocess wrappers.

Only two commands are used: a shallow clone and a fast-forward-only pull.
Both run as asyncio subprocesses so a caller can cancel them; cancellation
kills the child process.
"""

import asyncio
import logging
import os
from pathlib import Path
from typing import Optional

from skir.core.errors import CloneFailed, UpdateFailed

logger = logging.getLogger(__name__)


def is_git_repo(path: Path) -> bool:
    """Check if a path is a git working tree."""
    return (path / ".git").is_dir()


def _git_env() -> dict[str, str]:
    env = dict(os.environ)
    # Never block a background job on a credential prompt
    env["GIT_TERMINAL_PROMPT"] = "0"
    return env


async def _run_git(
    args: list[str],
    cwd: Optional[Path] = None,
    timeout: Optional[float] = None,
) -> tuple[int, str]:
    """Run git and return (returncode, stderr). Timeout of None waits forever."""
    proc = await asyncio.create_subprocess_exec(
        "git", *args,
        cwd=str(cwd) if cwd else None,
        stdin=asyncio.subprocess.DEVNULL,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
        env=_git_env(),
    )
    try:
        _, stderr = await asyncio.wait_for(proc.communicate(), timeout=timeout)
    except (asyncio.CancelledError, asyncio.TimeoutError):
        if proc.returncode is None:
            proc.kill()
            await asyncio.shield(proc.wait())
        raise

    return proc.returncode, stderr.decode("utf-8", errors="replace") if stderr else ""


async def git_clone(url: str, dest: Path, timeout: Optional[float] = None) -> None:
    """Shallow-clone url into dest, creating parent directories.

    Raises:
        CloneFailed: If git exits non-zero or times out
    """
    dest.parent.mkdir(parents=True, exist_ok=True)
    logger.info(f"Cloning {url} into {dest}")

    try:
        returncode, stderr = await _run_git(
            ["clone", "--depth", "1", url, str(dest)], timeout=timeout
        )
    except asyncio.TimeoutError:
        raise CloneFailed(url, f"git clone timed out after {timeout}s")

    if returncode != 0:
        raise CloneFailed(url, stderr, returncode)


async def git_pull(path: Path, timeout: Optional[float] = None) -> None:
    """Fast-forward the working tree at path.

    Raises:
        UpdateFailed: If git exits non-zero or times out
    """
    logger.info(f"Pulling {path}")

    try:
        returncode, stderr = await _run_git(["pull", "--ff-only"], cwd=path, timeout=timeout)
    except asyncio.TimeoutError:
        raise UpdateFailed(path, f"git pull timed out after {timeout}s")

    if returncode != 0:
        raise UpdateFailed(path, stderr, returncode)
