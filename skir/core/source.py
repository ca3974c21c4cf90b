"""
Repository reference parsing.

Accepted forms, tried in this order:
    owner/repo[.git]                         shorthand, defaults to GitHub
    https://host/owner/repo[.git]
    git@host:owner/repo[.git]
"""

from skir.core.errors import InvalidUrl
from skir.models.plugin import RepoIdentity

DEFAULT_HOST = "github.com"


def _strip_git_suffix(value: str) -> str:
    if value.endswith(".git"):
        return value[: -len(".git")]
    return value


def _split_owner_repo(path: str, original: str) -> tuple[str, str]:
    """Split 'owner/repo[.git]' into its two non-empty segments."""
    path = _strip_git_suffix(path.rstrip("/"))
    owner, sep, repo = path.partition("/")
    if not sep or not owner or not repo or "/" in repo:
        raise InvalidUrl(original)
    return owner, repo


def parse_source(ref: str) -> RepoIdentity:
    """Parse a repository reference into its canonical identity.

    Raises:
        InvalidUrl: If the reference matches none of the accepted forms
    """
    url = ref.strip()

    if "://" not in url and not url.startswith("git@"):
        owner, sep, repo = url.partition("/")
        if sep and owner and repo and "/" not in repo:
            repo = _strip_git_suffix(repo)
            if repo:
                return RepoIdentity(
                    host=DEFAULT_HOST,
                    owner=owner,
                    repo=repo,
                    url=f"https://{DEFAULT_HOST}/{owner}/{repo}",
                )

    if url.startswith("https://"):
        host, sep, path = url[len("https://"):].partition("/")
        if not sep or not host:
            raise InvalidUrl(url)
        owner, repo = _split_owner_repo(path, url)
        return RepoIdentity(host=host, owner=owner, repo=repo, url=url)

    if url.startswith("git@"):
        host, sep, path = url[len("git@"):].partition(":")
        if not sep or not host:
            raise InvalidUrl(url)
        owner, repo = _split_owner_repo(path, url)
        return RepoIdentity(host=host, owner=owner, repo=repo, url=url)

    raise InvalidUrl(ref)
