"""GitHub repository URL parsing."""

from __future__ import annotations

from typing import Tuple
from urllib.parse import urlparse

from .errors import ValidationError
from .models import RepositoryRef

GITHUB_HOST = "github.com"


def parse_repository_url(url: str) -> RepositoryRef:
    """Parse ``https://github.com/<owner>/<repo>[.git]`` into a ``RepositoryRef``.

    Raises:
        ValidationError: If the URL cannot be parsed, the host is not
            ``github.com``, or the owner/repository segments are missing.
    """
    if not isinstance(url, str):
        raise ValidationError("Invalid URL format")

    try:
        parsed = urlparse(url.strip())
    except ValueError as exc:
        raise ValidationError("Invalid URL format") from exc

    if not parsed.scheme or not parsed.netloc:
        raise ValidationError("Invalid URL format")

    if (parsed.hostname or "").lower() != GITHUB_HOST:
        raise ValidationError(f"Invalid GitHub URL: hostname must be {GITHUB_HOST}")

    segments = [segment for segment in parsed.path.split("/") if segment]
    owner = segments[0] if segments else ""
    repo = segments[1] if len(segments) > 1 else ""
    if repo.endswith(".git"):
        repo = repo[: -len(".git")]

    if not owner or not repo:
        raise ValidationError("Invalid GitHub URL: must contain owner and repository name")

    return RepositoryRef(owner=owner, repo=repo)


def extract_owner_and_repo(url: str) -> Tuple[str, str]:
    """Return ``(owner, repo)`` for a GitHub repository URL."""
    ref = parse_repository_url(url)
    return ref.owner, ref.repo
