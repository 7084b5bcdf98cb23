"""Tests for GitHub repository URL parsing."""

import sys
from pathlib import Path

import pytest

# Add src directory to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from dorametrics.errors import ValidationError
from dorametrics.models import RepositoryRef
from dorametrics.urls import extract_owner_and_repo, parse_repository_url


def test_parse_repository_url_returns_owner_and_repo():
    """Verify a canonical GitHub URL yields owner and repository."""
    assert parse_repository_url("https://github.com/owner/repo") == RepositoryRef(owner="owner", repo="repo")


def test_parse_repository_url_strips_git_suffix_and_trailing_slash():
    """Verify clone URLs and trailing slashes are normalized."""
    assert parse_repository_url("https://github.com/owner/repo.git") == RepositoryRef("owner", "repo")
    assert parse_repository_url("https://github.com/owner/repo/") == RepositoryRef("owner", "repo")


def test_parse_repository_url_ignores_extra_path_segments():
    """Verify deep links into a repository still resolve to owner/repo."""
    assert parse_repository_url("https://github.com/owner/repo/tree/main/src") == RepositoryRef("owner", "repo")


def test_parse_repository_url_rejects_other_hosts():
    """Verify non-GitHub hosts are rejected."""
    with pytest.raises(ValidationError, match="must be github.com"):
        parse_repository_url("https://gitlab.com/owner/repo")


def test_parse_repository_url_requires_repo_segment():
    """Verify a URL with only an owner is rejected."""
    with pytest.raises(ValidationError, match="must contain owner and repository name"):
        parse_repository_url("https://github.com/owner")


def test_parse_repository_url_rejects_bare_git_suffix():
    """Verify a repo segment that is empty after stripping .git is rejected."""
    with pytest.raises(ValidationError, match="must contain owner and repository name"):
        parse_repository_url("https://github.com/owner/.git")


@pytest.mark.parametrize("value", ["not a url", "github.com/owner/repo", "", None])
def test_parse_repository_url_rejects_malformed_input(value):
    """Verify unparsable input raises with the 'Invalid URL' marker."""
    with pytest.raises(ValidationError, match="Invalid URL"):
        parse_repository_url(value)


def test_extract_owner_and_repo_returns_tuple():
    """Verify the tuple convenience wrapper."""
    assert extract_owner_and_repo("https://github.com/octocat/Hello-World") == ("octocat", "Hello-World")
