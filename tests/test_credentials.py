"""Tests for round-robin credential rotation."""

import sys
from pathlib import Path
from unittest.mock import Mock

import pytest

# Add src directory to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from dorametrics.config import Config
from dorametrics.credentials import CredentialPool
from dorametrics.errors import ConfigurationError
from dorametrics.github_client import GitHubClient


def test_next_token_rotates_and_wraps_around():
    """Verify tokens are handed out in order and wrap back to the first."""
    pool = CredentialPool(["t1", "t2", "t3"])

    assert [pool.next_token() for _ in range(7)] == ["t1", "t2", "t3", "t1", "t2", "t3", "t1"]


def test_single_token_is_always_returned():
    """Verify a one-token pool keeps returning that token."""
    pool = CredentialPool(["only"])

    assert {pool.next_token() for _ in range(5)} == {"only"}


def test_empty_pool_raises_configuration_error():
    """Verify a pool cannot be built without at least one non-empty token."""
    with pytest.raises(ConfigurationError):
        CredentialPool(["", ""])


def test_get_client_builds_client_for_next_token_without_requests():
    """Verify get_client passes the next token and options to the factory."""
    factory = Mock(side_effect=lambda token, **options: (token, options))
    pool = CredentialPool(["t1", "t2"], client_factory=factory, timeout_seconds=5)

    first = pool.get_client()
    second = pool.get_client()

    assert first == ("t1", {"timeout_seconds": 5})
    assert second[0] == "t2"


def test_get_client_reuses_one_client_per_token():
    """Verify rotation returns the cached client instead of opening a new session."""
    factory = Mock(side_effect=lambda token, **options: Mock(token=token))
    pool = CredentialPool(["t1", "t2"], client_factory=factory)

    clients = [pool.get_client() for _ in range(5)]

    assert factory.call_count == 2
    assert clients[0] is clients[2] is clients[4]
    assert clients[1] is clients[3]
    assert clients[0] is not clients[1]


def test_close_closes_every_built_client():
    """Verify close releases each cached client and later calls build fresh ones."""
    factory = Mock(side_effect=lambda token, **options: Mock(token=token))
    pool = CredentialPool(["t1", "t2"], client_factory=factory)
    first = pool.get_client()
    second = pool.get_client()

    pool.close()

    first.close.assert_called_once_with()
    second.close.assert_called_once_with()
    assert pool.get_client() is not first


def test_github_client_close_closes_session():
    """Verify GitHubClient.close closes its requests session."""
    client = GitHubClient(token="t1")
    client._session = Mock()

    client.close()

    client._session.close.assert_called_once_with()


def test_separate_pools_do_not_share_rotation_state():
    """Verify each pool tracks its own rotation index."""
    first = CredentialPool(["a", "b"])
    second = CredentialPool(["a", "b"])

    first.next_token()

    assert second.next_token() == "a"


def test_from_config_uses_config_tokens_and_http_settings():
    """Verify from_config returns real GitHub clients bound to configured tokens."""
    config = Config(tokens=("t1", "t2"), api_url="https://ghe.example.com/api/v3", page_size=50)
    pool = CredentialPool.from_config(config)

    client = pool.get_client()

    assert len(pool) == 2
    assert isinstance(client, GitHubClient)
    assert client._api_url == "https://ghe.example.com/api/v3"
    assert client._page_size == 50
    assert client._session.headers["Authorization"] == "Bearer t1"
