"""Round-robin pool of GitHub credentials."""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Sequence

from .config import Config
from .errors import ConfigurationError
from .github_client import GitHubClient

logger = logging.getLogger(__name__)


class CredentialPool:
    """Hands out GitHub clients authenticated with the next token in rotation.

    The pool spreads request load across tokens; it is not a rate limiter.
    Construct one per process and pass it to every component that needs a
    client.
    """

    def __init__(
        self,
        tokens: Sequence[str],
        client_factory: Callable[..., Any] = GitHubClient,
        **client_options: Any,
    ) -> None:
        cleaned = [token for token in tokens if token]
        if not cleaned:
            raise ConfigurationError("Credential pool requires at least one GitHub token.")

        self._tokens = tuple(cleaned)
        self._client_factory = client_factory
        self._client_options = client_options
        self._index = 0
        self._clients: Dict[int, Any] = {}

    @classmethod
    def from_config(cls, config: Config) -> "CredentialPool":
        """Build a pool using the tokens and HTTP settings from ``config``."""
        return cls(
            config.tokens,
            api_url=config.api_url,
            timeout_seconds=config.timeout_seconds,
            page_size=config.page_size,
            max_pages=config.max_pages,
        )

    def __len__(self) -> int:
        return len(self._tokens)

    def next_token(self) -> str:
        """Return the current token and advance the index, wrapping at the end."""
        slot = self._index
        self._index = (slot + 1) % len(self._tokens)
        logger.debug("Using GitHub token slot", extra={"token_slot": slot + 1, "pool_size": len(self._tokens)})
        return self._tokens[slot]

    def get_client(self) -> Any:
        """Return the client bound to the next token in rotation.

        One client is built per token on first use and reused afterwards, so
        each token keeps a single HTTP session. No request is made.
        """
        slot = self._index
        token = self.next_token()
        if slot not in self._clients:
            self._clients[slot] = self._client_factory(token, **self._client_options)
        return self._clients[slot]

    def close(self) -> None:
        """Close every client built so far."""
        for client in self._clients.values():
            close = getattr(client, "close", None)
            if callable(close):
                close()
        self._clients.clear()
