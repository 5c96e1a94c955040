"""Remote providers for the supported Git-hosting backends."""

from typing import Any

from ..exceptions import ConfigError
from .base import RemoteProvider
from .gitee import GiteeProvider
from .github import GitHubProvider

PROVIDERS: dict[str, type[RemoteProvider]] = {
    GitHubProvider.kind: GitHubProvider,
    GiteeProvider.kind: GiteeProvider,
}


def create_provider(kind: str, token: str, **kwargs: Any) -> RemoteProvider:
    """Create the provider for a backend kind ("github" or "gitee").

    Raises:
        ConfigError: If the kind is not supported
    """
    try:
        provider_class = PROVIDERS[kind.lower()]
    except (KeyError, AttributeError):
        supported = ", ".join(sorted(PROVIDERS))
        raise ConfigError(
            f"Unsupported provider '{kind}'. Choose one of: {supported}"
        ) from None
    return provider_class(token, **kwargs)


__all__ = [
    "PROVIDERS",
    "GiteeProvider",
    "GitHubProvider",
    "RemoteProvider",
    "create_provider",
]
