from __future__ import annotations

from enum import Enum
from typing import Dict, Type

import httpx

from ..core.config import Settings
from .base import HttpGitService
from .errors import InvalidArgumentError
from .providers.bitbucket import BitbucketService
from .providers.github import GitHubService
from .providers.gitlab import GitLabService


class GitProvider(str, Enum):
    GITHUB = "github"
    GITLAB = "gitlab"
    BITBUCKET = "bitbucket"


_providers: Dict[GitProvider, Type[HttpGitService]] = {
    GitProvider.GITHUB: GitHubService,
    GitProvider.GITLAB: GitLabService,
    GitProvider.BITBUCKET: BitbucketService,
}


def resolve_provider(name: str | GitProvider) -> GitProvider:
    if isinstance(name, GitProvider):
        return name
    try:
        return GitProvider(str(name).lower())
    except ValueError:
        supported = ", ".join(p.value for p in GitProvider)
        raise InvalidArgumentError(f"Unknown git provider '{name}' (supported: {supported})")


def create_git_service(
    provider: str | GitProvider,
    token: str | None,
    base_url: str | None = None,
    *,
    http_client: httpx.AsyncClient | None = None,
    **options,
) -> HttpGitService:
    """Instantiate the client registered for ``provider``."""
    service_class = _providers[resolve_provider(provider)]
    return service_class(token, base_url, http_client=http_client, **options)


def git_service_from_settings(
    settings: Settings,
    provider: str | GitProvider | None = None,
    token: str | None = None,
    *,
    http_client: httpx.AsyncClient | None = None,
) -> HttpGitService:
    """Build a Git service from configuration, optionally overriding provider and identity."""
    selected = resolve_provider(provider or settings.git_provider)
    return create_git_service(
        selected,
        token or settings.token_for(selected.value),
        settings.url_for(selected.value),
        http_client=http_client,
        timeout=settings.git_request_timeout,
        wait_attempts=settings.repository_wait_attempts,
        wait_delay=settings.repository_wait_delay,
        wait_max_delay=settings.repository_wait_max_delay,
        author_name=settings.git_author_name,
        author_email=settings.git_author_email,
    )
