from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Sequence

from .models import (
    GitHook,
    GitHookEvent,
    GitOrganization,
    GitRepository,
    GitRepositoryFilter,
    GitUser,
)


class GitService(ABC):
    """Uniform contract over Git hosting providers.

    Every provider exposes the same capability set; provider-specific URL
    shapes, authentication headers and JSON field names never leak past an
    implementation of this class.
    """

    @abstractmethod
    async def get_organizations(self) -> list[GitOrganization]:
        """Organizations visible to the authenticated identity, sorted by name."""

    @abstractmethod
    async def get_repositories(self, filter: GitRepositoryFilter | None = None) -> list[GitRepository]:
        """Repositories matching the filter.

        Without an organization the logged user's own repositories are listed;
        with one, the organization must exist for the identity.
        """

    @abstractmethod
    async def create_repository(
        self,
        name: str,
        description: str,
        organization: GitOrganization | None = None,
    ) -> GitRepository:
        """Create a repository and block until the provider can read it back."""

    @abstractmethod
    async def get_repository(
        self,
        name: str,
        organization: GitOrganization | None = None,
    ) -> GitRepository | None:
        """Look a repository up by bare name, ``organization/name``, or name within an organization."""

    @abstractmethod
    async def delete_repository(self, full_name: str) -> None:
        """Delete a repository; a missing repository counts as deleted."""

    @abstractmethod
    async def create_hook(
        self,
        repository: GitRepository,
        webhook_url: str,
        *events: str | GitHookEvent,
        secret: str | None = None,
    ) -> GitHook | None:
        """Register a webhook; no events means the provider's suggested set."""

    @abstractmethod
    async def get_hooks(self, repository: GitRepository) -> list[GitHook]:
        """Webhooks registered on the repository."""

    @abstractmethod
    async def get_hook(self, repository: GitRepository, url: str) -> GitHook | None:
        """First webhook whose URL matches ``url`` case-insensitively."""

    @abstractmethod
    async def delete_webhook(self, repository: GitRepository, hook: GitHook) -> None:
        """Remove a webhook by identifier (best-effort)."""

    @abstractmethod
    async def get_logged_user(self) -> GitUser:
        """Identity the service is authenticated as."""

    @abstractmethod
    def get_suggested_new_hook_events(self) -> Sequence[str]:
        """Provider default event set used when a hook is created without events."""

    @abstractmethod
    async def push(self, repository: GitRepository, path: Path) -> None:
        """Commit the tree at ``path`` and push it as the repository's initial content."""

    @abstractmethod
    async def close(self) -> None:
        """Release resources and close connections if applicable."""

    async def __aenter__(self) -> "GitService":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()
