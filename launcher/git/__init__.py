"""Git hosting integration layer (service contract, errors, retry, metrics).

Packages:
- interfaces: uniform Git service contract
- models: provider-neutral value types
- errors: normalized error schema
- retry: async retry utilities
- metrics: Prometheus counters/histograms
- providers: vendor-specific clients (GitHub, GitLab, Bitbucket)
- registry: provider selection from configuration
"""

from .errors import (
    AuthenticationError,
    GitServiceError,
    InvalidArgumentError,
    MalformedResponseError,
    NoSuchOrganizationError,
    NoSuchRepositoryError,
)
from .interfaces import GitService
from .models import (
    GitHook,
    GitHookEvent,
    GitOrganization,
    GitRepository,
    GitRepositoryFilter,
    GitUser,
)
from .registry import GitProvider, create_git_service, git_service_from_settings

__all__ = [
    "AuthenticationError",
    "GitHook",
    "GitHookEvent",
    "GitOrganization",
    "GitProvider",
    "GitRepository",
    "GitRepositoryFilter",
    "GitService",
    "GitServiceError",
    "GitUser",
    "InvalidArgumentError",
    "MalformedResponseError",
    "NoSuchOrganizationError",
    "NoSuchRepositoryError",
    "create_git_service",
    "git_service_from_settings",
]
