"""Git hosting provider clients."""

from .bitbucket import BitbucketService
from .github import GitHubService
from .gitlab import GitLabService

__all__ = ["BitbucketService", "GitHubService", "GitLabService"]
