"""Provider-neutral Git entities.

Every provider client reads its own JSON shape into these types at the
boundary, so callers never branch on provider identity.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class GitHookEvent(str, Enum):
    PUSH = "push"
    MERGE_REQUESTS = "merge_requests"
    ISSUES = "issues"


@dataclass(frozen=True, order=True)
class GitOrganization:
    name: str


@dataclass(frozen=True)
class GitRepository:
    full_name: str
    homepage: str
    clone_url: str

    @property
    def organization(self) -> str:
        return self.full_name.split("/", 1)[0]

    @property
    def name(self) -> str:
        return self.full_name.split("/", 1)[-1]


@dataclass(frozen=True)
class GitHook:
    name: str
    url: str
    events: frozenset[str] = field(default_factory=frozenset)


@dataclass(frozen=True)
class GitUser:
    login: str
    avatar_url: str | None = None


@dataclass(frozen=True)
class GitRepositoryFilter:
    organization: GitOrganization | None = None
    name_containing: str | None = None
