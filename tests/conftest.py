from __future__ import annotations

from pathlib import Path
from typing import Dict, List, Optional

import pytest

from launcher.core.config import Settings
from launcher.events.models import StatusMessageEvent
from launcher.git.errors import GitServiceError, NoSuchRepositoryError
from launcher.git.interfaces import GitService
from launcher.git.models import GitHook, GitOrganization, GitRepository, GitRepositoryFilter, GitUser
from launcher.git.naming import check_repository_name, create_repository_full_name
from launcher.services.catalog import DirectoryBoosterCatalog


class InMemoryGitService(GitService):
    """Git service double keeping repositories and hooks in dictionaries."""

    def __init__(self, login: str = "octocat") -> None:
        self.user = GitUser(login=login, avatar_url=f"https://avatars.example/{login}")
        self.repositories: Dict[str, GitRepository] = {}
        self.hooks: Dict[str, List[GitHook]] = {}
        self.pushed: List[Path] = []
        self.calls: List[str] = []
        self.fail_create_with: Optional[Exception] = None
        self.hook_conflict = False
        self.closed = False

    def add_repository(self, full_name: str) -> GitRepository:
        repository = GitRepository(
            full_name=full_name,
            homepage=f"https://git.example/{full_name}",
            clone_url=f"https://git.example/{full_name}.git",
        )
        self.repositories[full_name] = repository
        return repository

    def _full_name(self, name: str, organization: Optional[GitOrganization]) -> str:
        owner = organization.name if organization is not None else self.user.login
        return create_repository_full_name(owner, name)

    async def get_organizations(self) -> List[GitOrganization]:
        self.calls.append("get_organizations")
        return sorted({GitOrganization(r.organization) for r in self.repositories.values()})

    async def get_repositories(self, filter: Optional[GitRepositoryFilter] = None) -> List[GitRepository]:
        self.calls.append("get_repositories")
        return list(self.repositories.values())

    async def create_repository(self, name, description, organization=None) -> GitRepository:
        check_repository_name(name)
        self.calls.append("create_repository")
        if self.fail_create_with is not None:
            raise self.fail_create_with
        return self.add_repository(self._full_name(name, organization))

    async def get_repository(self, name, organization=None) -> Optional[GitRepository]:
        check_repository_name(name)
        self.calls.append("get_repository")
        return self.repositories.get(self._full_name(name, organization))

    async def delete_repository(self, full_name: str) -> None:
        self.calls.append("delete_repository")
        self.repositories.pop(full_name, None)

    async def create_hook(self, repository, webhook_url, *events, secret=None) -> Optional[GitHook]:
        self.calls.append("create_hook")
        hooks = self.hooks.setdefault(repository.full_name, [])
        hook = GitHook(
            name=str(len(hooks) + 1),
            url=webhook_url,
            events=frozenset(events or self.get_suggested_new_hook_events()),
        )
        hooks.append(hook)
        if self.hook_conflict:
            raise GitServiceError(code="conflict", message="Hook already exists")
        return hook

    async def get_hooks(self, repository) -> List[GitHook]:
        self.calls.append("get_hooks")
        return list(self.hooks.get(repository.full_name, []))

    async def get_hook(self, repository, url) -> Optional[GitHook]:
        for hook in await self.get_hooks(repository):
            if hook.url.lower() == url.lower():
                return hook
        return None

    async def delete_webhook(self, repository, hook) -> None:
        self.calls.append("delete_webhook")
        self.hooks[repository.full_name].remove(hook)

    async def get_logged_user(self) -> GitUser:
        return self.user

    def get_suggested_new_hook_events(self):
        return ("push", "merge_requests", "issues")

    async def push(self, repository, path) -> None:
        if repository.full_name not in self.repositories:
            raise NoSuchRepositoryError(repository.full_name)
        self.pushed.append(Path(path))

    async def close(self) -> None:
        self.closed = True


class RecordingTrigger:
    def __init__(self, fail_with: Optional[Exception] = None) -> None:
        self.calls: List[tuple] = []
        self.fail_with = fail_with

    async def trigger(self, repository, namespace):
        self.calls.append((repository.full_name, namespace))
        if self.fail_with is not None:
            raise self.fail_with
        return {"accepted": True, "namespace": namespace}


class EventRecorder:
    def __init__(self) -> None:
        self.events: List[StatusMessageEvent] = []

    def __call__(self, event: StatusMessageEvent) -> None:
        self.events.append(event)

    @property
    def transitions(self):
        return [(e.source, e.target) for e in self.events]


@pytest.fixture
def git_service() -> InMemoryGitService:
    return InMemoryGitService()


@pytest.fixture
def trigger() -> RecordingTrigger:
    return RecordingTrigger()


@pytest.fixture
def recorder() -> EventRecorder:
    return EventRecorder()


@pytest.fixture
def catalog_root(tmp_path: Path) -> Path:
    booster = tmp_path / "catalog" / "rest-http" / "python"
    (booster / "app").mkdir(parents=True)
    (booster / "README.md").write_text("# REST booster\n")
    (booster / "app" / "main.py").write_text("print('hello')\n")
    return tmp_path / "catalog"


@pytest.fixture
def catalog(catalog_root: Path) -> DirectoryBoosterCatalog:
    return DirectoryBoosterCatalog(catalog_root)


@pytest.fixture
def work_dir(tmp_path: Path) -> Path:
    path = tmp_path / "work"
    path.mkdir()
    return path


@pytest.fixture
def project_dir(work_dir: Path) -> Path:
    path = work_dir / "projectile-test"
    path.mkdir()
    (path / "README.md").write_text("demo\n")
    return path


@pytest.fixture
def settings(catalog_root: Path, work_dir: Path) -> Settings:
    return Settings(
        booster_catalog_path=str(catalog_root),
        work_dir=str(work_dir),
        webhook_url="https://hooks.example/launcher",
        git_push_enabled=False,
        log_level="WARNING",
    )
