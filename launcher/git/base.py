from __future__ import annotations

import asyncio
import math
from abc import abstractmethod
import os
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from pathlib import Path
from typing import Any, Awaitable, Callable, ClassVar, Iterable, Sequence
from urllib.parse import quote, urlsplit, urlunsplit

import httpx
import structlog

from .errors import (
    AuthenticationError,
    ErrorCode,
    GitServiceError,
    InvalidArgumentError,
    MalformedResponseError,
    NoSuchOrganizationError,
    NoSuchRepositoryError,
)
from .interfaces import GitService
from .metrics import GIT_PROVIDER_ERRORS, GIT_PROVIDER_LATENCY, GIT_PROVIDER_REQUESTS
from .models import (
    GitHook,
    GitHookEvent,
    GitOrganization,
    GitRepository,
    GitRepositoryFilter,
    GitUser,
)
from .naming import (
    check_repository_full_name,
    check_repository_name,
    create_repository_full_name,
    is_valid_repository_full_name,
)
from .retry import backoff_delay, retry_async

logger = structlog.get_logger(__name__)

_MAX_PAGES = 50
_DEFAULT_RETRY_AFTER = 60.0


def _code_for_status(status_code: int) -> ErrorCode:
    if status_code == 401:
        return "unauthorized"
    if status_code == 403:
        return "forbidden"
    if status_code == 404:
        return "not_found"
    if status_code in (409, 422):
        return "conflict"
    if status_code == 429:
        return "rate_limited"
    if status_code >= 500:
        return "unavailable"
    return "bad_request"


def _retry_after_seconds(value: str | None) -> float:
    """Seconds to wait from a Retry-After header (delta-seconds or HTTP-date)."""
    if not value:
        return _DEFAULT_RETRY_AFTER
    try:
        seconds = float(value)
    except ValueError:
        pass
    else:
        return max(0.0, seconds) if math.isfinite(seconds) else _DEFAULT_RETRY_AFTER
    try:
        when = parsedate_to_datetime(value)
    except (TypeError, ValueError):
        return _DEFAULT_RETRY_AFTER
    if when.tzinfo is None:
        when = when.replace(tzinfo=timezone.utc)
    return max(0.0, (when - datetime.now(timezone.utc)).total_seconds())


def _error_message(response: httpx.Response) -> str:
    try:
        data = response.json()
    except ValueError:
        return f"HTTP {response.status_code}"
    message: Any = None
    if isinstance(data, dict):
        message = data.get("message") or data.get("error")
        if isinstance(message, dict):
            message = message.get("message") or message
    return str(message) if message else f"HTTP {response.status_code}"


class HttpGitService(GitService):
    """REST-backed Git service shared by every provider client.

    Subclasses supply URL shapes, authentication headers and JSON readers
    through the underscore-prefixed primitives; validation, error
    normalization, retries, metrics and the post-create read-back live here.
    """

    provider: ClassVar[str]
    default_base_url: ClassVar[str]
    api_root: ClassVar[str] = ""
    # user name paired with the token in authenticated clone URLs
    clone_username: ClassVar[str] = "oauth2"

    def __init__(
        self,
        token: str | None,
        base_url: str | None = None,
        *,
        http_client: httpx.AsyncClient | None = None,
        timeout: float = 30.0,
        request_attempts: int = 3,
        wait_attempts: int = 10,
        wait_delay: float = 0.5,
        wait_max_delay: float = 5.0,
        author_name: str = "Projectile Launcher",
        author_email: str = "launcher@localhost",
    ) -> None:
        self._token = token
        self._base_url = (base_url or self.default_base_url).rstrip("/")
        self._http_client = http_client
        self._owns_client = http_client is None
        self._timeout = timeout
        self._request_attempts = max(1, request_attempts)
        self._wait_attempts = max(1, wait_attempts)
        self._wait_delay = wait_delay
        self._wait_max_delay = wait_max_delay
        self._author_name = author_name
        self._author_email = author_email
        self._logged_user: GitUser | None = None

    # ------------------------------------------------------------------
    # Provider primitives
    # ------------------------------------------------------------------

    @abstractmethod
    def _auth_headers(self) -> dict[str, str]:
        raise NotImplementedError

    @abstractmethod
    async def _list_organizations(self) -> list[GitOrganization]:
        raise NotImplementedError

    @abstractmethod
    async def _organization_id(self, name: str) -> str:
        raise NotImplementedError

    @abstractmethod
    async def _list_repositories(
        self, owner: str, is_organization: bool, name_containing: str | None
    ) -> list[GitRepository]:
        raise NotImplementedError

    @abstractmethod
    async def _create_repository(
        self, name: str, description: str, organization: str | None, namespace_id: str | None
    ) -> GitRepository | None:
        raise NotImplementedError

    @abstractmethod
    async def _get_repository_by_full_name(self, full_name: str) -> GitRepository | None:
        raise NotImplementedError

    @abstractmethod
    async def _delete_repository(self, full_name: str) -> None:
        raise NotImplementedError

    @abstractmethod
    async def _create_hook(
        self, full_name: str, url: str, events: Sequence[str], secret: str | None
    ) -> GitHook | None:
        raise NotImplementedError

    @abstractmethod
    async def _list_hooks(self, full_name: str) -> list[GitHook]:
        raise NotImplementedError

    @abstractmethod
    async def _delete_hook(self, full_name: str, hook_id: str) -> None:
        raise NotImplementedError

    @abstractmethod
    async def _read_logged_user(self) -> GitUser:
        raise NotImplementedError

    # ------------------------------------------------------------------
    # GitService contract
    # ------------------------------------------------------------------

    async def get_organizations(self) -> list[GitOrganization]:
        organizations = await self._observe("get_organizations", self._list_organizations)
        return sorted(organizations)

    async def get_repositories(self, filter: GitRepositoryFilter | None = None) -> list[GitRepository]:
        filter = filter or GitRepositoryFilter()

        async def _run() -> list[GitRepository]:
            if filter.organization is not None and filter.organization.name:
                await self._organization_id(filter.organization.name)
                return await self._list_repositories(filter.organization.name, True, filter.name_containing)
            user = await self.get_logged_user()
            return await self._list_repositories(user.login, False, filter.name_containing)

        return await self._observe("get_repositories", _run)

    async def create_repository(
        self,
        name: str,
        description: str,
        organization: GitOrganization | None = None,
    ) -> GitRepository:
        check_repository_name(name)
        if not description:
            raise InvalidArgumentError("description must not be empty.")

        async def _run() -> GitRepository | None:
            namespace_id = None
            org_name = organization.name if organization is not None else None
            if org_name:
                namespace_id = await self._organization_id(org_name)
            return await self._create_repository(name, description, org_name, namespace_id)

        # Creation is not idempotent on the provider side: no transport retry.
        repository = await self._observe("create_repository", _run, retry=False)
        if repository is None:
            raise NoSuchRepositoryError(name)
        return await self.wait_for_repository(repository.full_name)

    async def wait_for_repository(self, full_name: str) -> GitRepository:
        """Poll until a freshly created repository is readable."""
        check_repository_full_name(full_name)
        for attempt in range(1, self._wait_attempts + 1):
            repository = await self._observe(
                "get_repository", lambda: self._get_repository_by_full_name(full_name)
            )
            if repository is not None:
                return repository
            if attempt < self._wait_attempts:
                delay = backoff_delay(attempt, self._wait_delay, self._wait_max_delay)
                logger.debug(
                    "repository_not_visible_yet",
                    provider=self.provider,
                    repository=full_name,
                    attempt=attempt,
                    retry_in=delay,
                )
                await asyncio.sleep(delay)
        raise NoSuchRepositoryError(full_name)

    async def get_repository(
        self,
        name: str,
        organization: GitOrganization | None = None,
    ) -> GitRepository | None:
        if not name:
            raise InvalidArgumentError("repositoryName must not be empty.")
        if organization is not None:
            check_repository_name(name)
            await self._observe("get_organization", lambda: self._organization_id(organization.name))
            full_name = create_repository_full_name(organization.name, name)
        elif is_valid_repository_full_name(name):
            full_name = name
        else:
            check_repository_name(name)
            user = await self.get_logged_user()
            full_name = create_repository_full_name(user.login, name)
        return await self._observe("get_repository", lambda: self._get_repository_by_full_name(full_name))

    async def delete_repository(self, full_name: str) -> None:
        check_repository_full_name(full_name)
        try:
            await self._observe("delete_repository", lambda: self._delete_repository(full_name))
        except GitServiceError as e:
            if e.code != "not_found":
                raise
            logger.debug("repository_already_absent", provider=self.provider, repository=full_name)

    async def create_hook(
        self,
        repository: GitRepository,
        webhook_url: str,
        *events: str | GitHookEvent,
        secret: str | None = None,
    ) -> GitHook | None:
        if repository is None:
            raise InvalidArgumentError("repository must not be null.")
        if not webhook_url:
            raise InvalidArgumentError("webhookUrl must not be empty.")
        check_repository_full_name(repository.full_name)
        effective = _event_names(events) or list(self.get_suggested_new_hook_events())
        return await self._observe(
            "create_hook",
            lambda: self._create_hook(repository.full_name, webhook_url, effective, secret),
            retry=False,
        )

    async def get_hooks(self, repository: GitRepository) -> list[GitHook]:
        if repository is None:
            raise InvalidArgumentError("repository must not be null.")
        check_repository_full_name(repository.full_name)
        return await self._observe("get_hooks", lambda: self._list_hooks(repository.full_name))

    async def get_hook(self, repository: GitRepository, url: str) -> GitHook | None:
        if not url:
            raise InvalidArgumentError("url must not be empty.")
        for hook in await self.get_hooks(repository):
            if hook.url.lower() == url.lower():
                return hook
        return None

    async def delete_webhook(self, repository: GitRepository, hook: GitHook) -> None:
        if repository is None or hook is None:
            raise InvalidArgumentError("repository and webhook must not be null.")
        check_repository_full_name(repository.full_name)
        try:
            await self._observe("delete_webhook", lambda: self._delete_hook(repository.full_name, hook.name))
        except GitServiceError as e:
            logger.warning(
                "webhook_delete_failed",
                provider=self.provider,
                repository=repository.full_name,
                hook=hook.name,
                code=e.code,
                error=e.message,
            )

    async def get_logged_user(self) -> GitUser:
        if self._logged_user is None:
            self._logged_user = await self._observe("get_logged_user", self._read_logged_user)
        return self._logged_user

    def get_suggested_new_hook_events(self) -> Sequence[str]:
        return (
            GitHookEvent.PUSH.value,
            GitHookEvent.MERGE_REQUESTS.value,
            GitHookEvent.ISSUES.value,
        )

    async def push(self, repository: GitRepository, path: Path, branch: str = "main") -> None:
        path = Path(path)
        if not path.is_dir():
            raise InvalidArgumentError(f"'{path}' is not a directory.")
        remote = self._authenticated_clone_url(repository.clone_url)
        identity = ["-c", f"user.name={self._author_name}", "-c", f"user.email={self._author_email}"]
        commands = [
            ["git", "init", "--quiet"],
            ["git", "checkout", "--quiet", "-B", branch],
            ["git", "add", "--all"],
            ["git", *identity, "commit", "--quiet", "--allow-empty", "-m", "Initial import"],
            ["git", "push", "--quiet", remote, f"HEAD:refs/heads/{branch}"],
        ]
        for command in commands:
            await self._run_git(command, path)
        logger.info("repository_pushed", provider=self.provider, repository=repository.full_name, branch=branch)

    async def close(self) -> None:
        """Close HTTP client if this service created it."""
        if self._http_client is not None and self._owns_client:
            await self._http_client.aclose()
            self._http_client = None

    # ------------------------------------------------------------------
    # HTTP plumbing
    # ------------------------------------------------------------------

    def _client(self) -> httpx.AsyncClient:
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(
                timeout=httpx.Timeout(self._timeout),
                limits=httpx.Limits(max_keepalive_connections=5, max_connections=10),
            )
            self._owns_client = True
        return self._http_client

    def _url(self, path: str) -> str:
        if path.startswith(("http://", "https://")):
            return path
        return f"{self._base_url}{self.api_root}{path}"

    async def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        headers = {**self._auth_headers(), **kwargs.pop("headers", {})}
        operation = f"{method} {path}"
        try:
            response = await self._client().request(method, self._url(path), headers=headers, **kwargs)
        except httpx.TimeoutException as e:
            GIT_PROVIDER_ERRORS.labels(provider=self.provider, operation=operation, code="timeout").inc()
            raise GitServiceError(code="timeout", message=str(e) or "request timed out")
        except httpx.TransportError as e:
            GIT_PROVIDER_ERRORS.labels(provider=self.provider, operation=operation, code="unavailable").inc()
            raise GitServiceError(code="unavailable", message=str(e) or "provider unreachable")

        if response.status_code >= 400:
            code = _code_for_status(response.status_code)
            message = _error_message(response)
            GIT_PROVIDER_ERRORS.labels(provider=self.provider, operation=operation, code=code).inc()
            if code == "unauthorized":
                raise AuthenticationError(f"{self.provider}: {message}")
            retry_after = None
            if code == "rate_limited":
                retry_after = _retry_after_seconds(response.headers.get("Retry-After"))
            raise GitServiceError(
                code=code,
                message=message,
                retry_after_seconds=retry_after,
                details={"status": response.status_code, "method": method, "path": path},
            )
        return response

    async def _json(self, method: str, path: str, **kwargs: Any) -> Any:
        response = await self._request(method, path, **kwargs)
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError:
            raise MalformedResponseError(f"{self.provider} returned a non-JSON body for {method} {path}")

    async def _get_json_or_none(self, path: str, **kwargs: Any) -> Any:
        try:
            return await self._json("GET", path, **kwargs)
        except GitServiceError as e:
            if e.code == "not_found":
                return None
            raise

    async def _get_paginated(self, path: str, params: dict[str, Any] | None = None) -> list[Any]:
        items: list[Any] = []
        url: str | None = path
        for _ in range(_MAX_PAGES):
            if url is None:
                break
            response = await self._request("GET", url, params=params)
            body = response.json() if response.content else None
            items.extend(self._page_items(body))
            url = self._next_page(response, body)
            params = None
        return items

    def _page_items(self, body: Any) -> Iterable[Any]:
        return body if isinstance(body, list) else []

    def _next_page(self, response: httpx.Response, body: Any) -> str | None:
        return response.links.get("next", {}).get("url")

    async def _organization_lookup(self, name: str, path: str, *keys: str) -> str:
        """Resolve an organization's remote identifier or raise NoSuchOrganizationError."""
        if not name:
            raise InvalidArgumentError("organization name must be specified.")
        try:
            node = await self._json("GET", path)
        except GitServiceError as e:
            if e.code in ("not_found", "forbidden"):
                raise NoSuchOrganizationError(name) from e
            raise
        if node is None:
            raise NoSuchOrganizationError(name)
        return str(self._require(node, *keys))

    def _require(self, node: Any, *keys: str) -> Any:
        value = node
        for key in keys:
            if not isinstance(value, dict) or value.get(key) is None:
                raise MalformedResponseError(
                    f"{self.provider} response is missing '{'.'.join(keys)}'"
                )
            value = value[key]
        return value

    async def _observe(
        self,
        operation: str,
        op: Callable[[], Awaitable[Any]],
        *,
        retry: bool = True,
    ) -> Any:
        provider = self.provider
        with GIT_PROVIDER_LATENCY.labels(provider, operation).time():
            try:
                GIT_PROVIDER_REQUESTS.labels(provider, operation, "attempt").inc()
                result = await retry_async(op, attempts=self._request_attempts if retry else 1)
                GIT_PROVIDER_REQUESTS.labels(provider, operation, "ok").inc()
                return result
            except GitServiceError as e:
                GIT_PROVIDER_REQUESTS.labels(provider, operation, e.code).inc()
                raise
            except Exception as e:  # noqa: BLE001
                GIT_PROVIDER_REQUESTS.labels(provider, operation, "internal").inc()
                GIT_PROVIDER_ERRORS.labels(provider=provider, operation=operation, code="internal").inc()
                raise GitServiceError(code="internal", message=f"{operation} failed: {e}") from e

    # ------------------------------------------------------------------
    # git CLI
    # ------------------------------------------------------------------

    def _authenticated_clone_url(self, clone_url: str) -> str:
        if not self._token:
            return clone_url
        parts = urlsplit(clone_url)
        host = parts.hostname or ""
        if parts.port:
            host = f"{host}:{parts.port}"
        netloc = f"{self.clone_username}:{quote(self._token, safe='')}@{host}"
        return urlunsplit((parts.scheme, netloc, parts.path, parts.query, parts.fragment))

    async def _run_git(self, command: list[str], cwd: Path) -> None:
        env = {**os.environ, "GIT_TERMINAL_PROMPT": "0"}
        process = await asyncio.create_subprocess_exec(
            *command,
            cwd=str(cwd),
            env=env,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
        _, stderr = await process.communicate()
        if process.returncode != 0:
            output = stderr.decode(errors="replace").strip()
            if self._token:
                output = output.replace(self._token, "***").replace(quote(self._token, safe=""), "***")
            raise GitServiceError(
                code="internal",
                message=f"git {command[1]} failed with exit code {process.returncode}: {output}",
            )


def _event_names(events: Iterable[str | GitHookEvent]) -> list[str]:
    names = []
    for event in events:
        name = event.value if isinstance(event, GitHookEvent) else str(event).lower()
        if name and name not in names:
            names.append(name)
    return names
