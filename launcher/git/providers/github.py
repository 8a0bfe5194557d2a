from __future__ import annotations

from typing import Any, Sequence

from ..base import HttpGitService
from ..models import GitHook, GitHookEvent, GitOrganization, GitRepository, GitUser

# generic hook event kind -> GitHub webhook event name
_EVENT_NAMES = {
    GitHookEvent.PUSH.value: "push",
    GitHookEvent.MERGE_REQUESTS.value: "pull_request",
    GitHookEvent.ISSUES.value: "issues",
}
_EVENT_KINDS = {name: kind for kind, name in _EVENT_NAMES.items()}


class GitHubService(HttpGitService):
    """GitHub REST v3 client.

    Uses bearer token authentication with the versioned JSON media type;
    request bodies are JSON.
    """

    provider = "github"
    default_base_url = "https://api.github.com"
    clone_username = "x-access-token"

    def _auth_headers(self) -> dict[str, str]:
        headers = {
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
        }
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"
        return headers

    async def _list_organizations(self) -> list[GitOrganization]:
        nodes = await self._get_paginated("/user/orgs", params={"per_page": 100})
        return [GitOrganization(self._require(node, "login")) for node in nodes]

    async def _organization_id(self, name: str) -> str:
        return await self._organization_lookup(name, f"/orgs/{name}", "id")

    async def _list_repositories(
        self, owner: str, is_organization: bool, name_containing: str | None
    ) -> list[GitRepository]:
        if is_organization:
            nodes = await self._get_paginated(f"/orgs/{owner}/repos", params={"per_page": 100})
        else:
            nodes = await self._get_paginated(
                "/user/repos", params={"per_page": 100, "affiliation": "owner"}
            )
        repositories = [self._read_repository(node) for node in nodes]
        if name_containing:
            needle = name_containing.lower()
            repositories = [r for r in repositories if needle in r.name.lower()]
        return repositories

    async def _create_repository(
        self, name: str, description: str, organization: str | None, namespace_id: str | None
    ) -> GitRepository | None:
        path = f"/orgs/{organization}/repos" if organization else "/user/repos"
        node = await self._json(
            "POST", path, json={"name": name, "description": description, "private": False}
        )
        return self._read_repository(node) if node else None

    async def _get_repository_by_full_name(self, full_name: str) -> GitRepository | None:
        node = await self._get_json_or_none(f"/repos/{full_name}")
        return self._read_repository(node) if node else None

    async def _delete_repository(self, full_name: str) -> None:
        await self._request("DELETE", f"/repos/{full_name}")

    async def _create_hook(
        self, full_name: str, url: str, events: Sequence[str], secret: str | None
    ) -> GitHook | None:
        config: dict[str, Any] = {"url": url, "content_type": "json"}
        if secret:
            config["secret"] = secret
        payload = {
            "name": "web",
            "active": True,
            "events": [_EVENT_NAMES.get(event, event) for event in events],
            "config": config,
        }
        node = await self._json("POST", f"/repos/{full_name}/hooks", json=payload)
        return self._read_hook(node) if node else None

    async def _list_hooks(self, full_name: str) -> list[GitHook]:
        nodes = await self._get_paginated(f"/repos/{full_name}/hooks", params={"per_page": 100})
        return [self._read_hook(node) for node in nodes]

    async def _delete_hook(self, full_name: str, hook_id: str) -> None:
        await self._request("DELETE", f"/repos/{full_name}/hooks/{hook_id}")

    async def _read_logged_user(self) -> GitUser:
        node = await self._json("GET", "/user")
        return GitUser(
            login=self._require(node, "login"),
            avatar_url=self._require(node, "avatar_url"),
        )

    def _read_repository(self, node: Any) -> GitRepository:
        return GitRepository(
            full_name=self._require(node, "full_name"),
            homepage=self._require(node, "html_url"),
            clone_url=self._require(node, "clone_url"),
        )

    def _read_hook(self, node: Any) -> GitHook:
        return GitHook(
            name=str(self._require(node, "id")),
            url=self._require(node, "config", "url"),
            events=frozenset(_EVENT_KINDS.get(name, name) for name in node.get("events") or ()),
        )
