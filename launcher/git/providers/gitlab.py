from __future__ import annotations

from typing import Any, Sequence
from urllib.parse import quote

from ..base import HttpGitService
from ..models import GitHook, GitOrganization, GitRepository, GitUser


def _project(full_name: str) -> str:
    return quote(full_name, safe="")


class GitLabService(HttpGitService):
    """GitLab v4 REST client.

    Authenticates with a ``Private-Token`` header, sends form-urlencoded
    bodies, and maps ``<event>_events`` boolean hook fields to generic
    hook event kinds.
    """

    provider = "gitlab"
    default_base_url = "https://gitlab.com"
    api_root = "/api/v4"
    clone_username = "oauth2"

    def _auth_headers(self) -> dict[str, str]:
        if not self._token:
            return {}
        return {"Private-Token": self._token}

    async def _list_organizations(self) -> list[GitOrganization]:
        groups = await self._get_paginated("/groups", params={"per_page": 100})
        return [GitOrganization(self._require(node, "path")) for node in groups]

    async def _organization_id(self, name: str) -> str:
        return await self._organization_lookup(name, f"/groups/{quote(name, safe='')}", "id")

    async def _list_repositories(
        self, owner: str, is_organization: bool, name_containing: str | None
    ) -> list[GitRepository]:
        scope = "groups" if is_organization else "users"
        params: dict[str, Any] = {"per_page": 100}
        if name_containing:
            params["search"] = name_containing
        nodes = await self._get_paginated(f"/{scope}/{quote(owner, safe='')}/projects", params=params)
        return [self._read_repository(node) for node in nodes]

    async def _create_repository(
        self, name: str, description: str, organization: str | None, namespace_id: str | None
    ) -> GitRepository | None:
        form = {"name": name, "visibility": "public", "description": description}
        if namespace_id is not None:
            form["namespace_id"] = namespace_id
        node = await self._json("POST", "/projects", data=form)
        return self._read_repository(node) if node else None

    async def _get_repository_by_full_name(self, full_name: str) -> GitRepository | None:
        node = await self._get_json_or_none(f"/projects/{_project(full_name)}")
        return self._read_repository(node) if node else None

    async def _delete_repository(self, full_name: str) -> None:
        await self._request("DELETE", f"/projects/{_project(full_name)}")

    async def _create_hook(
        self, full_name: str, url: str, events: Sequence[str], secret: str | None
    ) -> GitHook | None:
        form = {"url": url}
        if secret:
            form["token"] = secret
        for event in events:
            form[f"{event.lower()}_events"] = "true"
        node = await self._json("POST", f"/projects/{_project(full_name)}/hooks", data=form)
        return self._read_hook(node) if node else None

    async def _list_hooks(self, full_name: str) -> list[GitHook]:
        nodes = await self._get_paginated(f"/projects/{_project(full_name)}/hooks")
        return [self._read_hook(node) for node in nodes]

    async def _delete_hook(self, full_name: str, hook_id: str) -> None:
        await self._request("DELETE", f"/projects/{_project(full_name)}/hooks/{hook_id}")

    async def _read_logged_user(self) -> GitUser:
        node = await self._json("GET", "/user")
        return GitUser(
            login=self._require(node, "username"),
            avatar_url=self._require(node, "avatar_url"),
        )

    def _read_repository(self, node: Any) -> GitRepository:
        return GitRepository(
            full_name=self._require(node, "path_with_namespace"),
            homepage=self._require(node, "web_url"),
            clone_url=self._require(node, "http_url_to_repo"),
        )

    def _read_hook(self, node: Any) -> GitHook:
        events = frozenset(
            field[: -len("_events")]
            for field, value in node.items()
            if field.endswith("_events") and value is True
        )
        return GitHook(
            name=str(self._require(node, "id")),
            url=self._require(node, "url"),
            events=events,
        )
