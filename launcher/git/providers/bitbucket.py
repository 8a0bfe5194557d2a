from __future__ import annotations

from typing import Any, Iterable, Sequence

import httpx

from ..base import HttpGitService
from ..models import GitHook, GitHookEvent, GitOrganization, GitRepository, GitUser

# generic hook event kind -> Bitbucket event keys
_EVENT_KEYS = {
    GitHookEvent.PUSH.value: ("repo:push",),
    GitHookEvent.MERGE_REQUESTS.value: ("pullrequest:created", "pullrequest:updated", "pullrequest:fulfilled"),
    GitHookEvent.ISSUES.value: ("issue:created", "issue:updated"),
}
# Bitbucket event key prefix -> generic hook event kind
_EVENT_PREFIXES = {
    "repo:push": GitHookEvent.PUSH.value,
    "pullrequest:": GitHookEvent.MERGE_REQUESTS.value,
    "issue:": GitHookEvent.ISSUES.value,
}


def _event_kind(key: str) -> str:
    for prefix, kind in _EVENT_PREFIXES.items():
        if key.startswith(prefix):
            return kind
    return key


class BitbucketService(HttpGitService):
    """Bitbucket Cloud 2.0 client.

    Organizations are workspaces; listings are paginated through the
    ``next`` link in the response body.
    """

    provider = "bitbucket"
    default_base_url = "https://api.bitbucket.org"
    api_root = "/2.0"
    clone_username = "x-token-auth"

    def _auth_headers(self) -> dict[str, str]:
        if not self._token:
            return {}
        return {"Authorization": f"Bearer {self._token}"}

    def _page_items(self, body: Any) -> Iterable[Any]:
        if isinstance(body, dict):
            return body.get("values") or []
        return []

    def _next_page(self, response: httpx.Response, body: Any) -> str | None:
        if isinstance(body, dict):
            return body.get("next")
        return None

    async def _list_organizations(self) -> list[GitOrganization]:
        nodes = await self._get_paginated("/workspaces", params={"pagelen": 100})
        return [GitOrganization(self._require(node, "slug")) for node in nodes]

    async def _organization_id(self, name: str) -> str:
        return await self._organization_lookup(name, f"/workspaces/{name}", "uuid")

    async def _list_repositories(
        self, owner: str, is_organization: bool, name_containing: str | None
    ) -> list[GitRepository]:
        params: dict[str, Any] = {"pagelen": 100}
        if name_containing:
            escaped = name_containing.replace('"', '\\"')
            params["q"] = f'name ~ "{escaped}"'
        nodes = await self._get_paginated(f"/repositories/{owner}", params=params)
        return [self._read_repository(node) for node in nodes]

    async def _create_repository(
        self, name: str, description: str, organization: str | None, namespace_id: str | None
    ) -> GitRepository | None:
        workspace = organization or (await self.get_logged_user()).login
        node = await self._json(
            "POST",
            f"/repositories/{workspace}/{name.lower()}",
            json={"scm": "git", "name": name, "description": description, "is_private": False},
        )
        return self._read_repository(node) if node else None

    async def _get_repository_by_full_name(self, full_name: str) -> GitRepository | None:
        node = await self._get_json_or_none(f"/repositories/{full_name}")
        return self._read_repository(node) if node else None

    async def _delete_repository(self, full_name: str) -> None:
        await self._request("DELETE", f"/repositories/{full_name}")

    async def _create_hook(
        self, full_name: str, url: str, events: Sequence[str], secret: str | None
    ) -> GitHook | None:
        keys: list[str] = []
        for event in events:
            keys.extend(_EVENT_KEYS.get(event, (event,)))
        payload: dict[str, Any] = {
            "description": "Projectile launcher webhook",
            "url": url,
            "active": True,
            "events": keys,
        }
        if secret:
            payload["secret"] = secret
        node = await self._json("POST", f"/repositories/{full_name}/hooks", json=payload)
        return self._read_hook(node) if node else None

    async def _list_hooks(self, full_name: str) -> list[GitHook]:
        nodes = await self._get_paginated(f"/repositories/{full_name}/hooks")
        return [self._read_hook(node) for node in nodes]

    async def _delete_hook(self, full_name: str, hook_id: str) -> None:
        await self._request("DELETE", f"/repositories/{full_name}/hooks/{hook_id}")

    async def _read_logged_user(self) -> GitUser:
        node = await self._json("GET", "/user")
        return GitUser(
            login=self._require(node, "username"),
            avatar_url=self._require(node, "links", "avatar", "href"),
        )

    def _read_repository(self, node: Any) -> GitRepository:
        clone_links = self._require(node, "links", "clone")
        clone_url = next(
            (link.get("href") for link in clone_links if link.get("name") == "https"),
            None,
        )
        if clone_url is None:
            clone_url = self._require(node, "links", "html", "href") + ".git"
        return GitRepository(
            full_name=self._require(node, "full_name"),
            homepage=self._require(node, "links", "html", "href"),
            clone_url=clone_url,
        )

    def _read_hook(self, node: Any) -> GitHook:
        return GitHook(
            name=self._require(node, "uuid"),
            url=self._require(node, "url"),
            events=frozenset(_event_kind(key) for key in node.get("events") or ()),
        )
