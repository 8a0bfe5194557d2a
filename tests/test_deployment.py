import json

import httpx
import pytest

from launcher.core.config import Settings
from launcher.git.models import GitRepository
from launcher.services.deployment import (
    DeploymentError,
    HttpDeploymentTrigger,
    LoggingDeploymentTrigger,
    deployment_trigger_from_settings,
)

REPOSITORY = GitRepository(
    "acme/demo-app", "https://git.example/acme/demo-app", "https://git.example/acme/demo-app.git"
)


@pytest.mark.asyncio
async def test_http_trigger_posts_repository_and_namespace() -> None:
    received = {}

    def handler(request: httpx.Request) -> httpx.Response:
        received["auth"] = request.headers.get("Authorization")
        received["body"] = json.loads(request.content)
        return httpx.Response(202, json={"build": "b-1"})

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        trigger = HttpDeploymentTrigger("https://deploy.example/builds", "tkn", http_client=client)
        acceptance = await trigger.trigger(REPOSITORY, "team-a")

    assert received["auth"] == "Bearer tkn"
    assert received["body"] == {
        "repository": "acme/demo-app",
        "clone_url": "https://git.example/acme/demo-app.git",
        "namespace": "team-a",
    }
    assert acceptance == {"accepted": True, "namespace": "team-a", "response": {"build": "b-1"}}


@pytest.mark.asyncio
async def test_http_trigger_rejection_raises() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(503, text="maintenance")

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        trigger = HttpDeploymentTrigger("https://deploy.example/builds", http_client=client)
        with pytest.raises(DeploymentError) as exc:
            await trigger.trigger(REPOSITORY, "team-a")
    assert exc.value.status_code == 503


@pytest.mark.asyncio
async def test_http_trigger_transport_error_raises() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        trigger = HttpDeploymentTrigger("https://deploy.example/builds", http_client=client)
        with pytest.raises(DeploymentError):
            await trigger.trigger(REPOSITORY, "team-a")


def test_trigger_from_settings():
    assert isinstance(deployment_trigger_from_settings(Settings()), LoggingDeploymentTrigger)
    configured = deployment_trigger_from_settings(Settings(deployment_api_url="https://deploy.example"))
    assert isinstance(configured, HttpDeploymentTrigger)


@pytest.mark.asyncio
async def test_logging_trigger_accepts_as_dry_run():
    acceptance = await LoggingDeploymentTrigger().trigger(REPOSITORY, "team-a")
    assert acceptance["dry_run"] is True
