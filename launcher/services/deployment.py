from __future__ import annotations

from typing import Any, Dict, Protocol

import httpx
import structlog

from ..core.config import Settings
from ..git.models import GitRepository

logger = structlog.get_logger(__name__)


class DeploymentError(Exception):
    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class DeploymentTrigger(Protocol):
    async def trigger(self, repository: GitRepository, namespace: str) -> Dict[str, Any]:
        """Ask the target environment to build and deploy ``repository``.

        Returns once the request is accepted; the deployment outcome is not awaited.
        """
        ...


class HttpDeploymentTrigger:
    """배포 대상 환경의 빌드/배포 API 호출"""

    def __init__(
        self,
        url: str,
        token: str | None = None,
        *,
        timeout: float = 30.0,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._url = url
        self._token = token
        self._timeout = timeout
        self._http_client = http_client

    async def trigger(self, repository: GitRepository, namespace: str) -> Dict[str, Any]:
        headers = {"Accept": "application/json"}
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"
        payload = {
            "repository": repository.full_name,
            "clone_url": repository.clone_url,
            "namespace": namespace,
        }
        try:
            if self._http_client is not None:
                response = await self._http_client.post(self._url, json=payload, headers=headers)
            else:
                async with httpx.AsyncClient(timeout=self._timeout) as client:
                    response = await client.post(self._url, json=payload, headers=headers)
        except httpx.HTTPError as e:
            raise DeploymentError(f"Deployment API unreachable: {e}") from e

        if response.status_code >= 400:
            raise DeploymentError(
                f"Deployment rejected: HTTP {response.status_code} - {response.text[:200]}",
                status_code=response.status_code,
            )
        logger.info("deployment_triggered", repository=repository.full_name, namespace=namespace)
        try:
            body = response.json() if response.content else {}
        except ValueError:
            body = {}
        return {"accepted": True, "namespace": namespace, "response": body}


class LoggingDeploymentTrigger:
    """배포 API 미설정 시 사용: 요청을 기록만 하고 수락으로 처리"""

    async def trigger(self, repository: GitRepository, namespace: str) -> Dict[str, Any]:
        logger.info(
            "deployment_trigger_skipped",
            reason="no deployment api configured",
            repository=repository.full_name,
            namespace=namespace,
        )
        return {"accepted": True, "namespace": namespace, "dry_run": True}


def deployment_trigger_from_settings(settings: Settings) -> DeploymentTrigger:
    if not settings.deployment_api_url:
        return LoggingDeploymentTrigger()
    return HttpDeploymentTrigger(
        settings.deployment_api_url,
        settings.deployment_api_token,
        timeout=settings.deployment_timeout,
    )
