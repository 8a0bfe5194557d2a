from typing import AsyncIterator, Optional

from fastapi import Header, Request

from ...core.config import Settings
from ...events.broker import StatusMessageEventBroker
from ...git.interfaces import GitService
from ...services.launch import LaunchWorkflow
from ...services.mission_control import MissionControl


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_broker(request: Request) -> StatusMessageEventBroker:
    return request.app.state.broker


def get_mission_control(request: Request) -> MissionControl:
    return request.app.state.mission_control


def get_workflow(request: Request) -> LaunchWorkflow:
    return request.app.state.workflow


def build_git_service(
    request: Request,
    provider: Optional[str] = None,
    token: Optional[str] = None,
) -> GitService:
    """설정 기반 Git 서비스 생성 (헤더로 프로바이더/토큰 재정의 가능)"""
    return request.app.state.git_service_factory(provider, token)


async def get_git_service(
    request: Request,
    x_git_provider: Optional[str] = Header(default=None),
    x_git_token: Optional[str] = Header(default=None),
) -> AsyncIterator[GitService]:
    """요청 단위 Git 서비스 (요청 종료 시 닫힘)"""
    service = build_git_service(request, x_git_provider, x_git_token)
    async with service:
        yield service
