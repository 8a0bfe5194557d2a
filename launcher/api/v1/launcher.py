"""
Launcher API

부스터를 zip으로 내려받거나, 생성/업로드한 프로젝트를 Git 저장소로 런치합니다.
런치 요청은 확인 응답(job id + 이벤트 종류)을 반환하고, 실제 진행은 핸들러가
반환되기 전에 등록된 별도 asyncio 태스크에서 이루어집니다. 태스크가 임시 디렉터리와
Git 서비스를 소유하므로 응답 전송이 실패해도 정리가 보장됩니다.
"""

import tempfile
import zipfile
from pathlib import Path
from typing import Optional

import structlog
from fastapi import (
    APIRouter,
    Depends,
    File,
    Form,
    Header,
    HTTPException,
    Query,
    Request,
    UploadFile,
    WebSocket,
)
from fastapi.responses import Response
from pydantic import BaseModel, Field

from ...core.config import Settings
from ...events.broker import StatusMessageEventBroker
from ...events.models import LaunchStep
from ...git.naming import check_repository_name
from ...services.archive import unzip, zip_directory
from ...services.catalog import BoosterNotFoundError
from ...services.launch import LaunchAcknowledgment, LaunchWorkflow
from ...services.mission_control import MissionControl
from ...websocket.status_monitor import handle_status_websocket
from .dependencies import (
    build_git_service,
    get_app_settings,
    get_mission_control,
    get_workflow,
)

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/launcher")


class LaunchProjectileInput(BaseModel):
    mission: str = Field(min_length=1)
    runtime: str = Field(min_length=1)
    project_name: str = Field(min_length=1)
    git_organization: Optional[str] = None
    git_repository: Optional[str] = None
    namespace: Optional[str] = None
    step: LaunchStep = LaunchStep.PREPARE


def _prepare(mission_control: MissionControl, mission: str, runtime: str) -> Path:
    try:
        return mission_control.prepare(mission, runtime)
    except BoosterNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


def _project_root(extracted: Path) -> Path:
    """업로드 zip이 단일 최상위 디렉터리를 가지면 그것을 프로젝트 루트로 사용"""
    entries = [p for p in extracted.iterdir() if not p.name.startswith("__MACOSX")]
    if len(entries) == 1 and entries[0].is_dir():
        return entries[0]
    return extracted


@router.get("/zip")
def download_zip(
    mission: str = Query(min_length=1),
    runtime: str = Query(min_length=1),
    project_name: str = Query(default="booster", min_length=1),
    mission_control: MissionControl = Depends(get_mission_control),
) -> Response:
    """부스터를 생성해 zip으로 반환 (임시 디렉터리는 항상 정리)"""
    project_dir = _prepare(mission_control, mission, runtime)
    try:
        contents = zip_directory(project_name, project_dir)
    finally:
        mission_control.reaper.delete(project_dir)
    return Response(
        content=contents,
        media_type="application/zip",
        headers={"Content-Disposition": f'attachment; filename="{project_name}.zip"'},
    )


@router.post("/launch", response_model=LaunchAcknowledgment)
async def launch(
    body: LaunchProjectileInput,
    request: Request,
    x_git_provider: Optional[str] = Header(default=None),
    x_git_token: Optional[str] = Header(default=None),
    mission_control: MissionControl = Depends(get_mission_control),
    workflow: LaunchWorkflow = Depends(get_workflow),
) -> LaunchAcknowledgment:
    repository_name = body.git_repository or body.project_name
    check_repository_name(repository_name)
    git_service = build_git_service(request, x_git_provider, x_git_token)

    project_dir = _prepare(mission_control, body.mission, body.runtime)
    try:
        projectile = workflow.projectile(
            project_location=project_dir,
            git_repository_name=repository_name,
            git_organization=body.git_organization,
            namespace=body.namespace,
            start_of_step=body.step,
            mission=body.mission,
            runtime=body.runtime,
        )
    except Exception:
        mission_control.reaper.delete(project_dir)
        await git_service.close()
        raise

    # 응답 전송 성공 여부와 무관하게 태스크가 정리를 소유
    await workflow.dispatch(projectile, (), git_service)
    logger.info("launch_accepted", job_id=projectile.id, repository=repository_name)
    return workflow.acknowledge(projectile)


@router.post("/upload", response_model=LaunchAcknowledgment)
async def upload(
    request: Request,
    file: UploadFile = File(...),
    project_name: str = Form(..., min_length=1),
    mission: Optional[str] = Form(default=None),
    runtime: Optional[str] = Form(default=None),
    git_organization: Optional[str] = Form(default=None),
    git_repository: Optional[str] = Form(default=None),
    namespace: Optional[str] = Form(default=None),
    step: LaunchStep = Form(default=LaunchStep.PREPARE),
    x_git_provider: Optional[str] = Header(default=None),
    x_git_token: Optional[str] = Header(default=None),
    settings: Settings = Depends(get_app_settings),
    workflow: LaunchWorkflow = Depends(get_workflow),
) -> LaunchAcknowledgment:
    """업로드한 zip 프로젝트를 런치"""
    repository_name = git_repository or project_name
    check_repository_name(repository_name)
    git_service = build_git_service(request, x_git_provider, x_git_token)

    upload_dir = Path(tempfile.mkdtemp(prefix="upload-", dir=settings.work_dir))
    try:
        unzip(await file.read(), upload_dir)
        projectile = workflow.projectile(
            project_location=_project_root(upload_dir),
            git_repository_name=repository_name,
            git_organization=git_organization,
            namespace=namespace,
            start_of_step=step,
            mission=mission,
            runtime=runtime,
        )
    except (zipfile.BadZipFile, ValueError) as e:
        workflow.reaper.delete(upload_dir)
        await git_service.close()
        raise HTTPException(status_code=400, detail=f"Invalid project archive: {e}")
    except Exception:
        workflow.reaper.delete(upload_dir)
        await git_service.close()
        raise

    await workflow.dispatch(projectile, (upload_dir,), git_service)
    logger.info("upload_accepted", job_id=projectile.id, repository=repository_name)
    return workflow.acknowledge(projectile)


@router.websocket("/status/{job_id}")
async def status_stream(websocket: WebSocket, job_id: str):
    """job 상태 이벤트 WebSocket 스트림"""
    broker: StatusMessageEventBroker = websocket.app.state.broker
    await handle_status_websocket(websocket, broker, job_id)
