from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional

from dotenv import load_dotenv

# .env 파일 로드
load_dotenv()

import structlog
from fastapi import FastAPI, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from starlette.middleware.cors import CORSMiddleware

from .api.v1.git import router as git_router
from .api.v1.launcher import router as launcher_router
from .core.config import Settings, get_settings
from .core.error_handler import setup_error_handlers
from .core.logging_config import setup_logging
from .events.broker import StatusMessageEventBroker
from .git.interfaces import GitService
from .git.registry import git_service_from_settings
from .services.catalog import DirectoryBoosterCatalog
from .services.deployment import DeploymentTrigger, deployment_trigger_from_settings
from .services.launch import LaunchWorkflow
from .services.mission_control import MissionControl
from .services.reaper import DirectoryReaper

logger = structlog.get_logger(__name__)

GitServiceFactory = Callable[[Optional[str], Optional[str]], GitService]


def create_app(
    settings: Optional[Settings] = None,
    *,
    git_service_factory: Optional[GitServiceFactory] = None,
    deployment_trigger: Optional[DeploymentTrigger] = None,
) -> FastAPI:
    """Create and configure FastAPI application instance."""
    settings = settings or get_settings()

    # 로깅 설정
    setup_logging(level=settings.log_level, enable_colors=True, log_file=settings.log_file)

    if git_service_factory is None:
        def git_service_factory(provider: Optional[str] = None, token: Optional[str] = None) -> GitService:
            return git_service_from_settings(settings, provider, token)

    broker = StatusMessageEventBroker(max_queue_size=settings.event_queue_size)
    reaper = DirectoryReaper()
    mission_control = MissionControl(
        git_service_factory,
        deployment_trigger or deployment_trigger_from_settings(settings),
        catalog=DirectoryBoosterCatalog(settings.booster_catalog_path),
        reaper=reaper,
        webhook_url=settings.webhook_url,
        webhook_secret=settings.webhook_secret,
        push_enabled=settings.git_push_enabled,
        work_dir=settings.work_dir,
    )
    workflow = LaunchWorkflow(mission_control, broker, reaper)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await broker.initialize()
        logger.info("Application started", provider=settings.git_provider)
        yield
        logger.info("Shutting down application...")
        try:
            await workflow.shutdown()
        finally:
            await broker.close()
        logger.info("Application shutdown complete")

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        redoc_url=None,
        lifespan=lifespan,
    )

    # App state
    app.state.started_at = datetime.now(timezone.utc)
    app.state.settings = settings
    app.state.broker = broker
    app.state.mission_control = mission_control
    app.state.workflow = workflow
    app.state.git_service_factory = git_service_factory

    # 에러 핸들러 설정
    setup_error_handlers(app)

    # CORS (safe default; tighten in production)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Routers
    app.include_router(launcher_router, prefix="/api/v1", tags=["launcher"])
    app.include_router(git_router, prefix="/api/v1", tags=["git"])

    @app.get("/")
    async def root() -> Dict[str, Any]:
        return {
            "name": settings.app_name,
            "version": settings.app_version,
            "status": "running",
            "started_at": app.state.started_at.isoformat(),
            "git_provider": settings.git_provider,
        }

    @app.get("/healthz")
    async def healthz() -> Dict[str, Any]:
        return {
            "status": "ok",
            "broker": "initialized" if broker.is_initialized else "stopped",
            "running_launches": workflow.running,
        }

    @app.get("/metrics")
    async def metrics() -> Response:
        return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)

    return app


app = create_app()
