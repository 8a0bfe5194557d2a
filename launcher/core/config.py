from functools import lru_cache
from pydantic_settings import BaseSettings
from pydantic import Field
from pydantic import ConfigDict


class Settings(BaseSettings):
    model_config = ConfigDict(env_prefix="LAUNCHER_", extra="ignore")
    app_name: str = Field(default="Projectile Launcher")
    app_version: str = Field(default="0.1.0")
    log_level: str = Field(default="INFO")
    log_file: str | None = Field(default=None, description="로그 파일 경로 (미설정 시 콘솔만)")

    # Git provider selection (github/gitlab/bitbucket)
    git_provider: str = Field(default="github", description="기본 Git 프로바이더")
    git_request_timeout: float = Field(default=30.0, description="프로바이더 HTTP 타임아웃 (초)")

    # GitHub
    github_url: str = Field(default="https://api.github.com")
    github_token: str | None = None

    # GitLab
    gitlab_url: str = Field(default="https://gitlab.com")
    gitlab_token: str | None = None

    # Bitbucket
    bitbucket_url: str = Field(default="https://api.bitbucket.org")
    bitbucket_token: str | None = None

    # Repository read-back after creation
    repository_wait_attempts: int = Field(default=10, ge=1, description="생성 후 조회 최대 시도 횟수")
    repository_wait_delay: float = Field(default=0.5, ge=0, description="조회 재시도 기본 지연 (초)")
    repository_wait_max_delay: float = Field(default=5.0, ge=0, description="조회 재시도 최대 지연 (초)")

    # Webhook registered on launched repositories
    webhook_url: str | None = None
    webhook_secret: str | None = None

    # Deployment trigger
    deployment_api_url: str | None = None
    deployment_api_token: str | None = None
    deployment_timeout: float = Field(default=30.0)

    # Booster catalog / temporary project trees
    booster_catalog_path: str = Field(default="./boosters")
    work_dir: str | None = None

    # Initial push of materialized sources
    git_push_enabled: bool = Field(default=True, description="새 저장소에 소스 푸시 여부")
    git_author_name: str = Field(default="Projectile Launcher")
    git_author_email: str = Field(default="launcher@localhost")

    # Status event broker
    event_queue_size: int = Field(default=1000, ge=1, description="구독자별 이벤트 큐 크기")

    def token_for(self, provider: str) -> str | None:
        return {
            "github": self.github_token,
            "gitlab": self.gitlab_token,
            "bitbucket": self.bitbucket_token,
        }.get(provider)

    def url_for(self, provider: str) -> str | None:
        return {
            "github": self.github_url,
            "gitlab": self.gitlab_url,
            "bitbucket": self.bitbucket_url,
        }.get(provider)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()  # type: ignore[call-arg]
