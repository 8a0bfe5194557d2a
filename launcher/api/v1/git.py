from dataclasses import asdict
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Query

from ...git.interfaces import GitService
from ...git.models import GitOrganization, GitRepository, GitRepositoryFilter
from .dependencies import get_git_service


router = APIRouter(prefix="/git")


def _repository_dict(repository: GitRepository) -> Dict[str, Any]:
    return {
        "full_name": repository.full_name,
        "organization": repository.organization,
        "name": repository.name,
        "homepage": repository.homepage,
        "clone_url": repository.clone_url,
    }


@router.get("/user", response_model=dict)
async def get_user(git: GitService = Depends(get_git_service)) -> Dict[str, Any]:
    """인증된 Git 사용자 조회"""
    return asdict(await git.get_logged_user())


@router.get("/organizations", response_model=list)
async def get_organizations(git: GitService = Depends(get_git_service)) -> List[Dict[str, Any]]:
    return [asdict(org) for org in await git.get_organizations()]


@router.get("/repositories", response_model=list)
async def get_repositories(
    organization: Optional[str] = Query(default=None),
    name_containing: Optional[str] = Query(default=None),
    git: GitService = Depends(get_git_service),
) -> List[Dict[str, Any]]:
    """저장소 목록 조회 (조직 / 이름 부분 일치 필터)"""
    repository_filter = GitRepositoryFilter(
        organization=GitOrganization(organization) if organization else None,
        name_containing=name_containing,
    )
    return [_repository_dict(r) for r in await git.get_repositories(repository_filter)]
