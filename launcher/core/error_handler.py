"""
통합 에러 처리
"""

import logging
import traceback

from fastapi import HTTPException, Request
from fastapi.responses import JSONResponse

from ..git.errors import GitServiceError

logger = logging.getLogger(__name__)

_STATUS_BY_CODE = {
    "invalid_argument": 400,
    "bad_request": 400,
    "unauthorized": 401,
    "forbidden": 403,
    "not_found": 404,
    "conflict": 409,
    "rate_limited": 429,
    "timeout": 504,
}


def status_for(error: GitServiceError) -> int:
    """Git 서비스 오류 코드 → HTTP 상태 코드 (그 외 원격 오류는 502)"""
    return _STATUS_BY_CODE.get(error.code, 502)


def setup_error_handlers(app):
    """에러 핸들러 설정"""

    @app.exception_handler(GitServiceError)
    async def git_service_error_handler(request: Request, exc: GitServiceError):
        status_code = status_for(exc)
        logger.log(
            logging.WARNING if status_code < 500 else logging.ERROR,
            "Git service error: %s",
            exc.message,
            extra={"error_code": exc.code, "path": request.url.path, "method": request.method},
        )
        headers = None
        if exc.retry_after_seconds is not None:
            headers = {"Retry-After": str(int(exc.retry_after_seconds))}
        return JSONResponse(
            status_code=status_code,
            content={
                "error": "Git Service Error",
                "code": exc.code,
                "message": exc.message,
                "path": request.url.path,
            },
            headers=headers,
        )

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException):
        logger.warning(f"HTTP Exception: {exc.detail}", extra={
            "status_code": exc.status_code,
            "path": request.url.path,
            "method": request.method
        })
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "error": "HTTP Exception",
                "code": "http_error",
                "message": exc.detail,
                "path": request.url.path
            }
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        logger.error(f"Unexpected error: {str(exc)}", extra={
            "path": request.url.path,
            "method": request.method,
            "traceback": traceback.format_exc()
        })
        return JSONResponse(
            status_code=500,
            content={
                "error": "Internal Server Error",
                "code": "internal",
                "message": "An unexpected error occurred",
                "path": request.url.path
            }
        )
