import logging
import traceback
from typing import Any, Dict, Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from .exceptions import BaseAPIException, InternalServerError

logger = logging.getLogger("brokerapi")


def _request_line(request: Request) -> str:
    client = request.client.host if request.client else "-"
    return f"{request.method} {request.url.path} from {client}"


def _log_by_status(label: str, request: Request, status_code: int, detail: Any, exc: Optional[BaseException] = None) -> None:
    """4xx 는 warning, 5xx 는 error (+ 스택 트레이스)"""
    message = f"[{label}] {_request_line(request)} -> {status_code}: {detail}"
    if status_code >= 500:
        if exc is not None and exc.__traceback__ is not None:
            tb_str = "".join(traceback.format_tb(exc.__traceback__))
            message = f"{message}\n\nStack Trace:\n{tb_str}"
        logger.error(message)
    else:
        logger.warning(message)


def _error_body(code: str, message: str, details: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    return {
        "success": False,
        "error": {"code": code, "message": message, "details": details or {}},
    }


async def handle_base_api_exception(request: Request, exc: BaseAPIException):
    # 도메인 에러: 잔액 부족, 중복 지급, 저장소 실패 등
    _log_by_status(type(exc).__name__, request, exc.status_code, exc.message, exc)
    return JSONResponse(status_code=exc.status_code, content=exc.detail)


async def handle_http_exception(request: Request, exc: HTTPException):
    _log_by_status("HTTPException", request, exc.status_code, exc.detail, exc)
    if isinstance(exc.detail, dict) and "error" in exc.detail:
        content = exc.detail
    else:
        content = _error_body("HTTP_ERROR", str(exc.detail))
    return JSONResponse(status_code=exc.status_code, content=content, headers=exc.headers)


async def handle_validation_error(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    _log_by_status("RequestValidation", request, 422, errors)
    # errors() 에 Decimal 등 직렬화 불가 값이 섞일 수 있어 문자열로 정리
    cleaned = [
        {"loc": list(e.get("loc", ())), "msg": str(e.get("msg")), "type": str(e.get("type"))}
        for e in errors
    ]
    return JSONResponse(
        status_code=422,
        content=_error_body("VALIDATION_001", "Validation failed", {"errors": cleaned}),
    )


async def handle_unexpected_error(request: Request, exc: Exception):
    tb_str = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
    logger.error(
        f"\n{'=' * 80}\n"
        f"[Unhandled Error] {_request_line(request)}\n"
        f"Exception Type: {type(exc).__name__}\n"
        f"Exception Message: {str(exc)}\n\n"
        f"Full Stack Trace:\n{tb_str}"
        f"{'=' * 80}"
    )

    internal = InternalServerError()
    return JSONResponse(status_code=internal.status_code, content=internal.detail)


def register_exception_handlers(app: FastAPI) -> None:
    # BaseAPIException 은 HTTPException 의 하위 클래스이므로 먼저 등록
    app.add_exception_handler(BaseAPIException, handle_base_api_exception)
    app.add_exception_handler(HTTPException, handle_http_exception)
    app.add_exception_handler(RequestValidationError, handle_validation_error)
    app.add_exception_handler(Exception, handle_unexpected_error)
