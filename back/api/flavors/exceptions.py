import functools
import logging
import uuid
from typing import Any

from django.db import DatabaseError
from rest_framework.response import Response
from rest_framework.views import exception_handler as drf_default_exception_handler
from rest_framework.exceptions import (
    ValidationError,
    NotAuthenticated,
    AuthenticationFailed,
    PermissionDenied,
    NotFound as DRFNotFound,
    MethodNotAllowed,
    ParseError,
    UnsupportedMediaType,
    Throttled,
    APIException,
)

logger = logging.getLogger(__name__)


class FlavorsError(Exception):
    """ドメイン層の例外の基底。HTTP層では custom_exception_handler が共通フォーマットに変換する。"""

    code = "API_ERROR"
    status_code = 400
    default_message = "api error"

    def __init__(self, message: str | None = None, details: dict | None = None):
        self.message = message or self.default_message
        self.details = details or {}
        super().__init__(self.message)


class InvalidRating(FlavorsError):
    code = "INVALID_RATING"
    status_code = 400
    default_message = "rating must be an integer between 1 and 5"


class InvalidCuration(FlavorsError):
    code = "VALIDATION_ERROR"
    status_code = 400
    default_message = "rank must be a positive integer or null"


class NotFound(FlavorsError):
    code = "NOT_FOUND"
    status_code = 404
    default_message = "not found"


class Forbidden(FlavorsError):
    code = "FORBIDDEN"
    status_code = 403
    default_message = "forbidden"


class Conflict(FlavorsError):
    code = "CONFLICT"
    status_code = 409
    default_message = "conflict"


class StorageFailure(FlavorsError):
    code = "STORAGE_FAILURE"
    status_code = 503
    default_message = "storage operation failed"


def translate_storage_errors(func):
    """DB例外（接続断・タイムアウト・制約違反）を StorageFailure に変換する。
    - リトライはしない（呼び出し側の責務）
    """

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except DatabaseError as exc:
            logger.error("storage failure in %s: %s", func.__name__, exc)
            raise StorageFailure(details={"operation": func.__name__}) from exc

    return wrapper


def _new_trace_id() -> str:
    """問い合わせ追跡用のID（例: req_ab12cd34ef56）。"""
    return f"req_{uuid.uuid4().hex[:12]}"


def error_payload(code: str, message: str, details: Any = None) -> dict:
    return {
        "error": {
            "code": code,
            "message": message,
            "details": details or {},
            "trace_id": _new_trace_id(),
        }
    }


def error_response(code: str, message: str, details: dict | list | None = None, status_code: int = 400) -> Response:
    """{ error: { code, message, details, trace_id } } 形式のレスポンス。"""
    return Response(error_payload(code, message, details), status=status_code)


# DRF例外 → (code, message)。先に一致したものを使う
DRF_ERROR_CODES: tuple[tuple[type[APIException], str, str], ...] = (
    (ValidationError, "VALIDATION_ERROR", "validation error"),
    (NotAuthenticated, "UNAUTHORIZED", "authentication required"),
    (AuthenticationFailed, "UNAUTHORIZED", "authentication required"),
    (PermissionDenied, "FORBIDDEN", "forbidden"),
    (DRFNotFound, "NOT_FOUND", "not found"),
    (MethodNotAllowed, "METHOD_NOT_ALLOWED", "method not allowed"),
    (Throttled, "RATE_LIMITED", "too many requests"),
    (ParseError, "BAD_REQUEST", "request parse error"),
    (UnsupportedMediaType, "UNSUPPORTED_MEDIA_TYPE", "unsupported media type"),
)

STATUS_ERROR_CODES = {404: ("NOT_FOUND", "not found"), 403: ("FORBIDDEN", "forbidden")}


def _classify(exc: Exception, resp: Response) -> tuple[str, str, Any]:
    for exc_type, code, message in DRF_ERROR_CODES:
        if isinstance(exc, exc_type):
            if isinstance(exc, ValidationError):
                return code, message, resp.data
            if isinstance(exc, Throttled):
                return code, message, {"wait": exc.wait}
            return code, message, None
    if isinstance(exc, APIException):
        details = resp.data if isinstance(resp.data, (dict, list)) else None
        return "API_ERROR", str(exc.detail) or "api error", details
    # Django の Http404 / PermissionDenied
    if resp.status_code in STATUS_ERROR_CODES:
        code, message = STATUS_ERROR_CODES[resp.status_code]
        return code, message, None
    return "API_ERROR", "api error", resp.data


def custom_exception_handler(exc: Exception, context: dict) -> Response:
    """ドメイン例外・DRF例外を共通フォーマットに変換する EXCEPTION_HANDLER。
    - FlavorsError は自身の code / status_code を使う
    - DRFが扱える例外は既定ハンドラのステータスを保ったまま本文だけ差し替える
    - それ以外は 500 SERVER_ERROR（ログに残す）
    """
    if isinstance(exc, FlavorsError):
        if exc.status_code >= 500:
            logger.warning("%s: %s %s", exc.code, exc.message, exc.details)
        return error_response(exc.code, exc.message, exc.details, status_code=exc.status_code)

    resp = drf_default_exception_handler(exc, context)
    if resp is None:
        view = context.get("view")
        logger.exception("unhandled exception in %s", view.__class__.__name__, exc_info=exc)
        return error_response(code="SERVER_ERROR", message="internal server error", status_code=500)

    code, message, details = _classify(exc, resp)
    resp.data = error_payload(code, message, details)
    return resp
