# errors.py - Error taxonomy and HTTP mapping
import json
import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

logger = logging.getLogger("taskshare.errors")


class TaskShareError(Exception):
    """Base class for errors that map onto an HTTP status"""
    status_code = 500
    default_detail = "Internal server error"

    def __init__(self, detail: str = None):
        self.detail = detail or self.default_detail
        super().__init__(self.detail)


class AuthenticationError(TaskShareError):
    status_code = 401
    default_detail = "Invalid token"


class AuthorizationError(TaskShareError):
    status_code = 403
    default_detail = "Access denied"


class NotFoundError(TaskShareError):
    status_code = 404
    default_detail = "Not found"


class NotFoundOrForbidden(NotFoundError):
    """Raised when a row is missing or belongs to someone else; callers cannot tell which"""
    default_detail = "Task not found or access denied"


class ConflictError(TaskShareError):
    status_code = 409
    default_detail = "Conflict"


def _request_id(request: Request):
    return getattr(request.state, "request_id", None)


# ============================================================
# EXCEPTION HANDLERS
# ============================================================

async def task_share_error_handler(request: Request, exc: TaskShareError):
    headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == 401 else None
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail, "request_id": _request_id(request)},
        headers=headers,
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    # Sanitise errors to ensure JSON serialisability
    errors = []
    for err in exc.errors():
        clean_err = {
            "type": str(err.get("type", "unknown")),
            "loc": list(err.get("loc", [])),
            "msg": str(err.get("msg", "")),
        }
        if "input" in err:
            try:
                json.dumps(err["input"])
                clean_err["input"] = err["input"]
            except (TypeError, ValueError):
                clean_err["input"] = str(err["input"])
        errors.append(clean_err)

    return JSONResponse(
        status_code=400,
        content={
            "detail": "Invalid request data",
            "errors": errors,
            "request_id": _request_id(request),
        },
    )


async def database_exception_handler(request: Request, exc: SQLAlchemyError):
    logger.error(f"Database error: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error", "request_id": _request_id(request)},
    )


async def global_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled exception: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error", "request_id": _request_id(request)},
    )


def register_exception_handlers(app: FastAPI):
    app.add_exception_handler(TaskShareError, task_share_error_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(SQLAlchemyError, database_exception_handler)
    app.add_exception_handler(Exception, global_exception_handler)
