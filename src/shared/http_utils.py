"""
HTTP helpers shared by the Functions blueprints
"""
import json
from typing import Any, Dict, Optional, Type, TypeVar

import azure.functions as func
from pydantic import BaseModel, ValidationError

from src.shared.logging_utils import error as log_error, warning as log_warning
from src.specs.common.errors import (
    InvalidRequestError,
    PlanLimitationError,
    ResourceNotFoundError,
    SmartPortfolioError,
)
from src.specs.models.http import ErrorResponse

M = TypeVar("M", bound=BaseModel)


def json_response(body: Any, status_code: int = 200, headers: Optional[Dict[str, str]] = None) -> func.HttpResponse:
    payload = body.model_dump_json() if isinstance(body, BaseModel) else json.dumps(body, default=str)
    return func.HttpResponse(
        body=payload,
        mimetype="application/json",
        status_code=status_code,
        headers=headers,
    )


def error_response(
    message: str,
    status_code: int,
    *,
    code: Optional[str] = None,
    details: Optional[Dict[str, Any]] = None,
) -> func.HttpResponse:
    err = ErrorResponse(message=message, errorCode=code, details=details or None)
    return json_response(err, status_code)


def parse_json_body(req: func.HttpRequest, model: Type[M]) -> M:
    """Validate the request body against ``model``; bad input raises InvalidRequestError."""
    try:
        data = req.get_json()
    except ValueError as exc:
        raise InvalidRequestError("Invalid JSON body") from exc
    if not isinstance(data, dict):
        raise InvalidRequestError("Request body must be a JSON object")
    try:
        return model.model_validate(data)
    except ValidationError as exc:
        raise InvalidRequestError(
            f"Invalid request: {exc.error_count()} validation error(s)",
            details={"errors": exc.errors(include_url=False, include_context=False)},
        ) from exc


def response_for_error(run_trace_id: Optional[str], event: str, exc: Exception) -> func.HttpResponse:
    """Map an exception raised by a handler to its HTTP response."""
    if isinstance(exc, InvalidRequestError):
        log_warning(run_trace_id, f"{event}:invalid_request", error=str(exc))
        return error_response(str(exc), 400, code=exc.code, details=exc.details)
    if isinstance(exc, ResourceNotFoundError):
        log_warning(run_trace_id, f"{event}:not_found", error=str(exc))
        return error_response(str(exc), 404, code=exc.code)
    if isinstance(exc, PlanLimitationError):
        log_warning(run_trace_id, f"{event}:plan_limited", action=exc.action, planId=exc.plan_id)
        return json_response(exc.to_dict(), 403)
    if isinstance(exc, SmartPortfolioError):
        log_error(run_trace_id, f"{event}:failed", code=exc.code, error=str(exc))
        return error_response(str(exc), 500, code=exc.code)
    log_error(run_trace_id, f"{event}:failed", error=str(exc), errorType=type(exc).__name__)
    return error_response("Internal server error", 500, code="INTERNAL_ERROR")


__all__ = ["json_response", "error_response", "parse_json_body", "response_for_error"]
