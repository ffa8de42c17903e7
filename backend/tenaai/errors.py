from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from .logging_config import mask_payload

logger = logging.getLogger(__name__)


class AppError(Exception):
	status_code: int = 500
	code: str = "INTERNAL_ERROR"
	default_message: str = "Internal server error"

	def __init__(self, message: Optional[str] = None, *, details: Any = None, headers: Optional[Dict[str, str]] = None) -> None:
		self.message = message or self.default_message
		self.details = details
		self.headers = headers
		super().__init__(self.message)


class BadRequestError(AppError):
	status_code = 400
	code = "BAD_REQUEST"
	default_message = "Invalid request"


class NotFoundError(AppError):
	status_code = 404
	code = "NOT_FOUND"
	default_message = "Resource not found"


class RateLimitError(AppError):
	status_code = 429
	code = "RATE_LIMITED"
	default_message = "Too many requests, please try again later."


# Upstream model failures

class ModelError(AppError):
	status_code = 500
	code = "AI_ERROR"
	default_message = "AI service error"


class ModelTimeoutError(ModelError):
	status_code = 504
	code = "AI_TIMEOUT"
	default_message = "AI service timed out. Please try again."


class ModelQuotaError(ModelError):
	status_code = 429
	code = "AI_QUOTA_EXCEEDED"
	default_message = "AI service quota exceeded. Please try again later."


class ModelNotConfiguredError(ModelError):
	status_code = 503
	code = "AI_NOT_CONFIGURED"
	default_message = "AI service is not configured"


class ModelEmptyResponseError(ModelError):
	status_code = 500
	code = "AI_EMPTY_RESPONSE"
	default_message = "AI service returned no answer"


class ModelParseError(ModelError):
	status_code = 500
	code = "AI_MALFORMED_RESPONSE"
	default_message = "Failed to parse AI response"


class ModelSchemaError(ModelParseError):
	code = "AI_INVALID_SCHEMA"
	default_message = "AI response did not match the expected structure"


# Speech services

class SpeechError(AppError):
	status_code = 500
	code = "SPEECH_ERROR"
	default_message = "Speech service error"


class SpeechNotConfiguredError(SpeechError):
	status_code = 503
	code = "SPEECH_NOT_CONFIGURED"
	default_message = "Speech service not available"


def _envelope(error: str, *, code: Optional[str] = None, message: Optional[str] = None, details: Any = None) -> Dict[str, Any]:
	body: Dict[str, Any] = {"success": False, "error": error}
	if code:
		body["code"] = code
	if message:
		body["message"] = message
	if details is not None:
		body["details"] = details
	return body


def _validation_details(exc: RequestValidationError) -> List[Dict[str, str]]:
	details = []
	for err in exc.errors():
		# Drop the leading "body"/"query" location so fields read like the payload keys
		loc = [str(p) for p in err.get("loc", ()) if p not in ("body", "query", "path")]
		field = ".".join(loc)
		details.append({
			"field": field,
			"message": err.get("msg", "Invalid value"),
			"code": f"{loc[0] if loc else 'field'}_missing_or_invalid",
		})
	return details


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
	if exc.status_code >= 500:
		logger.error("%s %s failed: %s (%s)", request.method, request.url.path, exc.message, exc.code)
	else:
		logger.info("%s %s rejected: %s (%s)", request.method, request.url.path, exc.message, exc.code)
	return JSONResponse(status_code=exc.status_code, content=_envelope(exc.message, code=exc.code, details=exc.details), headers=exc.headers)


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
	detail = exc.detail if isinstance(exc.detail, str) else "Request failed"
	return JSONResponse(status_code=exc.status_code, content=_envelope(detail), headers=getattr(exc, "headers", None))


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
	details = _validation_details(exc)
	body = exc.body if isinstance(exc.body, dict) else {}
	logger.info("Validation failed for %s %s: %s", request.method, request.url.path, mask_payload(body))
	message = details[0]["message"] if details else "Invalid request data"
	return JSONResponse(status_code=400, content=_envelope("Validation failed", code="VALIDATION_ERROR", message=message, details=details))


async def database_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
	logger.error("Database error on %s %s", request.method, request.url.path, exc_info=exc)
	return JSONResponse(status_code=500, content=_envelope("Internal server error"))


def register_error_handlers(app: FastAPI) -> None:
	app.add_exception_handler(AppError, app_error_handler)
	app.add_exception_handler(StarletteHTTPException, http_exception_handler)
	app.add_exception_handler(RequestValidationError, validation_error_handler)
	app.add_exception_handler(SQLAlchemyError, database_error_handler)
