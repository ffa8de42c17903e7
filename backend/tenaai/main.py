from datetime import datetime, timezone
import asyncio
import logging
import time
from typing import Optional

from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.exc import SQLAlchemyError

from .db import SessionLocal, init_db
from .errors import register_error_handlers
from .logging_config import configure_logging
from .quiz_service import purge_abandoned_sessions
from .rate_limit import enforce_rate_limit
from .settings import settings
from .routers import auth
from .routers import analytics
from .routers import career
from .routers import daily_plan
from .routers import profile
from .routers import quiz
from .routers import roadmap
from .routers import speech
from .routers import tutor

logger = logging.getLogger("tenaai")

app = FastAPI(title="TenaAI API", version="1.0.0")
app.add_middleware(
	CORSMiddleware,
	allow_origins=settings.cors_origin_list,
	allow_credentials=True,
	allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
	allow_headers=["Content-Type", "Authorization"],
)
register_error_handlers(app)

app.include_router(auth.router)

rate_limited = [Depends(enforce_rate_limit)]
for api_router in (
	roadmap.router,
	tutor.router,
	career.router,
	profile.router,
	analytics.router,
	quiz.router,
	daily_plan.router,
	speech.stt_router,
	speech.tts_router,
):
	app.include_router(api_router, dependencies=rate_limited)

_cleanup_task: Optional[asyncio.Task] = None


@app.middleware("http")
async def log_requests(request: Request, call_next):
	started = time.perf_counter()
	response = await call_next(request)
	elapsed_ms = (time.perf_counter() - started) * 1000
	logger.info("%s %s %s %.1fms", request.method, request.url.path, response.status_code, elapsed_ms)
	return response


@app.get("/health")
def health():
	return {
		"success": True,
		"message": "TenaAI Backend is running",
		"timestamp": datetime.now(timezone.utc).isoformat(),
		"geminiConfigured": bool(settings.gemini_api_key),
		"ttsConfigured": bool(settings.google_tts_api_key),
	}


@app.get("/")
def root():
	return {
		"success": True,
		"message": "Welcome to TenaAI API",
		"version": app.version,
		"description": "AI-powered personalized learning and career navigation platform for Ethiopian youth",
		"documentation": "/docs",
	}


def _purge_once() -> None:
	db = SessionLocal()
	try:
		purge_abandoned_sessions(db, settings.quiz_session_ttl_days)
	except SQLAlchemyError:
		logger.exception("Quiz session cleanup failed")
	finally:
		db.close()


async def _cleanup_watcher():
	# Startup already ran one pass; repeat daily
	while True:
		await asyncio.sleep(24 * 60 * 60)
		_purge_once()


@app.on_event("startup")
async def startup_event():
	global _cleanup_task
	configure_logging(settings.log_level)
	init_db()
	_purge_once()
	if settings.quiz_session_ttl_days > 0:
		_cleanup_task = asyncio.create_task(_cleanup_watcher())
	logger.info("TenaAI backend started (model=%s)", settings.gemini_model)


@app.on_event("shutdown")
async def shutdown_event():
	global _cleanup_task
	if _cleanup_task is not None:
		_cleanup_task.cancel()
		try:
			await _cleanup_task
		except asyncio.CancelledError:
			pass
		_cleanup_task = None
	logger.info("TenaAI backend stopped")
