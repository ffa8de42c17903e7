"""
Fixed-window request limit per client address for the /api routes.

Counters live in the database so every worker process shares them.
"""
from __future__ import annotations

import logging
import time

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from . import store
from .db import get_db
from .errors import RateLimitError
from .settings import settings

logger = logging.getLogger(__name__)


def client_key(request: Request) -> str:
	return request.client.host if request.client else "unknown"


def enforce_rate_limit(request: Request, db: Session = Depends(get_db)) -> None:
	if not settings.rate_limit_enabled or settings.rate_limit_max_requests <= 0:
		return
	window = max(1, settings.rate_limit_window_seconds)
	now = int(time.time())
	window_start = now - now % window
	key = client_key(request)
	count = store.count_request(db, key, window_start)
	db.commit()
	if count > settings.rate_limit_max_requests:
		logger.warning("Rate limit exceeded for %s (%d requests in window)", key, count)
		raise RateLimitError(headers={"Retry-After": str(window_start + window - now)})
