"""Logging setup for the TenaAI API.

Provides:
- `configure_logging` to send every logger to stdout with one line per record
- `mask_payload` to hide credential-like fields before a request body is logged
"""

from __future__ import annotations

import logging
import sys
from typing import Any, Dict

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

_SENSITIVE_FIELDS = ("password", "token", "secret", "apikey", "key")


def configure_logging(level: int | str = "INFO") -> logging.Logger:
	"""Configure root logging to stdout.

	Args:
		level: Logging level as int or string (e.g., logging.INFO or "INFO").

	Returns:
		The "tenaai" logger.
	"""
	handler = logging.StreamHandler(sys.stdout)
	handler.setFormatter(logging.Formatter(LOG_FORMAT))
	logging.basicConfig(level=level, handlers=[handler], force=True)
	logging.getLogger("passlib").setLevel(logging.ERROR)
	logging.getLogger("httpx").setLevel(logging.WARNING)
	return logging.getLogger("tenaai")


def mask_payload(payload: Dict[str, Any]) -> Dict[str, Any]:
	masked = dict(payload)
	for key in masked:
		if any(f in key.lower() for f in _SENSITIVE_FIELDS):
			masked[key] = "[MASKED]"
	return masked
