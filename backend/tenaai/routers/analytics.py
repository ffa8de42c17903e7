from __future__ import annotations
import logging
from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from .. import analytics
from ..db import get_db
from ..gemini_client import GeminiClient, get_optional_gemini_client
from ..schemas import ActivityDelta
from .auth import User, get_current_user

router = APIRouter(prefix="/api/analytics", tags=["analytics"])

logger = logging.getLogger(__name__)


@router.get("")
async def get_analytics(
	user: User = Depends(get_current_user),
	db: Session = Depends(get_db),
	client: Optional[GeminiClient] = Depends(get_optional_gemini_client),
):
	logger.info("Fetching analytics for user: %s", user.username)
	data = await analytics.get_user_analytics(db, client, user.username)
	return {"success": True, "data": data.model_dump(by_alias=True)}


@router.get("/streak")
async def get_streak(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
	return {"success": True, "data": {"streak": analytics.user_streak(db, user.username)}}


@router.post("/activity")
async def record_activity(delta: ActivityDelta, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
	analytics.record_activity(db, user.username, delta)
	return {"success": True, "message": "Activity recorded"}
