from __future__ import annotations
import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from .. import store
from ..db import get_db
from ..errors import BadRequestError, NotFoundError
from ..gemini_client import GeminiClient, get_gemini_client
from ..models import Roadmap
from ..quiz_service import percentage_of
from ..schemas import RoadmapRequest
from .auth import User, get_current_user, get_optional_user

router = APIRouter(prefix="/api/roadmap", tags=["roadmap"])

logger = logging.getLogger(__name__)


def _roadmap_out(row: Roadmap) -> Dict[str, Any]:
	stages = row.stages or []
	completed = row.completed_stages or []
	return {
		"id": row.id,
		"careerGoal": row.career_goal,
		"stages": stages,
		"completedStages": completed,
		"progress": percentage_of(len(completed), len(stages)) if stages else 0,
		"createdAt": row.created_at.isoformat(),
	}


@router.post("")
async def generate(
	req: RoadmapRequest,
	user: Optional[User] = Depends(get_optional_user),
	db: Session = Depends(get_db),
	client: GeminiClient = Depends(get_gemini_client),
):
	career_goal = req.career_goal.strip()
	if len(career_goal) < 3:
		raise BadRequestError("Career goal is required and must be at least 3 characters")
	logger.info("Generating roadmap for career: %s", career_goal)
	stages = await client.generate_roadmap(career_goal, req.current_skill_level or "beginner")
	stage_dicts = [s.model_dump(by_alias=True) for s in stages]

	data: Dict[str, Any] = {"roadmap": stage_dicts}
	if user:
		saved = store.save_roadmap(db, user.username, career_goal, stage_dicts)
		store.upsert_profile(
			db,
			user.username,
			career_goals=[career_goal],
			language_preference=req.language or req.preferred_language,
		)
		db.commit()
		data["saved"] = _roadmap_out(saved)
	return {"success": True, "data": data, "message": "Career roadmap generated successfully"}


@router.get("")
async def list_roadmaps(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
	return {"success": True, "data": [_roadmap_out(r) for r in store.list_roadmaps(db, user.username)]}


@router.get("/{roadmap_id}")
async def get_roadmap(roadmap_id: str, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
	row = store.get_roadmap(db, user.username, roadmap_id)
	if row is None:
		raise NotFoundError("Roadmap not found")
	return {"success": True, "data": _roadmap_out(row)}


@router.delete("/{roadmap_id}")
async def delete_roadmap(roadmap_id: str, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
	if not store.delete_roadmap(db, user.username, roadmap_id):
		raise NotFoundError("Roadmap not found")
	db.commit()
	return {"success": True, "message": "Roadmap deleted successfully"}


@router.post("/{roadmap_id}/stages/{stage_index}/complete")
async def complete_stage(roadmap_id: str, stage_index: int, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
	row = store.get_roadmap(db, user.username, roadmap_id)
	if row is None:
		raise NotFoundError("Roadmap not found")
	if stage_index < 0 or stage_index >= len(row.stages or []):
		raise BadRequestError("Stage index out of range")
	store.mark_stage_completed(row, stage_index)
	db.commit()
	return {"success": True, "data": _roadmap_out(row)}
