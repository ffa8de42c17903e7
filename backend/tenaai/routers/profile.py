from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from .. import store
from ..db import get_db
from ..models import UserProfile
from ..schemas import ProfileSaveRequest
from .auth import User, get_current_user

router = APIRouter(prefix="/api/profile", tags=["profile"])


def _profile_out(user_id: str, row: UserProfile | None) -> dict:
	if row is None:
		return {"userId": user_id, "careerGoals": [], "completedTopics": []}
	return {
		"userId": user_id,
		"name": row.name,
		"languagePreference": row.language_preference,
		"careerGoals": row.career_goals or [],
		"skillLevel": row.skill_level,
		"completedTopics": row.completed_topics or [],
		"updatedAt": row.updated_at.isoformat() if row.updated_at else None,
	}


@router.post("/save")
async def save_profile(req: ProfileSaveRequest, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
	row = store.upsert_profile(db, user.username, **req.model_dump(exclude_none=True))
	db.commit()
	return {"success": True, "data": _profile_out(user.username, row), "message": "Profile saved"}


@router.get("/get")
async def get_profile(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
	return {"success": True, "data": _profile_out(user.username, store.get_profile(db, user.username))}
