from __future__ import annotations
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from .. import quiz_service
from ..db import get_db
from ..gemini_client import GeminiClient, get_gemini_client
from ..schemas import GenerateQuizRequest, GradeQuizRequest
from ..settings import settings
from .auth import User, get_current_user, get_optional_user


router = APIRouter(prefix="/api/quiz", tags=["quiz"])


@router.post("/generate")
async def generate(
	req: GenerateQuizRequest,
	user: Optional[User] = Depends(get_optional_user),
	db: Session = Depends(get_db),
	client: GeminiClient = Depends(get_gemini_client),
):
	quiz = await quiz_service.generate_quiz(
		db,
		client,
		user.username if user else None,
		topic=req.topic,
		difficulty=req.difficulty,
		count=req.count,
		language=req.language,
	)
	return {"success": True, "data": quiz.to_client()}


@router.post("/grade")
async def grade(
	req: GradeQuizRequest,
	user: Optional[User] = Depends(get_optional_user),
	db: Session = Depends(get_db),
	client: GeminiClient = Depends(get_gemini_client),
):
	result = await quiz_service.grade_quiz(
		db,
		client,
		user.username if user else None,
		answers=req.answers,
		session_id=req.session_id,
		questions=req.questions,
		language=req.language,
	)
	return {"success": True, "data": result.model_dump(by_alias=True)}


@router.get("/history")
async def history(
	limit: Optional[int] = Query(default=None, ge=1),
	user: User = Depends(get_current_user),
	db: Session = Depends(get_db),
):
	entries = quiz_service.get_history(db, user.username, limit or settings.quiz_history_default_limit)
	return {"success": True, "data": [e.model_dump(by_alias=True, mode="json") for e in entries]}
