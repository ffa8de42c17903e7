from __future__ import annotations
import logging
from typing import Any, Dict, List

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from .. import analytics, store
from ..db import get_db
from ..errors import NotFoundError
from ..gemini_client import GeminiClient, get_gemini_client
from ..models import DailyPlan
from ..quiz_service import assign_question_ids, today_utc
from ..schemas import ActivityDelta, CareerGoalRequest, CompleteTaskRequest, DailyTask
from .auth import User, get_current_user

router = APIRouter(prefix="/api/daily-plan", tags=["daily-plan"])

logger = logging.getLogger(__name__)

DEFAULT_CAREER_GOAL = "Software Development"


def _plan_quiz(db: Session, user_id: str, plan: DailyPlan) -> List[Dict[str, Any]]:
	if not plan.quiz_session_id:
		return []
	session = store.get_quiz_session(db, user_id, plan.quiz_session_id)
	if session is None:
		return []
	return [q.to_client() for q in store.session_questions(session)]


def _plan_out(db: Session, user_id: str, plan: DailyPlan) -> Dict[str, Any]:
	return {
		"date": plan.date,
		"tasks": plan.tasks,
		"quizSessionId": plan.quiz_session_id,
		"quizQuestions": _plan_quiz(db, user_id, plan),
		"streak": analytics.user_streak(db, user_id),
	}


def _with_task_ids(tasks: List[DailyTask]) -> List[Dict[str, Any]]:
	out = []
	seen: set[str] = set()
	for index, task in enumerate(tasks, start=1):
		tid = task.id.strip() if task.id else ""
		if not tid or tid in seen:
			tid = f"task_{index}"
		seen.add(tid)
		out.append(task.model_copy(update={"id": tid, "completed": False}).model_dump(by_alias=True))
	return out


@router.get("")
async def get_daily_plan(
	user: User = Depends(get_current_user),
	db: Session = Depends(get_db),
	client: GeminiClient = Depends(get_gemini_client),
):
	today = today_utc().isoformat()
	existing = store.get_daily_plan(db, user.username, today)
	if existing is not None:
		return {"success": True, "data": _plan_out(db, user.username, existing)}

	profile = store.get_profile(db, user.username)
	career_goal = (profile.career_goals or [DEFAULT_CAREER_GOAL])[0] if profile else DEFAULT_CAREER_GOAL
	completed_topics = (profile.completed_topics or []) if profile else []
	skill_level = (profile.skill_level if profile else None) or "beginner"
	language = (profile.language_preference if profile else None) or "en"

	logger.info("Generating daily plan for user %s, career: %s", user.username, career_goal)
	plan = await client.generate_daily_plan(career_goal, completed_topics, skill_level, language)

	session_id = None
	if plan.quiz_questions:
		# The plan's quiz is an ordinary quiz session, graded through /api/quiz/grade
		session = store.create_quiz_session(db, user.username, career_goal, "easy", assign_question_ids(plan.quiz_questions))
		session_id = session.id
	row = store.save_daily_plan(db, user.username, today, _with_task_ids(plan.tasks), session_id)
	db.commit()
	return {"success": True, "data": _plan_out(db, user.username, row)}


@router.post("/complete")
async def complete_task(req: CompleteTaskRequest, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
	plan_date = req.date or today_utc().isoformat()
	plan = store.get_daily_plan(db, user.username, plan_date)
	if plan is None:
		raise NotFoundError("Daily plan not found")
	tasks = [dict(t) for t in plan.tasks or []]
	task = next((t for t in tasks if t.get("id") == req.task_id), None)
	if task is None:
		raise NotFoundError("Task not found in daily plan")
	if not task.get("completed") and store.claim_task_completion(db, user.username, plan_date, req.task_id):
		task["completed"] = True
		plan.tasks = tasks
		# Commits the claim, the plan update and the activity together
		analytics.record_activity(
			db,
			user.username,
			ActivityDelta(tasks_completed=1, time_spent=int(task.get("estimatedTime") or 0)),
		)
		logger.info("User %s completed task %s of %s", user.username, req.task_id, plan_date)
	return {"success": True, "message": "Task marked as completed", "data": {"tasks": plan.tasks}}


@router.get("/history")
async def history(
	limit: int = Query(default=7, ge=1, le=60),
	user: User = Depends(get_current_user),
	db: Session = Depends(get_db),
):
	plans = store.list_daily_plans(db, user.username, limit)
	data = [
		{
			"date": p.date,
			"tasks": p.tasks,
			"quizSessionId": p.quiz_session_id,
			"tasksCompleted": sum(1 for t in p.tasks or [] if t.get("completed")),
			"totalTasks": len(p.tasks or []),
		}
		for p in plans
	]
	return {"success": True, "data": data}


@router.post("/career-goal")
async def set_career_goal(req: CareerGoalRequest, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
	store.upsert_profile(db, user.username, career_goals=[req.career_goal.strip()], skill_level=req.skill_level)
	db.commit()
	return {"success": True, "message": "Career goal updated"}
