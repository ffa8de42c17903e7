"""
Per-user persistence for roadmaps, quiz sessions, quiz history, daily activity,
daily plans and profiles, plus per-client request counters for rate limiting.

Functions here only stage changes on the given SQLAlchemy session; committing is
left to the caller so that a multi-write operation (grading) lands in a single
transaction.
"""
from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from .models import (
	DailyActivity,
	DailyPlan,
	DailyTaskCompletion,
	QuizHistory,
	QuizSession,
	RateLimitWindow,
	Roadmap,
	UserProfile,
	utcnow,
)
from .schemas import ActivityDelta, QuizGradeResult, QuizQuestion


SESSION_ACTIVE = "active"
SESSION_COMPLETED = "completed"

_ACTIVITY_COLUMNS = ("tasks_completed", "quizzes_taken", "concepts_learned", "time_spent")


# ---- quiz sessions ----------------------------------------------------

def create_quiz_session(db: Session, user_id: str, topic: str, difficulty: str, questions: List[QuizQuestion]) -> QuizSession:
	row = QuizSession(
		user_id=user_id,
		topic=topic,
		difficulty=difficulty,
		questions=[q.model_dump(by_alias=True, exclude_none=True) for q in questions],
		status=SESSION_ACTIVE,
	)
	db.add(row)
	db.flush()
	return row


def get_quiz_session(db: Session, user_id: str, session_id: str) -> Optional[QuizSession]:
	return db.execute(
		select(QuizSession).where(QuizSession.id == session_id, QuizSession.user_id == user_id)
	).scalar_one_or_none()


def session_questions(row: QuizSession) -> List[QuizQuestion]:
	return [QuizQuestion.model_validate(q) for q in row.questions or []]


def complete_quiz_session(db: Session, user_id: str, session_id: str, result: QuizGradeResult) -> bool:
	"""Flip an active session to completed and embed its result.

	Compare-and-swap on status: only the first grading of a session wins. Returns
	True when this call performed the transition.
	"""
	res = db.execute(
		update(QuizSession)
		.where(
			QuizSession.id == session_id,
			QuizSession.user_id == user_id,
			QuizSession.status == SESSION_ACTIVE,
		)
		.values(
			status=SESSION_COMPLETED,
			result=result.model_dump(by_alias=True),
			completed_at=utcnow(),
		)
		.execution_options(synchronize_session="fetch")
	)
	return (res.rowcount or 0) == 1


def purge_abandoned_sessions(db: Session, older_than: datetime) -> int:
	res = db.execute(
		delete(QuizSession).where(QuizSession.status == SESSION_ACTIVE, QuizSession.created_at < older_than)
	)
	return res.rowcount or 0


# ---- quiz history -----------------------------------------------------

def append_quiz_history(
	db: Session,
	user_id: str,
	result: QuizGradeResult,
	*,
	category: str,
	session_id: Optional[str] = None,
) -> QuizHistory:
	row = QuizHistory(
		user_id=user_id,
		session_id=session_id,
		score=result.score,
		total_questions=result.total_questions,
		percentage=result.percentage,
		category=category,
		feedback=result.overall_feedback,
	)
	db.add(row)
	db.flush()
	return row


def list_quiz_history(db: Session, user_id: str, limit: int) -> List[QuizHistory]:
	return list(
		db.execute(
			select(QuizHistory)
			.where(QuizHistory.user_id == user_id)
			.order_by(QuizHistory.created_at.desc(), QuizHistory.id.desc())
			.limit(limit)
		).scalars()
	)


# ---- daily activity ---------------------------------------------------

def _increment_activity(db: Session, user_id: str, day: str, delta: ActivityDelta) -> int:
	values = {col: getattr(DailyActivity, col) + getattr(delta, col) for col in _ACTIVITY_COLUMNS}
	values["updated_at"] = utcnow()
	res = db.execute(
		update(DailyActivity)
		.where(DailyActivity.user_id == user_id, DailyActivity.date == day)
		.values(**values)
		.execution_options(synchronize_session=False)
	)
	return res.rowcount or 0


def accumulate_activity(db: Session, user_id: str, day: str, delta: ActivityDelta) -> None:
	"""Add `delta` to the user's counters for `day`, creating the row on first use.

	The update is a single SQL increment, so concurrent writers never lose counts.
	A concurrent first insert for the same day is caught on the unique key and
	retried as an increment.
	"""
	if _increment_activity(db, user_id, day, delta):
		return
	try:
		with db.begin_nested():
			db.add(DailyActivity(user_id=user_id, date=day, **delta.model_dump()))
	except IntegrityError:
		_increment_activity(db, user_id, day, delta)


def list_activities(db: Session, user_id: str, limit: int) -> List[DailyActivity]:
	return list(
		db.execute(
			select(DailyActivity)
			.where(DailyActivity.user_id == user_id)
			.order_by(DailyActivity.date.desc())
			.limit(limit)
		).scalars()
	)


def get_activity(db: Session, user_id: str, day: str) -> Optional[DailyActivity]:
	return db.execute(
		select(DailyActivity).where(DailyActivity.user_id == user_id, DailyActivity.date == day)
	).scalar_one_or_none()


# ---- roadmaps ---------------------------------------------------------

def save_roadmap(db: Session, user_id: str, career_goal: str, stages: List[Dict[str, Any]]) -> Roadmap:
	row = Roadmap(user_id=user_id, career_goal=career_goal, stages=stages, completed_stages=[])
	db.add(row)
	db.flush()
	return row


def list_roadmaps(db: Session, user_id: str) -> List[Roadmap]:
	return list(
		db.execute(
			select(Roadmap).where(Roadmap.user_id == user_id).order_by(Roadmap.created_at.desc())
		).scalars()
	)


def get_roadmap(db: Session, user_id: str, roadmap_id: str) -> Optional[Roadmap]:
	return db.execute(
		select(Roadmap).where(Roadmap.id == roadmap_id, Roadmap.user_id == user_id)
	).scalar_one_or_none()


def delete_roadmap(db: Session, user_id: str, roadmap_id: str) -> bool:
	res = db.execute(delete(Roadmap).where(Roadmap.id == roadmap_id, Roadmap.user_id == user_id))
	return (res.rowcount or 0) > 0


def mark_stage_completed(row: Roadmap, index: int) -> None:
	done = set(row.completed_stages or [])
	done.add(index)
	# Reassign so the JSON column is flagged dirty
	row.completed_stages = sorted(done)


# ---- profiles ---------------------------------------------------------

def get_profile(db: Session, user_id: str) -> Optional[UserProfile]:
	return db.get(UserProfile, user_id)


def upsert_profile(db: Session, user_id: str, **fields: Any) -> UserProfile:
	row = db.get(UserProfile, user_id)
	if row is None:
		row = UserProfile(user_id=user_id, career_goals=[], completed_topics=[])
		db.add(row)
	for key, value in fields.items():
		if value is not None:
			setattr(row, key, value)
	db.flush()
	return row


# ---- daily plans ------------------------------------------------------

def get_daily_plan(db: Session, user_id: str, day: str) -> Optional[DailyPlan]:
	return db.execute(
		select(DailyPlan).where(DailyPlan.user_id == user_id, DailyPlan.date == day)
	).scalar_one_or_none()


def save_daily_plan(db: Session, user_id: str, day: str, tasks: List[Dict[str, Any]], quiz_session_id: Optional[str]) -> DailyPlan:
	row = DailyPlan(user_id=user_id, date=day, tasks=tasks, quiz_session_id=quiz_session_id)
	db.add(row)
	db.flush()
	return row


def list_daily_plans(db: Session, user_id: str, limit: int) -> List[DailyPlan]:
	return list(
		db.execute(
			select(DailyPlan).where(DailyPlan.user_id == user_id).order_by(DailyPlan.date.desc()).limit(limit)
		).scalars()
	)


def claim_task_completion(db: Session, user_id: str, day: str, task_id: str) -> bool:
	"""Record that `task_id` of the `day` plan is done. False when it already was.

	The unique key decides between concurrent requests: exactly one insert wins.
	"""
	try:
		with db.begin_nested():
			db.add(DailyTaskCompletion(user_id=user_id, date=day, task_id=task_id))
	except IntegrityError:
		return False
	return True


# ---- rate limiting ----------------------------------------------------

def _increment_window(db: Session, client_key: str, window_start: int) -> int:
	res = db.execute(
		update(RateLimitWindow)
		.where(RateLimitWindow.client_key == client_key, RateLimitWindow.window_start == window_start)
		.values(count=RateLimitWindow.count + 1)
		.execution_options(synchronize_session=False)
	)
	return res.rowcount or 0


def count_request(db: Session, client_key: str, window_start: int) -> int:
	"""Count one request for `client_key` in the window and return the window's total."""
	if not _increment_window(db, client_key, window_start):
		try:
			with db.begin_nested():
				db.add(RateLimitWindow(client_key=client_key, window_start=window_start, count=1))
		except IntegrityError:
			_increment_window(db, client_key, window_start)
		else:
			# First request of a new window; earlier windows of this client are finished
			db.execute(
				delete(RateLimitWindow)
				.where(RateLimitWindow.client_key == client_key, RateLimitWindow.window_start < window_start)
				.execution_options(synchronize_session=False)
			)
	return db.execute(
		select(RateLimitWindow.count).where(
			RateLimitWindow.client_key == client_key, RateLimitWindow.window_start == window_start
		)
	).scalar_one()
