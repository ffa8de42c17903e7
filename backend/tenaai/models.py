from __future__ import annotations
import uuid
from datetime import datetime, timezone
from sqlalchemy import Column, String, DateTime, Integer, Text, JSON, UniqueConstraint, Index
from .db import Base


def utcnow() -> datetime:
	# Naive UTC; SQLite drops tzinfo on the way back anyway
	return datetime.now(timezone.utc).replace(tzinfo=None)


def new_id() -> str:
	return uuid.uuid4().hex


class AuthUser(Base):
	__tablename__ = "auth_users"
	# Primary key is username; it is also the user id every per-user table refers to
	username = Column(String(128), primary_key=True, index=True)
	password_hash = Column(String(256), nullable=False)
	email = Column(String(256), nullable=True)
	created_at = Column(DateTime, default=utcnow, nullable=False)
	updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)


class AuthSession(Base):
	__tablename__ = "auth_sessions"
	# jti of the issued token; deleting the row revokes the token
	session_id = Column(String(64), primary_key=True)
	username = Column(String(128), nullable=False, index=True)
	created_at = Column(DateTime, default=utcnow, nullable=False)
	last_activity_at = Column(DateTime, default=utcnow, nullable=False)


class UserProfile(Base):
	__tablename__ = "user_profiles"
	user_id = Column(String(128), primary_key=True)
	name = Column(String(100), nullable=True)
	language_preference = Column(String(8), nullable=True)
	career_goals = Column(JSON, nullable=False, default=list)
	skill_level = Column(String(50), nullable=True)
	completed_topics = Column(JSON, nullable=False, default=list)
	created_at = Column(DateTime, default=utcnow, nullable=False)
	updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)


class Roadmap(Base):
	__tablename__ = "roadmaps"
	id = Column(String(32), primary_key=True, default=new_id)
	user_id = Column(String(128), nullable=False, index=True)
	career_goal = Column(String(200), nullable=False)
	stages = Column(JSON, nullable=False, default=list)
	# Indexes into `stages`
	completed_stages = Column(JSON, nullable=False, default=list)
	created_at = Column(DateTime, default=utcnow, nullable=False)
	updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)


class QuizSession(Base):
	__tablename__ = "quiz_sessions"
	id = Column(String(32), primary_key=True, default=new_id)
	user_id = Column(String(128), nullable=False, index=True)
	topic = Column(String(200), nullable=False)
	difficulty = Column(String(16), nullable=False)
	# Full questions including correct answers; never sent to clients as-is
	questions = Column(JSON, nullable=False)
	status = Column(String(16), nullable=False, default="active")
	result = Column(JSON, nullable=True)
	created_at = Column(DateTime, default=utcnow, nullable=False)
	completed_at = Column(DateTime, nullable=True)

	__table_args__ = (Index("ix_quiz_sessions_status_created", "status", "created_at"),)


class QuizHistory(Base):
	__tablename__ = "quiz_history"
	id = Column(String(32), primary_key=True, default=new_id)
	user_id = Column(String(128), nullable=False)
	session_id = Column(String(32), nullable=True)
	score = Column(Integer, nullable=False)
	total_questions = Column(Integer, nullable=False)
	percentage = Column(Integer, nullable=False)
	category = Column(String(200), nullable=False, default="General")
	feedback = Column(Text, nullable=True)
	created_at = Column(DateTime, default=utcnow, nullable=False)

	__table_args__ = (Index("ix_quiz_history_user_created", "user_id", "created_at"),)


class DailyActivity(Base):
	__tablename__ = "daily_activities"
	id = Column(Integer, primary_key=True, autoincrement=True)
	user_id = Column(String(128), nullable=False)
	# ISO calendar date (YYYY-MM-DD, UTC)
	date = Column(String(10), nullable=False)
	tasks_completed = Column(Integer, nullable=False, default=0)
	quizzes_taken = Column(Integer, nullable=False, default=0)
	concepts_learned = Column(Integer, nullable=False, default=0)
	time_spent = Column(Integer, nullable=False, default=0)
	created_at = Column(DateTime, default=utcnow, nullable=False)
	updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

	__table_args__ = (UniqueConstraint("user_id", "date", name="uq_daily_activity_user_date"),)


class DailyPlan(Base):
	__tablename__ = "daily_plans"
	id = Column(Integer, primary_key=True, autoincrement=True)
	user_id = Column(String(128), nullable=False)
	date = Column(String(10), nullable=False)
	tasks = Column(JSON, nullable=False, default=list)
	quiz_session_id = Column(String(32), nullable=True)
	created_at = Column(DateTime, default=utcnow, nullable=False)

	__table_args__ = (UniqueConstraint("user_id", "date", name="uq_daily_plan_user_date"),)


class DailyTaskCompletion(Base):
	__tablename__ = "daily_task_completions"
	# One row per completed task; the unique key makes completion count at most once
	id = Column(Integer, primary_key=True, autoincrement=True)
	user_id = Column(String(128), nullable=False)
	date = Column(String(10), nullable=False)
	task_id = Column(String(64), nullable=False)
	created_at = Column(DateTime, default=utcnow, nullable=False)

	__table_args__ = (UniqueConstraint("user_id", "date", "task_id", name="uq_task_completion"),)


class RateLimitWindow(Base):
	__tablename__ = "rate_limit_windows"
	id = Column(Integer, primary_key=True, autoincrement=True)
	client_key = Column(String(128), nullable=False)
	# Epoch seconds at the start of the fixed window
	window_start = Column(Integer, nullable=False)
	count = Column(Integer, nullable=False, default=0)

	__table_args__ = (
		UniqueConstraint("client_key", "window_start", name="uq_rate_limit_window"),
		Index("ix_rate_limit_client", "client_key"),
	)
