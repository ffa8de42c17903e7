from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Iterable, List, Optional

from sqlalchemy.orm import Session

from . import store
from .errors import ModelError
from .gemini_client import GeminiClient
from .models import DailyActivity, QuizHistory, Roadmap
from .quiz_service import DEFAULT_CATEGORY, percentage_of, round_half_up, today_utc
from .schemas import ActivityDelta, AnalyticsData, CategoryProgress, QuizPerformance
from .settings import settings

logger = logging.getLogger(__name__)

DEFAULT_INSIGHT = "Keep up the great work! Continue practicing to improve your skills."
FALLBACK_INSIGHT = "Continue your learning journey to unlock personalized insights!"
STREAK_LOOKBACK_DAYS = 60


@dataclass
class Insights:
	confidence_score: int
	weaknesses: List[str]
	strengths: List[str]
	text: str


def calculate_streak(dates: Iterable[str], today: Optional[date] = None) -> int:
	"""Count consecutive active days ending today.

	A day without activity *today* does not break the streak; counting then
	starts from yesterday.
	"""
	active = set(dates)
	if not active:
		return 0
	day = today or today_utc()
	if day.isoformat() not in active:
		day -= timedelta(days=1)
	streak = 0
	while day.isoformat() in active:
		streak += 1
		day -= timedelta(days=1)
	return streak


def calculate_roadmap_progress(roadmaps: Iterable[Roadmap]) -> int:
	total = 0
	completed = 0
	for r in roadmaps:
		total += len(r.stages or [])
		completed += len(r.completed_stages or [])
	return percentage_of(completed, total) if total else 0


def process_quiz_performance(history: Iterable[QuizHistory]) -> List[QuizPerformance]:
	return [
		QuizPerformance(
			date=h.created_at.isoformat(),
			score=h.score or 0,
			total_questions=h.total_questions or 0,
			category=h.category or DEFAULT_CATEGORY,
		)
		for h in history
	]


def calculate_category_progress(history: Iterable[QuizHistory]) -> List[CategoryProgress]:
	stats: dict[str, dict[str, int]] = {}
	for h in history:
		s = stats.setdefault(h.category or DEFAULT_CATEGORY, {"total": 0, "correct": 0, "count": 0})
		s["total"] += h.total_questions or 0
		s["correct"] += h.score or 0
		s["count"] += 1
	return [
		CategoryProgress(
			category=category,
			# 10% per quiz taken in the category
			progress=min(100, s["count"] * 10),
			questions_answered=s["total"],
			accuracy=percentage_of(s["correct"], s["total"]) if s["total"] else 0,
		)
		for category, s in stats.items()
	]


def calculate_total_time(activities: Iterable[DailyActivity]) -> int:
	return sum(a.time_spent or 0 for a in activities)


async def generate_insights(
	client: Optional[GeminiClient],
	performance: List[QuizPerformance],
	categories: List[CategoryProgress],
) -> Insights:
	scored = [p for p in performance if p.total_questions > 0]
	avg = sum(p.score / p.total_questions * 100 for p in scored) / len(scored) if scored else 50.0
	ranked = sorted(categories, key=lambda c: c.accuracy, reverse=True)
	strengths = [c.category for c in ranked[:3]]
	weaknesses = [c.category for c in reversed(ranked[-3:])]
	if client is None:
		text = FALLBACK_INSIGHT
	else:
		try:
			text = await client.generate_insight(avg, strengths, weaknesses, len(performance)) or DEFAULT_INSIGHT
		except ModelError as err:
			logger.warning("Insight generation failed, using fallback text: %s", err)
			text = FALLBACK_INSIGHT
	return Insights(
		confidence_score=round_half_up(avg),
		weaknesses=[w for w in weaknesses if w != DEFAULT_CATEGORY],
		strengths=[s for s in strengths if s != DEFAULT_CATEGORY],
		text=text,
	)


def user_streak(db: Session, user_id: str, today: Optional[date] = None) -> int:
	rows = store.list_activities(db, user_id, STREAK_LOOKBACK_DAYS)
	return calculate_streak((r.date for r in rows), today)


async def get_user_analytics(
	db: Session, client: Optional[GeminiClient], user_id: str, today: Optional[date] = None
) -> AnalyticsData:
	roadmaps = store.list_roadmaps(db, user_id)
	history = store.list_quiz_history(db, user_id, settings.analytics_history_window)
	activities = store.list_activities(db, user_id, settings.analytics_activity_window)

	performance = process_quiz_performance(history)
	categories = calculate_category_progress(history)
	insights = await generate_insights(client, performance, categories)

	return AnalyticsData(
		user_id=user_id,
		learning_streak=user_streak(db, user_id, today),
		roadmap_progress=calculate_roadmap_progress(roadmaps),
		quiz_performance=performance,
		concept_categories=categories,
		total_learning_time=calculate_total_time(activities),
		skills_confidence_score=insights.confidence_score,
		weakness_areas=insights.weaknesses,
		strength_areas=insights.strengths,
		ai_insights=insights.text,
	)


def record_activity(db: Session, user_id: str, delta: ActivityDelta, today: Optional[date] = None) -> None:
	store.accumulate_activity(db, user_id, (today or today_utc()).isoformat(), delta)
	db.commit()
