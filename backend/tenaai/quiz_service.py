"""
Quiz lifecycle: generate -> store session -> (client collects answers) -> grade
-> store history -> update activity.

Question authorship and correctness judgement are both delegated to the model.
This module owns id assignment, redaction, question-source resolution, merging
the model's judgements into a consistent score, and the persistence that follows
a successful grading. A failed model call never leaves partial state behind.
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Union

from sqlalchemy.orm import Session

from . import store
from .errors import BadRequestError, NotFoundError
from .gemini_client import GeminiClient
from .schemas import (
	NO_ANSWER,
	ActivityDelta,
	ModelGradeReport,
	GradeQuestionInput,
	QuestionFeedback,
	QuizGradeResult,
	QuizHistoryEntry,
	QuizQuestion,
)

logger = logging.getLogger(__name__)

DEFAULT_CATEGORY = "General"
MAX_HISTORY_LIMIT = 100


@dataclass
class GeneratedQuiz:
	questions: List[QuizQuestion]
	session_id: Optional[str] = None

	def to_client(self) -> Dict[str, Any]:
		data: Dict[str, Any] = {"questions": [q.to_client() for q in self.questions]}
		if self.session_id:
			data["sessionId"] = self.session_id
		return data


@dataclass(frozen=True)
class SessionBacked:
	session_id: str


@dataclass(frozen=True)
class Inline:
	questions: List[QuizQuestion] = field(default_factory=list)


QuestionSource = Union[SessionBacked, Inline]


@dataclass
class ResolvedQuiz:
	questions: List[QuizQuestion]
	session_id: Optional[str] = None


def today_utc() -> date:
	return datetime.now(timezone.utc).date()


def round_half_up(value: float) -> int:
	# 62.5 -> 63 and 12.5 -> 13; the builtin round() would give 62 and 12
	return int(math.floor(value + 0.5))


def percentage_of(score: int, total: int) -> int:
	return round_half_up(score * 100 / total)


def assign_question_ids(questions: List[QuizQuestion]) -> List[QuizQuestion]:
	"""Give every question an id that is unique within the batch."""
	seen: set[str] = set()
	out: List[QuizQuestion] = []
	for index, q in enumerate(questions, start=1):
		qid = (q.id or "").strip()
		if not qid or qid in seen:
			qid = f"q_{index}"
			n = index
			while qid in seen:
				n += 1
				qid = f"q_{n}"
		seen.add(qid)
		out.append(q if qid == q.id else q.model_copy(update={"id": qid}))
	return out


async def generate_quiz(
	db: Session,
	client: GeminiClient,
	user_id: Optional[str],
	*,
	topic: str,
	difficulty: str,
	count: int,
	language: str = "en",
) -> GeneratedQuiz:
	logger.info("Generating %d %s quiz questions about %r", count, difficulty, topic)
	questions = assign_question_ids(await client.generate_quiz(topic, difficulty, count, language))
	if not user_id:
		return GeneratedQuiz(questions=questions)
	row = store.create_quiz_session(db, user_id, topic, difficulty, questions)
	db.commit()
	logger.info("Stored quiz session %s for %s (%d questions)", row.id, user_id, len(questions))
	return GeneratedQuiz(questions=questions, session_id=row.id)


def question_source(session_id: Optional[str], questions: Optional[List[QuizQuestion]], user_id: Optional[str]) -> QuestionSource:
	if session_id and user_id:
		return SessionBacked(session_id)
	if questions:
		return Inline(list(questions))
	if session_id:
		raise BadRequestError("Sign in to grade a stored quiz session, or include the questions")
	raise BadRequestError("Either sessionId or questions is required")


def resolve_questions(
	db: Session,
	user_id: Optional[str],
	session_id: Optional[str],
	inline_questions: Optional[List[Union[QuizQuestion, GradeQuestionInput]]],
) -> ResolvedQuiz:
	"""Turn the grading request into one canonical question list."""
	if inline_questions:
		inline_questions = [q.to_question() if isinstance(q, GradeQuestionInput) else q for q in inline_questions]
	source = question_source(session_id, inline_questions, user_id)
	if isinstance(source, SessionBacked):
		row = store.get_quiz_session(db, user_id, source.session_id)
		if row is not None:
			resolved = ResolvedQuiz(questions=store.session_questions(row), session_id=row.id)
		elif inline_questions:
			logger.info("Quiz session %s not found for %s, grading supplied questions", source.session_id, user_id)
			resolved = ResolvedQuiz(questions=assign_question_ids(list(inline_questions)))
		else:
			raise NotFoundError("Quiz session not found")
	else:
		resolved = ResolvedQuiz(questions=assign_question_ids(source.questions))
	if not resolved.questions:
		raise BadRequestError("Quiz has no questions to grade")
	return resolved


def grading_items(questions: List[QuizQuestion], answers: Dict[str, str]) -> List[Dict[str, Any]]:
	items = []
	for q in questions:
		answer = (answers.get(q.id) or "").strip()
		items.append({
			"questionId": q.id,
			"question": q.question,
			"correctAnswer": q.correct_answer,
			"userAnswer": answer or NO_ANSWER,
			"type": q.type,
		})
	return items


def merge_grade_report(questions: List[QuizQuestion], report: ModelGradeReport) -> QuizGradeResult:
	"""Align the model's judgements with our questions and derive the score from them.

	Judgements are matched by question id first, then by position. A question the
	model said nothing about counts as incorrect.
	"""
	known_ids = {q.id for q in questions}
	by_id = {j.question_id: j for j in report.feedback if j.question_id in known_ids}
	feedback: List[QuestionFeedback] = []
	for index, q in enumerate(questions):
		judgement = by_id.get(q.id)
		if judgement is None and index < len(report.feedback):
			positional = report.feedback[index]
			# Positional fallback only for entries not already claimed by another id
			if positional.question_id not in known_ids:
				judgement = positional
		if judgement is None:
			feedback.append(QuestionFeedback(question_id=q.id, is_correct=False, feedback=""))
		else:
			feedback.append(QuestionFeedback(question_id=q.id, is_correct=judgement.is_correct, feedback=judgement.feedback))
	score = sum(1 for f in feedback if f.is_correct)
	total = len(questions)
	return QuizGradeResult(
		score=score,
		total_questions=total,
		percentage=percentage_of(score, total),
		feedback=feedback,
		overall_feedback=report.overall_feedback,
		areas_to_improve=report.areas_to_improve,
		strengths=report.strengths,
	)


async def grade_quiz(
	db: Session,
	client: GeminiClient,
	user_id: Optional[str],
	*,
	answers: Dict[str, str],
	session_id: Optional[str] = None,
	questions: Optional[List[Union[QuizQuestion, GradeQuestionInput]]] = None,
	language: str = "en",
	today: Optional[date] = None,
) -> QuizGradeResult:
	resolved = resolve_questions(db, user_id, session_id, questions)
	logger.info("Grading quiz with %d answers for %d questions", len(answers), len(resolved.questions))

	report = await client.grade_quiz(grading_items(resolved.questions, answers), language)
	result = merge_grade_report(resolved.questions, report)

	if user_id:
		category = resolved.questions[0].category or DEFAULT_CATEGORY
		store.append_quiz_history(db, user_id, result, category=category, session_id=resolved.session_id)
		# conceptsLearned doubles as "correct answers" for the activity dashboard
		store.accumulate_activity(
			db, user_id, (today or today_utc()).isoformat(),
			ActivityDelta(quizzes_taken=1, concepts_learned=result.score),
		)
		if resolved.session_id:
			if not store.complete_quiz_session(db, user_id, resolved.session_id, result):
				logger.info("Quiz session %s was already completed; result kept", resolved.session_id)
		db.commit()
	return result


def history_entry(row: Any) -> QuizHistoryEntry:
	return QuizHistoryEntry(
		id=row.id,
		session_id=row.session_id,
		score=row.score,
		total_questions=row.total_questions,
		percentage=row.percentage,
		category=row.category,
		feedback=row.feedback,
		created_at=row.created_at,
	)


def get_history(db: Session, user_id: str, limit: int = 20) -> List[QuizHistoryEntry]:
	limit = max(1, min(limit, MAX_HISTORY_LIMIT))
	return [history_entry(row) for row in store.list_quiz_history(db, user_id, limit)]


def purge_abandoned_sessions(db: Session, ttl_days: int) -> int:
	"""Delete ungraded sessions older than `ttl_days`. Completed sessions are kept."""
	if ttl_days <= 0:
		return 0
	threshold = datetime.now(timezone.utc).replace(tzinfo=None) - timedelta(days=ttl_days)
	removed = store.purge_abandoned_sessions(db, threshold)
	db.commit()
	if removed:
		logger.info("Purged %d abandoned quiz sessions", removed)
	return removed
