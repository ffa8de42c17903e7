from datetime import date, datetime, timedelta

import pytest
from sqlalchemy import func, select

from tenaai import quiz_service, store
from tenaai.errors import BadRequestError, ModelQuotaError, ModelTimeoutError, NotFoundError
from tenaai.models import DailyActivity, QuizHistory, QuizSession, RateLimitWindow
from tenaai.schemas import NO_ANSWER, ActivityDelta, GradeQuestionInput, ModelGradeReport, QuizGradeResult, QuizQuestion

from conftest import grade_report, sample_questions

TODAY = date(2024, 3, 14)


def _questions(raw=None):
	return [QuizQuestion.model_validate(q) for q in (raw or sample_questions())]


def test_percentage_rounds_half_up():
	assert quiz_service.percentage_of(1, 8) == 13
	assert quiz_service.percentage_of(2, 8) == 25
	assert quiz_service.percentage_of(2, 3) == 67
	assert quiz_service.percentage_of(0, 5) == 0
	assert quiz_service.percentage_of(5, 5) == 100


def test_assign_question_ids_fills_missing_and_duplicates():
	raw = sample_questions()
	raw[0]["id"] = ""
	raw[1]["id"] = "q_3"
	raw[2]["id"] = "q_3"
	ids = [q.id for q in quiz_service.assign_question_ids(_questions(raw))]
	assert ids[0] == "q_1"
	assert len(set(ids)) == 3


def test_redacted_question_has_no_answer_or_empty_keys():
	raw = sample_questions()
	raw[1]["options"] = ["5", "6"]
	raw[0]["difficulty"] = None
	questions = _questions(raw)
	mc, short = questions[0].to_client(), questions[1].to_client()
	assert "correctAnswer" not in mc and "correctAnswer" not in short
	assert "difficulty" not in mc
	assert mc["options"]
	assert "options" not in short


@pytest.mark.asyncio
async def test_generate_quiz_anonymous_stores_nothing(db, gemini, model):
	gemini.reply_json(sample_questions())

	quiz = await quiz_service.generate_quiz(db, model, None, topic="Recursion", difficulty="easy", count=3)

	payload = quiz.to_client()
	assert "sessionId" not in payload
	assert len(payload["questions"]) == 3
	assert all("correctAnswer" not in q for q in payload["questions"])
	assert db.scalar(select(func.count()).select_from(QuizSession)) == 0


@pytest.mark.asyncio
async def test_generate_quiz_authenticated_stores_full_session(db, gemini, model):
	gemini.reply_json(sample_questions())

	quiz = await quiz_service.generate_quiz(db, model, "abebe", topic="Recursion", difficulty="easy", count=3)

	row = store.get_quiz_session(db, "abebe", quiz.session_id)
	assert row.status == store.SESSION_ACTIVE
	assert row.topic == "Recursion"
	assert [q["correctAnswer"] for q in row.questions] == ["The condition that stops recursion", "6", "Stack"]
	assert store.get_quiz_session(db, "someone-else", quiz.session_id) is None


@pytest.mark.asyncio
async def test_generate_quiz_failure_stores_nothing(db, gemini, model):
	gemini.reply_status(429)
	with pytest.raises(ModelQuotaError):
		await quiz_service.generate_quiz(db, model, "abebe", topic="Recursion", difficulty="easy", count=3)
	assert db.scalar(select(func.count()).select_from(QuizSession)) == 0


def test_question_source_requires_something():
	with pytest.raises(BadRequestError):
		quiz_service.question_source(None, None, "abebe")
	with pytest.raises(BadRequestError):
		quiz_service.question_source("abc", None, None)
	assert isinstance(quiz_service.question_source("abc", None, "abebe"), quiz_service.SessionBacked)
	assert isinstance(quiz_service.question_source("abc", _questions(), None), quiz_service.Inline)


def test_unknown_session_without_questions_is_not_found(db):
	with pytest.raises(NotFoundError):
		quiz_service.resolve_questions(db, "abebe", "missing", None)


def test_unknown_session_falls_back_to_inline_questions(db):
	resolved = quiz_service.resolve_questions(db, "abebe", "missing", _questions())
	assert resolved.session_id is None
	assert len(resolved.questions) == 3


def test_inline_grading_questions_resolve_without_explanation(db):
	supplied = [GradeQuestionInput.model_validate({"id": "a", "question": "Base case?", "type": "mcq", "options": ["Stop", "Go"], "correctAnswer": "Stop"})]
	resolved = quiz_service.resolve_questions(db, None, None, supplied)
	assert [(q.id, q.type, q.explanation) for q in resolved.questions] == [("a", "multiple_choice", "")]


def test_grading_items_mark_missing_answers():
	items = quiz_service.grading_items(_questions(), {"q_2": "  ", "q_3": "Stack"})
	assert [i["userAnswer"] for i in items] == [NO_ANSWER, NO_ANSWER, "Stack"]
	assert items[0]["correctAnswer"] == "The condition that stops recursion"


def test_merge_uses_ids_then_position_and_recomputes_score():
	report = ModelGradeReport.model_validate({
		"feedback": [
			{"questionId": "q_3", "isCorrect": True},
			{"questionId": "1", "isCorrect": True},
		],
	})
	result = quiz_service.merge_grade_report(_questions(), report)
	assert [f.question_id for f in result.feedback] == ["q_1", "q_2", "q_3"]
	# q_1 has no id match; position 0 is claimed by q_3, so it counts as incorrect
	assert [f.is_correct for f in result.feedback] == [False, True, True]
	assert (result.score, result.total_questions, result.percentage) == (2, 3, 67)


@pytest.mark.asyncio
async def test_grade_inline_single_question(db, gemini, model):
	question = QuizQuestion(id="q1", question="2+2?", type="short_answer", correct_answer="4", explanation="Basic addition.")
	gemini.reply_json(grade_report(True, ids=["q1"]))

	result = await quiz_service.grade_quiz(db, model, None, answers={"q1": "4"}, questions=[question])

	assert (result.score, result.total_questions, result.percentage) == (1, 1, 100)
	assert db.scalar(select(func.count()).select_from(QuizHistory)) == 0


@pytest.mark.asyncio
async def test_grade_with_empty_answers_still_grades(db, gemini, model):
	gemini.reply_json(grade_report(False, False, False))

	result = await quiz_service.grade_quiz(db, model, None, answers={}, questions=_questions())

	assert result.score == 0 and result.total_questions == 3
	assert gemini.prompts[0].count(NO_ANSWER) >= 3


@pytest.mark.asyncio
async def test_grade_session_persists_history_activity_and_completion(db, gemini, model):
	gemini.reply_json(sample_questions())
	gemini.reply_json(grade_report(True, True, False))
	quiz = await quiz_service.generate_quiz(db, model, "abebe", topic="Recursion", difficulty="easy", count=3)

	result = await quiz_service.grade_quiz(
		db, model, "abebe", answers={"q_1": "The condition that stops recursion", "q_2": "6"},
		session_id=quiz.session_id, today=TODAY,
	)

	assert (result.score, result.percentage) == (2, 67)
	session = store.get_quiz_session(db, "abebe", quiz.session_id)
	db.refresh(session)
	assert session.status == store.SESSION_COMPLETED
	assert session.result["score"] == 2
	history = store.list_quiz_history(db, "abebe", 10)
	assert len(history) == 1
	assert history[0].category == "Recursion"
	assert history[0].session_id == quiz.session_id
	activity = store.get_activity(db, "abebe", TODAY.isoformat())
	assert (activity.quizzes_taken, activity.concepts_learned) == (1, 2)


@pytest.mark.asyncio
async def test_failed_grading_leaves_session_active(db, gemini, model):
	gemini.reply_json(sample_questions())
	gemini.reply_timeout()
	quiz = await quiz_service.generate_quiz(db, model, "abebe", topic="Recursion", difficulty="easy", count=3)

	with pytest.raises(ModelTimeoutError):
		await quiz_service.grade_quiz(db, model, "abebe", answers={"q_1": "A loop"}, session_id=quiz.session_id, today=TODAY)

	db.rollback()
	assert store.get_quiz_session(db, "abebe", quiz.session_id).status == store.SESSION_ACTIVE
	assert store.list_quiz_history(db, "abebe", 10) == []
	assert store.get_activity(db, "abebe", TODAY.isoformat()) is None


@pytest.mark.asyncio
async def test_regrading_keeps_first_result(db, gemini, model):
	gemini.reply_json(sample_questions())
	gemini.reply_json(grade_report(True, True, True))
	gemini.reply_json(grade_report(False, False, False))
	quiz = await quiz_service.generate_quiz(db, model, "abebe", topic="Recursion", difficulty="easy", count=3)

	await quiz_service.grade_quiz(db, model, "abebe", answers={}, session_id=quiz.session_id, today=TODAY)
	await quiz_service.grade_quiz(db, model, "abebe", answers={}, session_id=quiz.session_id, today=TODAY)

	session = store.get_quiz_session(db, "abebe", quiz.session_id)
	db.refresh(session)
	assert session.result["score"] == 3
	assert len(store.list_quiz_history(db, "abebe", 10)) == 2
	assert store.get_activity(db, "abebe", TODAY.isoformat()).quizzes_taken == 2


def test_history_returns_newest_first_up_to_limit(db):
	start = datetime(2024, 1, 1, 8, 0)
	for n in range(20):
		result = QuizGradeResult(score=n % 5, total_questions=5, percentage=quiz_service.percentage_of(n % 5, 5), feedback=[])
		row = store.append_quiz_history(db, "abebe", result, category="Recursion")
		row.created_at = start + timedelta(minutes=n)
	db.commit()

	entries = quiz_service.get_history(db, "abebe", 5)

	assert len(entries) == 5
	assert [e.created_at for e in entries] == [start + timedelta(minutes=n) for n in (19, 18, 17, 16, 15)]
	assert quiz_service.get_history(db, "nobody", 5) == []


def test_purge_removes_only_old_active_sessions(db):
	old = store.create_quiz_session(db, "abebe", "Old", "easy", _questions())
	old.created_at = datetime(2020, 1, 1)
	done = store.create_quiz_session(db, "abebe", "Done", "easy", _questions())
	done.created_at = datetime(2020, 1, 1)
	done.status = store.SESSION_COMPLETED
	fresh = store.create_quiz_session(db, "abebe", "Fresh", "easy", _questions())
	db.commit()
	ids = (old.id, done.id, fresh.id)

	assert quiz_service.purge_abandoned_sessions(db, 7) == 1

	db.expire_all()
	remaining = set(db.scalars(select(QuizSession.id)))
	assert remaining == {ids[1], ids[2]}


def test_activity_accumulates(db):
	store.accumulate_activity(db, "abebe", "2024-03-14", ActivityDelta(tasks_completed=1, time_spent=20))
	store.accumulate_activity(db, "abebe", "2024-03-14", ActivityDelta(quizzes_taken=1, concepts_learned=3, time_spent=10))
	db.commit()

	rows = db.scalars(select(DailyActivity).where(DailyActivity.user_id == "abebe")).all()
	assert len(rows) == 1
	db.refresh(rows[0])
	assert (rows[0].tasks_completed, rows[0].quizzes_taken, rows[0].concepts_learned, rows[0].time_spent) == (1, 1, 3, 30)


def test_task_completion_is_claimed_once(db):
	assert store.claim_task_completion(db, "abebe", "2024-03-14", "task_1") is True
	assert store.claim_task_completion(db, "abebe", "2024-03-14", "task_1") is False
	assert store.claim_task_completion(db, "abebe", "2024-03-14", "task_2") is True
	assert store.claim_task_completion(db, "hanna", "2024-03-14", "task_1") is True
	db.commit()


def test_request_counter_increments_and_drops_old_windows(db):
	assert store.count_request(db, "10.0.0.1", 900) == 1
	assert store.count_request(db, "10.0.0.1", 900) == 2
	assert store.count_request(db, "10.0.0.2", 900) == 1
	assert store.count_request(db, "10.0.0.1", 1800) == 1
	db.commit()

	windows = db.execute(select(RateLimitWindow.window_start).where(RateLimitWindow.client_key == "10.0.0.1")).scalars().all()
	assert windows == [1800]
