import pytest

from tenaai.errors import (
	ModelEmptyResponseError,
	ModelError,
	ModelNotConfiguredError,
	ModelParseError,
	ModelQuotaError,
	ModelSchemaError,
	ModelTimeoutError,
)
from tenaai.gemini_client import GeminiClient, parse_json_response
from tenaai.settings import settings

from conftest import sample_questions


def test_parse_json_strips_markdown_fence():
	assert parse_json_response('```json\n{"a": 1}\n```') == {"a": 1}
	assert parse_json_response('```\n[1, 2]\n```') == [1, 2]
	assert parse_json_response('  {"b": true}  ') == {"b": True}


def test_parse_json_rejects_prose():
	with pytest.raises(ModelParseError):
		parse_json_response("Sure! Here is your quiz.")


def test_missing_api_key_is_not_configured(monkeypatch):
	monkeypatch.setattr(settings, "gemini_api_key", None)
	with pytest.raises(ModelNotConfiguredError) as info:
		GeminiClient()
	assert info.value.status_code == 503


@pytest.mark.asyncio
async def test_generate_returns_text(gemini, model):
	gemini.reply_text("Recursion is a function calling itself.")
	assert await model.generate("explain recursion") == "Recursion is a function calling itself."
	assert gemini.prompts == ["explain recursion"]


@pytest.mark.asyncio
@pytest.mark.parametrize("status, body, expected", [
	(429, "", ModelQuotaError),
	(400, '{"error": {"status": "RESOURCE_EXHAUSTED"}}', ModelQuotaError),
	(403, "", ModelNotConfiguredError),
	(504, "", ModelTimeoutError),
	(500, "internal", ModelError),
])
async def test_http_errors_are_classified(gemini, model, status, body, expected):
	gemini.reply_status(status, body)
	with pytest.raises(expected):
		await model.generate("hello")


@pytest.mark.asyncio
async def test_timeout_maps_to_504(gemini, model):
	gemini.reply_timeout()
	with pytest.raises(ModelTimeoutError) as info:
		await model.generate("hello")
	assert info.value.code == "AI_TIMEOUT"


@pytest.mark.asyncio
async def test_blank_answer_is_empty_response(gemini, model):
	gemini.reply_text("   ")
	with pytest.raises(ModelEmptyResponseError):
		await model.generate("hello")


@pytest.mark.asyncio
async def test_generate_quiz_accepts_fenced_and_wrapped_answers(gemini, model):
	gemini.reply_json(sample_questions(), fenced=True)
	gemini.reply_json({"questions": sample_questions()[:1]})

	first = await model.generate_quiz("Recursion", "easy", 3)
	second = await model.generate_quiz("Recursion", "easy", 1)

	assert [q.id for q in first] == ["q_1", "q_2", "q_3"]
	assert first[1].type == "short_answer" and first[1].options is None
	assert len(second) == 1
	assert "Recursion" in gemini.prompts[0]


@pytest.mark.asyncio
async def test_generate_quiz_rejects_bad_shapes(gemini, model):
	broken = sample_questions()
	del broken[0]["correctAnswer"]
	gemini.reply_json(broken)
	gemini.reply_json([])
	gemini.reply_text("not json at all")

	with pytest.raises(ModelSchemaError):
		await model.generate_quiz("Recursion", "easy", 3)
	with pytest.raises(ModelSchemaError):
		await model.generate_quiz("Recursion", "easy", 3)
	with pytest.raises(ModelParseError) as info:
		await model.generate_quiz("Recursion", "easy", 3)
	assert info.value.code == "AI_MALFORMED_RESPONSE"


@pytest.mark.asyncio
async def test_grade_quiz_validates_report(gemini, model):
	gemini.reply_json({"feedback": [{"questionId": "q_1", "isCorrect": True, "feedback": None}], "overallFeedback": "ok"})
	gemini.reply_json({"overallFeedback": "no judgements"})

	report = await model.grade_quiz([{"questionId": "q_1", "userAnswer": "4"}])
	assert report.feedback[0].is_correct is True
	assert report.feedback[0].feedback == ""
	with pytest.raises(ModelSchemaError):
		await model.grade_quiz([{"questionId": "q_1", "userAnswer": "4"}])
