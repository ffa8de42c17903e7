from __future__ import annotations
import json
import logging
from typing import Any, AsyncIterator, Dict, List, Optional, Type, TypeVar

import httpx
from pydantic import BaseModel, TypeAdapter, ValidationError

from . import prompts
from .errors import (
	ModelEmptyResponseError,
	ModelError,
	ModelNotConfiguredError,
	ModelParseError,
	ModelQuotaError,
	ModelSchemaError,
	ModelTimeoutError,
)
from .schemas import (
	DailyPlanPayload,
	ModelGradeReport,
	Opportunity,
	OpportunitiesPayload,
	QuizQuestion,
	RoadmapPayload,
	RoadmapStage,
	SkillsEvaluation,
	VisualExplanation,
)
from .settings import settings

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseModel)

_QUESTION_LIST = TypeAdapter(List[QuizQuestion])


def parse_json_response(text: str) -> Any:
	"""Parse JSON out of a model answer, tolerating a surrounding markdown code fence."""
	cleaned = (text or "").strip()
	if cleaned.startswith("```json"):
		cleaned = cleaned[7:]
	elif cleaned.startswith("```"):
		cleaned = cleaned[3:]
	if cleaned.endswith("```"):
		cleaned = cleaned[:-3]
	cleaned = cleaned.strip()
	try:
		return json.loads(cleaned)
	except json.JSONDecodeError as err:
		logger.error("Failed to parse Gemini JSON response: %s (%.200s)", err, cleaned)
		raise ModelParseError() from err


def _validate(model: Type[T], data: Any, what: str) -> T:
	try:
		return model.model_validate(data)
	except ValidationError as err:
		logger.error("Gemini %s response failed validation: %s", what, err)
		raise ModelSchemaError(f"AI {what} response did not match the expected structure") from err


class GeminiClient:
	def __init__(
		self,
		api_key: Optional[str] = None,
		*,
		base_url: Optional[str] = None,
		model: Optional[str] = None,
		timeout: Optional[float] = None,
		transport: Optional[httpx.AsyncBaseTransport] = None,
	) -> None:
		self.api_key = api_key or settings.gemini_api_key
		if not self.api_key:
			raise ModelNotConfiguredError("GEMINI_API_KEY is not configured")
		self.model = model or settings.gemini_model
		# Google AI Studio (Generative Language API), key passed in the query string
		self.base_url = base_url or settings.gemini_base_url or (
			f"https://generativelanguage.googleapis.com/v1beta/models/{self.model}:generateContent"
		)
		self._client = httpx.AsyncClient(timeout=timeout or settings.gemini_timeout_seconds, transport=transport)

	async def generate(self, prompt: str) -> str:
		payload: Dict[str, Any] = {"contents": [{"parts": [{"text": prompt}]}]}
		return await self._post_payload(payload)

	async def generate_json(self, prompt: str) -> Any:
		return parse_json_response(await self.generate(prompt))

	async def _post_payload(self, payload: Dict[str, Any]) -> str:
		try:
			r = await self._client.post(self.base_url, params={"key": self.api_key}, json=payload)
			r.raise_for_status()
		except httpx.TimeoutException as err:
			logger.warning("Gemini request timed out: %s", err)
			raise ModelTimeoutError() from err
		except httpx.HTTPStatusError as err:
			raise self._map_status_error(err) from err
		except httpx.RequestError as err:
			logger.error("Gemini request failed: %s", err)
			raise ModelError(f"AI service unreachable: {err}") from err
		try:
			data = r.json()
		except ValueError as err:
			raise ModelParseError(f"Unexpected Gemini response: {r.text[:200]}") from err
		text = self._extract_text(data)
		if not text or not text.strip():
			finish = ((data.get("candidates") or [{}])[0] or {}).get("finishReason") if isinstance(data, dict) else None
			logger.warning("Gemini returned no text (finishReason=%s)", finish)
			raise ModelEmptyResponseError()
		return text

	@staticmethod
	def _extract_text(data: Any) -> Optional[str]:
		try:
			parts = data["candidates"][0]["content"]["parts"]
		except (KeyError, IndexError, TypeError):
			return None
		return "".join(p.get("text", "") for p in parts if isinstance(p, dict))

	@staticmethod
	def _map_status_error(err: httpx.HTTPStatusError) -> ModelError:
		status = err.response.status_code
		body = err.response.text[:500]
		logger.error("Gemini HTTP %s: %s", status, body)
		if status == 429 or "RESOURCE_EXHAUSTED" in body:
			return ModelQuotaError()
		if status in (401, 403):
			return ModelNotConfiguredError("AI service rejected the configured credentials")
		if status == 504:
			return ModelTimeoutError()
		return ModelError(f"AI service error (HTTP {status})")

	async def aclose(self) -> None:
		await self._client.aclose()

	# ---- task methods -------------------------------------------------

	async def generate_quiz(self, topic: str, difficulty: str, count: int, language: str = "en") -> List[QuizQuestion]:
		data = await self.generate_json(prompts.quiz_generation_prompt(topic, difficulty, count, language))
		# Some answers wrap the array: {"questions": [...]}
		if isinstance(data, dict) and isinstance(data.get("questions"), list):
			data = data["questions"]
		if not isinstance(data, list) or not data:
			raise ModelSchemaError("AI quiz response was not a non-empty list of questions")
		try:
			return _QUESTION_LIST.validate_python(data)
		except ValidationError as err:
			logger.error("Gemini quiz response failed validation: %s", err)
			raise ModelSchemaError("AI quiz response did not match the expected structure") from err

	async def grade_quiz(self, graded_items: List[Dict[str, Any]], language: str = "en") -> ModelGradeReport:
		data = await self.generate_json(prompts.quiz_grading_prompt(graded_items, language))
		return _validate(ModelGradeReport, data, "grading")

	async def generate_roadmap(self, career_goal: str, skill_level: Optional[str] = None) -> List[RoadmapStage]:
		data = await self.generate_json(prompts.roadmap_prompt(career_goal, skill_level))
		return _validate(RoadmapPayload, data, "roadmap").stages

	async def explain_concept(self, concept: str, language: str = "en", context: Optional[str] = None) -> str:
		return (await self.generate(prompts.explain_prompt(concept, language, context))).strip()

	async def explain_with_visual(self, concept: str, language: str = "en") -> VisualExplanation:
		data = await self.generate_json(prompts.explain_visual_prompt(concept, language))
		return _validate(VisualExplanation, data, "explanation")

	async def chat(self, message: str, language: str = "en") -> str:
		return (await self.generate(prompts.chat_prompt(message, language))).strip()

	async def generate_opportunities(
		self, career_goal: str, skill_level: Optional[str] = None, category: Optional[str] = None
	) -> List[Opportunity]:
		data = await self.generate_json(prompts.opportunities_prompt(career_goal, skill_level, category))
		return _validate(OpportunitiesPayload, data, "opportunities").opportunities

	async def evaluate_skills(self, career_goal: str, current_skills: List[str], experience: Optional[str] = None) -> SkillsEvaluation:
		data = await self.generate_json(prompts.skills_eval_prompt(career_goal, current_skills, experience))
		return _validate(SkillsEvaluation, data, "skills evaluation")

	async def generate_daily_plan(
		self, career_goal: str, completed_topics: List[str], skill_level: str, language: str = "en"
	) -> DailyPlanPayload:
		data = await self.generate_json(prompts.daily_plan_prompt(career_goal, completed_topics, skill_level, language))
		return _validate(DailyPlanPayload, data, "daily plan")

	async def generate_insight(
		self, average_score: float, strengths: List[str], weaknesses: List[str], quizzes_taken: int
	) -> str:
		return (await self.generate(prompts.insight_prompt(average_score, strengths, weaknesses, quizzes_taken))).strip()


async def get_gemini_client() -> AsyncIterator[GeminiClient]:
	client = GeminiClient()
	try:
		yield client
	finally:
		await client.aclose()


async def get_optional_gemini_client() -> AsyncIterator[Optional[GeminiClient]]:
	"""Like `get_gemini_client`, but yields None instead of failing when no key is configured."""
	try:
		client = GeminiClient()
	except ModelNotConfiguredError:
		yield None
		return
	try:
		yield client
	finally:
		await client.aclose()
