"""
Wire and model-output schemas for TenaAI.

Field names are snake_case in Python and camelCase on the wire (the React client
and the model prompts both speak camelCase). Every payload parsed out of a model
response is validated against one of these classes before it is used or stored.
"""
from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from .settings import settings


Language = Literal["en", "am", "om", "tg", "so"]
Difficulty = Literal["easy", "medium", "hard"]
QuestionType = Literal["multiple_choice", "short_answer"]

NO_ANSWER = "No answer provided"


class CamelModel(BaseModel):
	model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


def _as_text(value: Any) -> Any:
	if isinstance(value, (int, float)) and not isinstance(value, bool):
		return str(value)
	return value


# ---------------------------------------------------------------------------
# Quiz
# ---------------------------------------------------------------------------

class _QuestionFields(CamelModel):
	id: str = ""
	question: str = Field(min_length=1)
	type: QuestionType = "multiple_choice"
	options: Optional[List[str]] = None
	correct_answer: str
	difficulty: Optional[str] = None
	category: Optional[str] = None

	@field_validator("type", mode="before")
	@classmethod
	def _normalize_type(cls, value: Any) -> Any:
		if not isinstance(value, str):
			return value
		v = value.strip().lower().replace("-", "_").replace(" ", "_")
		if v in ("mcq", "multiple", "multiplechoice"):
			return "multiple_choice"
		if v in ("short", "open", "open_ended", "shortanswer", "fill_in_the_blank"):
			return "short_answer"
		return v

	@field_validator("correct_answer", "id", mode="before")
	@classmethod
	def _coerce_text(cls, value: Any) -> Any:
		return _as_text(value)

	@field_validator("question")
	@classmethod
	def _strip(cls, value: str) -> str:
		value = value.strip()
		if not value:
			raise ValueError("must not be blank")
		return value

	@field_validator("options", mode="before")
	@classmethod
	def _coerce_options(cls, value: Any) -> Any:
		if isinstance(value, list):
			return [str(_as_text(o)).strip() for o in value if o is not None and str(o).strip()]
		return value

	@model_validator(mode="after")
	def _options_only_for_multiple_choice(self):
		if self.type == "multiple_choice" and not self.options:
			self.type = "short_answer"
		if self.type == "short_answer":
			self.options = None
		return self


class QuizQuestion(_QuestionFields):
	"""A question as authored by the model; every field the learner sees is required."""

	explanation: str = Field(min_length=1)

	@field_validator("explanation")
	@classmethod
	def _explanation_not_blank(cls, value: str) -> str:
		value = value.strip()
		if not value:
			raise ValueError("must not be blank")
		return value

	def to_client(self) -> Dict[str, Any]:
		"""Redacted wire form: no correct answer, no empty optional keys."""
		return self.model_dump(by_alias=True, exclude_none=True, exclude={"correct_answer"})


class GradeQuestionInput(_QuestionFields):
	"""A question sent back by the client for grading. Only what grading reads is required."""

	id: str = Field(min_length=1)
	type: QuestionType
	explanation: str = ""

	def to_question(self) -> QuizQuestion:
		# Already validated and normalized above; the explanation may legitimately be empty here
		return QuizQuestion.model_construct(**self.model_dump())


class QuestionFeedback(CamelModel):
	question_id: str
	is_correct: bool
	feedback: str = ""


class QuizGradeResult(CamelModel):
	score: int
	total_questions: int
	percentage: int
	feedback: List[QuestionFeedback]
	overall_feedback: str = ""
	areas_to_improve: List[str] = Field(default_factory=list)
	strengths: List[str] = Field(default_factory=list)


class ModelQuestionJudgement(CamelModel):
	question_id: Optional[str] = None
	is_correct: bool
	feedback: str = ""

	@field_validator("question_id", mode="before")
	@classmethod
	def _coerce_id(cls, value: Any) -> Any:
		return _as_text(value)

	@field_validator("feedback", mode="before")
	@classmethod
	def _none_to_empty(cls, value: Any) -> Any:
		return "" if value is None else value


class ModelGradeReport(CamelModel):
	# score/totalQuestions/percentage from the model are ignored; they are recomputed from `feedback`
	feedback: List[ModelQuestionJudgement]
	overall_feedback: str = ""
	areas_to_improve: List[str] = Field(default_factory=list)
	strengths: List[str] = Field(default_factory=list)


class QuizHistoryEntry(CamelModel):
	id: str
	session_id: Optional[str] = None
	score: int
	total_questions: int
	percentage: int
	category: str
	feedback: Optional[str] = None
	created_at: datetime


class GenerateQuizRequest(CamelModel):
	topic: str = Field(min_length=1, max_length=200)
	difficulty: Difficulty = "medium"
	count: int = Field(default=5, ge=1, le=settings.quiz_max_questions)
	language: Language = "en"

	@field_validator("topic")
	@classmethod
	def _topic_not_blank(cls, value: str) -> str:
		value = value.strip()
		if not value:
			raise ValueError("topic must not be blank")
		return value


class GradeQuizRequest(CamelModel):
	session_id: Optional[str] = None
	answers: Dict[str, str] = Field(default_factory=dict)
	questions: Optional[List[GradeQuestionInput]] = None
	language: Language = "en"

	@field_validator("answers", mode="before")
	@classmethod
	def _answers_as_text(cls, value: Any) -> Any:
		if isinstance(value, dict):
			return {str(k): ("" if v is None else str(_as_text(v))) for k, v in value.items()}
		return value


# ---------------------------------------------------------------------------
# Activity / analytics
# ---------------------------------------------------------------------------

class ActivityDelta(CamelModel):
	tasks_completed: int = Field(default=0, ge=0)
	quizzes_taken: int = Field(default=0, ge=0)
	concepts_learned: int = Field(default=0, ge=0)
	time_spent: int = Field(default=0, ge=0)


class QuizPerformance(CamelModel):
	date: str
	score: int
	total_questions: int
	category: str


class CategoryProgress(CamelModel):
	category: str
	progress: int
	questions_answered: int
	accuracy: int


class AnalyticsData(CamelModel):
	user_id: str
	learning_streak: int
	roadmap_progress: int
	quiz_performance: List[QuizPerformance]
	concept_categories: List[CategoryProgress]
	total_learning_time: int
	skills_confidence_score: int
	weakness_areas: List[str]
	strength_areas: List[str]
	ai_insights: str


# ---------------------------------------------------------------------------
# Roadmap / tutor / career
# ---------------------------------------------------------------------------

class RoadmapStage(CamelModel):
	title: str = Field(min_length=1)
	description: str = ""
	duration: str = ""
	resources: List[str] = Field(default_factory=list)
	skills: List[str] = Field(default_factory=list)


class RoadmapPayload(CamelModel):
	stages: List[RoadmapStage] = Field(min_length=1)


class RoadmapRequest(CamelModel):
	career_goal: str = Field(min_length=3, max_length=200)
	current_skill_level: Optional[str] = None
	preferred_language: Language = "en"
	# Older clients send `language` instead of `preferredLanguage`
	language: Optional[Language] = None


class ExplainRequest(CamelModel):
	concept: str = Field(min_length=2, max_length=500)
	language: Language = "en"
	context: Optional[str] = Field(default=None, max_length=500)


class VisualExplanation(CamelModel):
	explanation: str = Field(min_length=1)
	short_explanation: str = ""
	image_description: str = ""


class ChatRequest(CamelModel):
	message: str = Field(min_length=1, max_length=2000)
	language: Language = "en"


class OpportunitiesRequest(CamelModel):
	career_goal: str = Field(min_length=2, max_length=200)
	skill_level: Optional[str] = None
	category: Optional[str] = None


class Opportunity(CamelModel):
	title: str
	provider: str
	url: str
	category: str
	skill_level: str = "beginner"
	description: str = ""


class OpportunitiesPayload(CamelModel):
	opportunities: List[Opportunity]


class SkillsEvalRequest(CamelModel):
	career_goal: str = Field(min_length=2, max_length=200)
	current_skills: List[str] = Field(min_length=1, max_length=20)
	experience: Optional[str] = Field(default=None, max_length=1000)


class SkillsEvaluation(CamelModel):
	assessment: str
	skill_gaps: List[str] = Field(default_factory=list)
	recommendations: List[str] = Field(default_factory=list)


class ProfileSaveRequest(CamelModel):
	name: Optional[str] = Field(default=None, min_length=1, max_length=100)
	language_preference: Optional[Language] = None
	career_goals: Optional[List[str]] = Field(default=None, max_length=10)
	skill_level: Optional[str] = Field(default=None, max_length=50)
	completed_topics: Optional[List[str]] = Field(default=None, max_length=200)


# ---------------------------------------------------------------------------
# Daily plan
# ---------------------------------------------------------------------------

class DailyTask(CamelModel):
	id: str = ""
	title: str = Field(min_length=1)
	description: str = ""
	estimated_time: int = Field(default=0, ge=0)
	type: Literal["learn", "practice", "review"] = "learn"
	priority: Literal["high", "medium", "low"] = "medium"
	resources: List[str] = Field(default_factory=list)
	completed: bool = False

	@field_validator("type", "priority", mode="before")
	@classmethod
	def _lower(cls, value: Any) -> Any:
		return value.strip().lower() if isinstance(value, str) else value


class DailyPlanPayload(CamelModel):
	tasks: List[DailyTask] = Field(min_length=1)
	quiz_questions: List[QuizQuestion] = Field(default_factory=list)


class CompleteTaskRequest(CamelModel):
	task_id: str = Field(min_length=1)
	date: Optional[str] = Field(default=None, pattern=r"^\d{4}-\d{2}-\d{2}$")


class CareerGoalRequest(CamelModel):
	career_goal: str = Field(min_length=2, max_length=200)
	skill_level: Optional[str] = Field(default=None, max_length=50)


# ---------------------------------------------------------------------------
# Speech
# ---------------------------------------------------------------------------

class TranscribeRequest(CamelModel):
	audio_base64: str = Field(min_length=1)
	language: str = "en"


class SynthesizeRequest(CamelModel):
	text: str = Field(min_length=1, max_length=5000)
	language: str = "en"
