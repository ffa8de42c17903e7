"""Shared fixtures: in-memory database, a stubbed Gemini endpoint and an API client."""

import json
import os
from typing import Any, Callable, List, Union

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["GEMINI_API_KEY"] = "test-gemini-key"
os.environ["GOOGLE_TTS_API_KEY"] = "test-tts-key"
os.environ["JWT_SECRET_KEY"] = "test-secret"
os.environ["QUIZ_SESSION_TTL_DAYS"] = "7"

import httpx
import pytest
import pytest_asyncio
from fastapi.testclient import TestClient

from tenaai import models  # noqa: F401
from tenaai.db import Base, SessionLocal, engine
from tenaai.gemini_client import GeminiClient, get_gemini_client, get_optional_gemini_client
from tenaai.main import app
from tenaai.routers.auth import issue_token


Reply = Union[httpx.Response, Callable[[httpx.Request], httpx.Response]]


def gemini_text(text: str) -> httpx.Response:
	return httpx.Response(200, json={"candidates": [{"content": {"parts": [{"text": text}]}}]})


class GeminiStub:
	"""Queue of canned generateContent answers, consumed one per request."""

	def __init__(self) -> None:
		self.replies: List[Reply] = []
		self.prompts: List[str] = []

	def reply_text(self, text: str) -> None:
		self.replies.append(gemini_text(text))

	def reply_json(self, data: Any, *, fenced: bool = False) -> None:
		text = json.dumps(data)
		self.reply_text(f"```json\n{text}\n```" if fenced else text)

	def reply_status(self, status: int, body: str = "") -> None:
		self.replies.append(httpx.Response(status, text=body))

	def reply_timeout(self) -> None:
		def _raise(request: httpx.Request) -> httpx.Response:
			raise httpx.ReadTimeout("timed out", request=request)
		self.replies.append(_raise)

	def handler(self, request: httpx.Request) -> httpx.Response:
		body = json.loads(request.content)
		self.prompts.append(body["contents"][0]["parts"][0]["text"])
		assert self.replies, "unexpected Gemini call"
		reply = self.replies.pop(0)
		return reply(request) if callable(reply) else reply

	def client(self) -> GeminiClient:
		return GeminiClient(api_key="test-gemini-key", transport=httpx.MockTransport(self.handler))


@pytest.fixture(autouse=True)
def _schema():
	Base.metadata.drop_all(bind=engine)
	Base.metadata.create_all(bind=engine)
	yield


@pytest.fixture
def db():
	session = SessionLocal()
	try:
		yield session
	finally:
		session.close()


@pytest.fixture
def gemini() -> GeminiStub:
	return GeminiStub()


@pytest_asyncio.fixture
async def model(gemini: GeminiStub):
	client = gemini.client()
	try:
		yield client
	finally:
		await client.aclose()


@pytest.fixture
def api(gemini: GeminiStub):
	async def _client():
		client = gemini.client()
		try:
			yield client
		finally:
			await client.aclose()

	app.dependency_overrides[get_gemini_client] = _client
	app.dependency_overrides[get_optional_gemini_client] = _client
	try:
		yield TestClient(app)
	finally:
		app.dependency_overrides.clear()


@pytest.fixture
def auth_headers(db):
	def _headers(username: str = "abebe") -> dict:
		return {"Authorization": f"Bearer {issue_token(db, username)}"}
	return _headers


def sample_questions() -> List[dict]:
	return [
		{
			"id": "q_1",
			"question": "What is the base case of a recursive function?",
			"type": "multiple_choice",
			"options": ["The first call", "The condition that stops recursion", "A loop", "A variable"],
			"correctAnswer": "The condition that stops recursion",
			"explanation": "Without a base case recursion never ends.",
			"difficulty": "easy",
			"category": "Recursion",
		},
		{
			"id": "q_2",
			"question": "What is factorial(3)?",
			"type": "short_answer",
			"correctAnswer": "6",
			"explanation": "3 * 2 * 1 = 6.",
			"difficulty": "easy",
			"category": "Recursion",
		},
		{
			"id": "q_3",
			"question": "Which data structure tracks recursive calls?",
			"type": "multiple_choice",
			"options": ["Queue", "Stack", "Heap", "Graph"],
			"correctAnswer": "Stack",
			"explanation": "Each call pushes a frame on the call stack.",
			"difficulty": "easy",
			"category": "Recursion",
		},
	]


def grade_report(*judgements: bool, ids: List[str] | None = None) -> dict:
	ids = ids or [f"q_{i + 1}" for i in range(len(judgements))]
	return {
		"score": sum(judgements),
		"totalQuestions": len(judgements),
		"percentage": 0,
		"feedback": [
			{"questionId": qid, "isCorrect": ok, "feedback": "Well done" if ok else "Review this"}
			for qid, ok in zip(ids, judgements)
		],
		"overallFeedback": "Good effort",
		"areasToImprove": ["base cases"],
		"strengths": ["call stack"],
	}
