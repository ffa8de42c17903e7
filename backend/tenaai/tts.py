from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import httpx

from .errors import BadRequestError, SpeechError, SpeechNotConfiguredError
from .settings import settings

logger = logging.getLogger(__name__)

MAX_TEXT_LENGTH = 5000

VOICES: Dict[str, Dict[str, str]] = {
	"am": {"languageCode": "am-ET", "name": "am-ET-Standard-A", "ssmlGender": "FEMALE"},
	"en": {"languageCode": "en-US", "name": "en-US-Standard-C", "ssmlGender": "FEMALE"},
}

LANGUAGES: List[Dict[str, Any]] = [
	{"code": "am", "name": "Amharic", "supported": True},
	{"code": "en", "name": "English", "supported": True},
	# No Afan Oromo voice is offered by Cloud TTS
	{"code": "om", "name": "Afan Oromo", "supported": False},
]


def is_language_supported(language: str) -> bool:
	return language in VOICES


class TtsClient:
	def __init__(self, api_key: Optional[str] = None, *, url: Optional[str] = None, transport: Optional[httpx.AsyncBaseTransport] = None) -> None:
		self.api_key = api_key or settings.google_tts_api_key
		if not self.api_key:
			raise SpeechNotConfiguredError("Google TTS API key not configured")
		self.url = url or settings.google_tts_url
		self._client = httpx.AsyncClient(timeout=30, transport=transport)

	async def synthesize(self, text: str, language: str = "en") -> str:
		"""Return base64-encoded MP3 audio for `text`."""
		text = (text or "").strip()
		if not text:
			raise BadRequestError("Text is required")
		if len(text) > MAX_TEXT_LENGTH:
			raise BadRequestError(f"Text too long. Maximum {MAX_TEXT_LENGTH} characters.")
		if not is_language_supported(language):
			raise BadRequestError(f"Language '{language}' is not supported for TTS", details={"supportedLanguages": list(VOICES)})
		payload = {
			"input": {"text": text},
			"voice": VOICES[language],
			"audioConfig": {"audioEncoding": "MP3", "speakingRate": 0.9, "pitch": 0},
		}
		logger.info("TTS request for language: %s, text length: %d", language, len(text))
		try:
			r = await self._client.post(self.url, params={"key": self.api_key}, json=payload)
			r.raise_for_status()
			audio = r.json()["audioContent"]
		except httpx.HTTPStatusError as err:
			logger.error("TTS API error %s: %s", err.response.status_code, err.response.text[:300])
			raise SpeechError("Failed to synthesize speech") from err
		except (httpx.RequestError, KeyError, ValueError) as err:
			logger.error("TTS synthesis failed: %s", err)
			raise SpeechError("Failed to synthesize speech") from err
		logger.info("TTS synthesis successful")
		return audio

	async def aclose(self) -> None:
		await self._client.aclose()


async def get_tts_client():
	client = TtsClient()
	try:
		yield client
	finally:
		await client.aclose()
