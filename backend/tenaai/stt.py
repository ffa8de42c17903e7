"""
Speech-to-text via Google Cloud Speech.

The `SpeechClient` is created lazily on first use with application default
credentials. Languages without full recognizer support get one retry in a
fallback language.
"""
from __future__ import annotations

import base64
import binascii
import logging
import re
from dataclasses import dataclass
from typing import Dict, Optional

from google.api_core.exceptions import GoogleAPIError
from google.auth.exceptions import DefaultCredentialsError
from google.cloud import speech_v1p1beta1 as speech

from .errors import BadRequestError, SpeechError, SpeechNotConfiguredError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SttLanguage:
	primary: str
	fallback: str


STT_LANGUAGES: Dict[str, SttLanguage] = {
	"en": SttLanguage("en-US", "en-US"),
	"am": SttLanguage("am-ET", "am-ET"),
	# Limited or experimental recognizer support
	"om": SttLanguage("om-ET", "en-US"),
	"tg": SttLanguage("ti-ET", "am-ET"),
	"so": SttLanguage("so-SO", "en-US"),
}
FULLY_SUPPORTED = ("en", "am")
LIMITED_SUPPORT = ("om", "tg", "so")

LANGUAGE_LABELS = {"en": "English", "am": "Amharic", "om": "Afan Oromo", "tg": "Tigrigna", "so": "Somali"}

_DATA_URL_PREFIX = re.compile(r"^data:audio/[^,]*;base64,")


@dataclass
class Transcription:
	transcript: str
	confidence: float
	language_used: str
	is_approximate: bool = False
	message: Optional[str] = None


_client: Optional[speech.SpeechClient] = None


def get_speech_client() -> speech.SpeechClient:
	global _client
	if _client is None:
		try:
			_client = speech.SpeechClient()
		except DefaultCredentialsError as err:
			logger.error("Failed to initialize Speech-to-Text client: %s", err)
			raise SpeechNotConfiguredError("Speech-to-Text service not available") from err
		logger.info("Google Speech-to-Text client initialized")
	return _client


def decode_audio(audio_base64: str) -> bytes:
	cleaned = _DATA_URL_PREFIX.sub("", audio_base64.strip())
	try:
		content = base64.b64decode(cleaned, validate=True)
	except (binascii.Error, ValueError) as err:
		raise BadRequestError("Audio data is not valid base64") from err
	if not content:
		raise BadRequestError("Audio data is required")
	return content


def recognize(audio: bytes, language_code: str, client: Optional[speech.SpeechClient] = None) -> tuple[str, float]:
	client = client or get_speech_client()
	config = speech.RecognitionConfig(
		# Browser MediaRecorder default
		encoding=speech.RecognitionConfig.AudioEncoding.WEBM_OPUS,
		sample_rate_hertz=48000,
		language_code=language_code,
		enable_automatic_punctuation=True,
		model="default",
	)
	logger.info("STT request with language: %s", language_code)
	response = client.recognize(config=config, audio=speech.RecognitionAudio(content=audio))
	if not response.results or not response.results[0].alternatives:
		logger.warning("STT returned no results")
		return "", 0.0
	alternative = response.results[0].alternatives[0]
	logger.info("STT success: %.50r (confidence %.2f)", alternative.transcript, alternative.confidence)
	return alternative.transcript or "", float(alternative.confidence or 0.0)


def transcribe(audio_base64: str, language: str = "en", client: Optional[speech.SpeechClient] = None) -> Transcription:
	audio = decode_audio(audio_base64)
	lang = STT_LANGUAGES.get(language, STT_LANGUAGES["en"])
	limited = language in LIMITED_SUPPORT
	try:
		text, confidence = recognize(audio, lang.primary, client)
		return Transcription(
			transcript=text,
			confidence=confidence,
			language_used=lang.primary,
			is_approximate=limited,
			message=f"Transcription may be approximate. {language} has limited STT support." if limited else None,
		)
	except GoogleAPIError as primary_err:
		if not limited or lang.fallback == lang.primary:
			logger.error("STT transcription failed: %s", primary_err)
			raise SpeechError("Failed to transcribe audio") from primary_err
		logger.warning("Primary STT failed for %s, trying fallback: %s", language, lang.fallback)
	try:
		text, confidence = recognize(audio, lang.fallback, client)
	except GoogleAPIError as fallback_err:
		logger.error("STT fallback transcription failed: %s", fallback_err)
		raise SpeechError("Failed to transcribe audio") from fallback_err
	return Transcription(
		transcript=text,
		confidence=confidence,
		language_used=lang.fallback,
		is_approximate=True,
		message=f"Used {lang.fallback} as fallback. Original language {language} not fully supported.",
	)


def supported_languages() -> Dict[str, list]:
	return {
		"fullSupport": [
			{"code": c, "name": LANGUAGE_LABELS[c], "sttCode": STT_LANGUAGES[c].primary} for c in FULLY_SUPPORTED
		],
		"limitedSupport": [
			{
				"code": c,
				"name": LANGUAGE_LABELS[c],
				"sttCode": STT_LANGUAGES[c].primary,
				"fallback": STT_LANGUAGES[c].fallback,
				"note": "May use fallback language for transcription",
			}
			for c in LIMITED_SUPPORT
		],
	}
