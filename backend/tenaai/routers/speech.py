from typing import Optional

from fastapi import APIRouter, Depends
from starlette.concurrency import run_in_threadpool

from .. import stt, tts
from ..schemas import SynthesizeRequest, TranscribeRequest
from .auth import User, get_optional_user

stt_router = APIRouter(prefix="/api/stt", tags=["speech"])
tts_router = APIRouter(prefix="/api/tts", tags=["speech"])


@stt_router.post("/transcribe")
async def transcribe(req: TranscribeRequest, user: Optional[User] = Depends(get_optional_user)):
	# The Speech client is synchronous; keep it off the event loop
	result = await run_in_threadpool(stt.transcribe, req.audio_base64, req.language)
	body = {
		"success": True,
		"transcript": result.transcript,
		"confidence": result.confidence,
		"languageUsed": result.language_used,
		"isApproximate": result.is_approximate,
	}
	if result.message:
		body["message"] = result.message
	return body


@stt_router.get("/supported-languages")
async def stt_languages():
	return {"success": True, "languages": stt.supported_languages()}


@tts_router.post("")
async def synthesize(
	req: SynthesizeRequest,
	user: Optional[User] = Depends(get_optional_user),
	client: tts.TtsClient = Depends(tts.get_tts_client),
):
	audio = await client.synthesize(req.text, req.language)
	return {"success": True, "data": {"audioContent": audio, "format": "mp3", "language": req.language}}


@tts_router.get("/languages")
async def tts_languages():
	return {"success": True, "data": {"languages": tts.LANGUAGES}}
