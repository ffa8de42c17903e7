from fastapi import APIRouter, Depends
from typing import Optional

from ..gemini_client import GeminiClient, get_gemini_client
from ..schemas import ChatRequest, ExplainRequest
from .auth import User, get_optional_user

router = APIRouter(prefix="/api/explain", tags=["tutor"])


@router.post("")
async def explain(req: ExplainRequest, user: Optional[User] = Depends(get_optional_user), client: GeminiClient = Depends(get_gemini_client)):
	text = await client.explain_concept(req.concept.strip(), req.language, req.context)
	return {"success": True, "data": {"explanation": text, "language": req.language, "concept": req.concept}}


@router.post("/visual")
async def explain_visual(req: ExplainRequest, user: Optional[User] = Depends(get_optional_user), client: GeminiClient = Depends(get_gemini_client)):
	result = await client.explain_with_visual(req.concept.strip(), req.language)
	return {"success": True, "data": result.model_dump(by_alias=True)}


@router.post("/chat")
async def chat(req: ChatRequest, user: Optional[User] = Depends(get_optional_user), client: GeminiClient = Depends(get_gemini_client)):
	reply = await client.chat(req.message, req.language)
	return {"success": True, "data": {"reply": reply, "language": req.language}}
