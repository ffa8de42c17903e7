from fastapi import APIRouter, Depends

from ..gemini_client import GeminiClient, get_gemini_client
from ..schemas import OpportunitiesRequest, SkillsEvalRequest

router = APIRouter(prefix="/api", tags=["career"])


@router.post("/opportunities")
async def opportunities(req: OpportunitiesRequest, client: GeminiClient = Depends(get_gemini_client)):
	items = await client.generate_opportunities(req.career_goal.strip(), req.skill_level, req.category)
	return {"success": True, "data": [o.model_dump(by_alias=True) for o in items]}


@router.post("/skills-eval")
async def skills_eval(req: SkillsEvalRequest, client: GeminiClient = Depends(get_gemini_client)):
	skills = [s.strip() for s in req.current_skills if s.strip()]
	result = await client.evaluate_skills(req.career_goal.strip(), skills, req.experience)
	return {"success": True, "data": result.model_dump(by_alias=True)}
