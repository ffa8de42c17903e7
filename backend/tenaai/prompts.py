from __future__ import annotations

import json
from typing import Any, Dict, List, Optional


LANGUAGE_NAMES: Dict[str, str] = {
	"en": "English",
	"am": "Amharic",
	"om": "Afan Oromo",
	"tg": "Tigrigna",
	"so": "Somali",
}

_EXPLAIN_LANGUAGE_LABELS: Dict[str, str] = {
	"am": "Amharic (አማርኛ)",
	"om": "Afan Oromo (Oromiffa)",
	"en": "English",
}

_EXPLAIN_LANGUAGE_INSTRUCTIONS: Dict[str, str] = {
	"am": "Use Amharic script (ፊደል) for your response. Make sure the explanation is culturally relevant to Ethiopian students.",
	"om": "Use Latin script for Afan Oromo. Make the explanation relatable to Oromo-speaking students in Ethiopia.",
	"en": "Use simple, clear English suitable for non-native speakers.",
}


def language_name(code: Optional[str]) -> str:
	return LANGUAGE_NAMES.get(code or "en", "English")


def roadmap_prompt(career_goal: str, skill_level: Optional[str] = None) -> str:
	level_line = (
		f"The learner's current skill level is: {skill_level}"
		if skill_level
		else "Assume the learner is a complete beginner."
	)
	return (
		"You are TenaAI, an AI mentor for Ethiopian youth. "
		f"Create a clear, step-by-step learning pathway for becoming a {career_goal}.\n"
		f"{level_line}\n\n"
		"Include exactly 5 stages:\n"
		"1. Beginner - Introduction and fundamentals\n"
		"2. Foundations - Core concepts and basic skills\n"
		"3. Intermediate - Practical application and deeper knowledge\n"
		"4. Projects - Hands-on experience and portfolio building\n"
		"5. Job Readiness - Professional skills and career preparation\n\n"
		"For each stage, provide a clear title, a brief description (2-3 sentences), "
		"3-5 recommended FREE resources (online courses, YouTube channels, documentation) "
		"and an estimated duration.\n"
		"Prefer resources that are free, available in English (with subtitles when possible), "
		"relevant to the Ethiopian job market, and hands-on.\n\n"
		"Return ONLY a JSON object with this structure:\n"
		'{"stages": [{"title": "Stage Title", "description": "...", "duration": "2-4 weeks", '
		'"resources": ["Resource 1"], "skills": ["Skill 1"]}]}'
	)


def explain_prompt(concept: str, language: str = "en", context: Optional[str] = None) -> str:
	label = _EXPLAIN_LANGUAGE_LABELS.get(language, language_name(language))
	instructions = _EXPLAIN_LANGUAGE_INSTRUCTIONS.get(
		language, f"Write your response in {language_name(language)}."
	)
	context_line = f"Additional context: {context}\n" if context else ""
	# Output is read aloud by TTS, hence the plain-text rules
	return (
		"You are TenaAI, a friendly AI tutor helping Ethiopian youth learn STEM concepts.\n"
		f"Explain the following concept in {label}.\n"
		f"{instructions}\n\n"
		f"Concept: {concept}\n"
		f"{context_line}\n"
		"Your explanation should:\n"
		"1. Start with a simple definition\n"
		"2. Use relatable everyday examples from Ethiopian life\n"
		"3. Break down complex ideas into simple steps\n"
		"4. Include a practical application or real-world use case\n"
		"5. End with a quick summary or key takeaway\n\n"
		"Formatting rules: no markdown (no *, **, #), no bullet symbols, clean flowing paragraphs, "
		"numbers only when listing steps inside sentences, no special characters.\n"
		"Keep the tone friendly, encouraging, and patient."
	)


def explain_visual_prompt(concept: str, language: str = "en") -> str:
	return (
		f'Explain the concept "{concept}" in {language_name(language)}.\n\n'
		"Return ONLY a JSON object:\n"
		'{"explanation": "Detailed explanation (3-4 paragraphs)", '
		'"shortExplanation": "Brief explanation (2-3 sentences, suitable for text-to-speech)", '
		'"imageDescription": "Detailed description of a diagram that would help visualize this concept. '
		'Be specific about shapes, labels, arrows, and layout."}'
	)


def chat_prompt(message: str, language: str = "en") -> str:
	return (
		"You are TenaAI, a friendly AI tutor helping Ethiopian youth learn and grow in their careers.\n"
		f"Respond in {language_name(language)}.\n"
		"Be encouraging, patient, and provide practical advice relevant to the Ethiopian context.\n\n"
		f"User: {message}"
	)


# Only these platforms may be linked; the model must not invent URLs
VERIFIED_PLATFORMS = """Courses:
- Coursera: https://www.coursera.org/search?query=[topic]
- edX: https://www.edx.org/search?q=[topic]
- FreeCodeCamp: https://www.freecodecamp.org/learn
- Khan Academy: https://www.khanacademy.org
- MIT OpenCourseWare: https://ocw.mit.edu/search/
- Google Career Certificates: https://grow.google/certificates/
- Microsoft Learn: https://learn.microsoft.com/en-us/training/
Scholarships/Fellowships:
- Mastercard Foundation Scholars: https://mastercardfdn.org/all/scholars/
- Chevening Scholarships: https://www.chevening.org/scholarships/
- DAAD Scholarships: https://www.daad.de/en/study-and-research-in-germany/scholarships/
- Fulbright Program: https://foreign.fulbrightonline.org/
Internships/Jobs:
- LinkedIn Jobs: https://www.linkedin.com/jobs/
- Remote OK: https://remoteok.com/
- Andela: https://andela.com/careers/
- Gebeya: https://gebeya.com/
Bootcamps:
- ALX Africa: https://www.alxafrica.com/
- 10 Academy: https://www.10academy.org/
Ethiopian Companies & Organizations:
- Ethio Telecom: https://www.ethiotelecom.et/career/
- Ethiopian Airlines: https://www.ethiopianairlines.com/et/about-us/careers
- Safaricom Ethiopia: https://www.safaricom.et/careers
- iCog Labs: https://icog-labs.com/careers/"""


def opportunities_prompt(career_goal: str, skill_level: Optional[str] = None, category: Optional[str] = None) -> str:
	focus = f"Focus on: {category}" if category else "Include a mix of courses, scholarships, and programs."
	level = f"Skill level: {skill_level}\n" if skill_level else ""
	return (
		"You are TenaAI, helping Ethiopian youth find learning and career opportunities.\n"
		f"Generate a list of 5-8 relevant opportunities for someone learning {career_goal}.\n"
		f"{level}{focus}\n\n"
		"IMPORTANT: You MUST only use URLs from this list of verified platforms. DO NOT make up URLs.\n"
		f"{VERIFIED_PLATFORMS}\n\n"
		"Prioritize opportunities open to African/Ethiopian applicants, remote-friendly, free or funded.\n"
		"Return ONLY a JSON object:\n"
		'{"opportunities": [{"title": "...", "provider": "...", "url": "https://...", '
		'"category": "internship|scholarship|course|bootcamp|fellowship", '
		'"skillLevel": "beginner|intermediate|advanced", "description": "One line"}]}'
	)


def skills_eval_prompt(career_goal: str, current_skills: List[str], experience: Optional[str] = None) -> str:
	exp = f"Experience: {experience}\n" if experience else ""
	return (
		"You are TenaAI, a career advisor for Ethiopian youth.\n"
		f"Evaluate the skills of someone aspiring to become a {career_goal}.\n\n"
		f"Current skills: {', '.join(current_skills)}\n{exp}\n"
		"Provide an assessment relative to the career goal, 5-7 key skill gaps, "
		"and 5-7 specific, actionable recommendations using free or affordable resources available in Ethiopia.\n"
		"Return ONLY a JSON object:\n"
		'{"assessment": "2-3 sentences", "skillGaps": ["..."], "recommendations": ["..."]}'
	)


def quiz_generation_prompt(topic: str, difficulty: str, count: int, language: str = "en") -> str:
	return (
		f'Generate {count} {difficulty} quiz questions about "{topic}".\n'
		f"Respond in {language_name(language)}.\n\n"
		"Return ONLY a JSON array with this structure:\n"
		"[\n"
		"  {\n"
		'    "id": "q_1",\n'
		'    "question": "Question text?",\n'
		'    "type": "multiple_choice",\n'
		'    "options": ["Option A", "Option B", "Option C", "Option D"],\n'
		'    "correctAnswer": "Option A",\n'
		'    "explanation": "Explanation of why this is correct",\n'
		f'    "difficulty": "{difficulty}",\n'
		f'    "category": "{topic}"\n'
		"  }\n"
		"]\n\n"
		'Mix "multiple_choice" and "short_answer" questions; short answer questions have no options. '
		"For multiple choice, correctAnswer must be exactly one of the options. "
		"Ensure questions test understanding, not just memorization."
	)


def quiz_grading_prompt(graded_items: List[Dict[str, Any]], language: str = "en") -> str:
	return (
		"Grade these quiz answers and provide feedback.\n"
		f"Respond in {language_name(language)}.\n"
		"Judge short answers by meaning, not exact wording. An answer of "
		'"No answer provided" is incorrect.\n\n'
		"Questions and Answers:\n"
		f"{json.dumps(graded_items, ensure_ascii=False, indent=2)}\n\n"
		"Return ONLY a JSON object:\n"
		"{\n"
		'  "score": number (correct answers count),\n'
		f'  "totalQuestions": {len(graded_items)},\n'
		'  "percentage": number,\n'
		'  "feedback": [{"questionId": "q_1", "isCorrect": boolean, "feedback": "Specific feedback for this answer"}],\n'
		'  "overallFeedback": "Encouraging overall assessment",\n'
		'  "areasToImprove": ["area1", "area2"],\n'
		'  "strengths": ["strength1"]\n'
		"}\n"
		"Include exactly one feedback entry per question, using its questionId."
	)


def daily_plan_prompt(career_goal: str, completed_topics: List[str], skill_level: str, language: str = "en") -> str:
	return (
		f"Generate a personalized daily learning plan for someone pursuing {career_goal}.\n"
		f"Their current skill level: {skill_level}\n"
		f"Topics they've already completed: {', '.join(completed_topics) or 'None yet'}\n\n"
		f"Respond in {language_name(language)}.\n\n"
		"Return ONLY a JSON object with this exact structure:\n"
		'{"tasks": [{"id": "task_1", "title": "Task title", "description": "Brief description", '
		'"estimatedTime": 15, "type": "learn|practice|review", "priority": "high|medium|low", '
		'"resources": ["resource link or name"]}], '
		'"quizQuestions": [{"id": "q_1", "question": "Question text?", "type": "multiple_choice", '
		'"options": ["A", "B", "C", "D"], "correctAnswer": "A", "explanation": "Why this is correct", '
		f'"category": "{career_goal}"}}]}}\n\n'
		"Generate 4-6 tasks and 3-5 quiz questions. Make tasks progressive and relevant."
	)


def insight_prompt(average_score: float, strengths: List[str], weaknesses: List[str], quizzes_taken: int) -> str:
	return (
		"Based on a student's learning analytics:\n"
		f"- Average quiz score: {average_score:.1f}%\n"
		f"- Strong areas: {', '.join(strengths) or 'Not enough data'}\n"
		f"- Weak areas: {', '.join(weaknesses) or 'Not enough data'}\n"
		f"- Total quizzes taken: {quizzes_taken}\n\n"
		"Provide a brief, encouraging 2-3 sentence personalized insight about their learning journey "
		"and one specific recommendation."
	)
