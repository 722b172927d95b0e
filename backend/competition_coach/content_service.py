from __future__ import annotations
import json
import math
import logging
import re
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .gateway_client import GatewayClient
from .models import AIAssessment, LessonPlan
from .prompts import (
	EVALUATION_CRITERIA,
	EVALUATION_FUNCTION,
	EVALUATOR_SYSTEM_PROMPT,
	build_content_prompt,
	build_evaluation_prompt,
)

logger = logging.getLogger(__name__)


def extract_json_block(text: str) -> Optional[Dict[str, Any]]:
	"""Best-effort decode of the first JSON object in a model answer."""
	if not text:
		return None
	try:
		data = json.loads(text)
		return data if isinstance(data, dict) else None
	except ValueError:
		pass
	# Fenced or prose-wrapped answers: take the outermost braces
	match = re.search(r"\{[\s\S]*\}", text)
	if match:
		try:
			data = json.loads(match.group(0))
			return data if isinstance(data, dict) else None
		except ValueError:
			pass
	return None


async def generate_content(
	client: GatewayClient,
	content_type: str,
	context: Optional[Dict[str, Any]] = None,
	requirements: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
	system_prompt, user_prompt = build_content_prompt(content_type, context, requirements)
	content = await client.generate(system_prompt, user_prompt)
	logger.info("Generated %s content (%d chars)", content_type, len(content))
	return {
		"content": content,
		"type": content_type,
		"timestamp": datetime.now(timezone.utc).isoformat(),
	}


async def evaluate_lesson_plan(
	client: GatewayClient,
	db: Session,
	lesson_plan_id: Optional[str],
	content: Any = None,
) -> Dict[str, Any]:
	"""Score a lesson plan against the weighted criteria.

	When ``lesson_plan_id`` names a stored plan, its content is used if none is
	given, the result is written onto the plan and an assessment history row
	is appended.
	"""
	plan: Optional[LessonPlan] = db.get(LessonPlan, lesson_plan_id) if lesson_plan_id else None
	if content is None and plan is not None:
		content = {
			"title": plan.title,
			"objectives": plan.objectives,
			"duration_minutes": plan.duration_minutes,
			"key_points": plan.key_points,
			"difficult_points": plan.difficult_points,
			"teaching_methods": plan.teaching_methods,
			"content": plan.content,
		}

	evaluation = await client.call_function(
		[
			{"role": "system", "content": EVALUATOR_SYSTEM_PROMPT},
			{"role": "user", "content": build_evaluation_prompt(content)},
		],
		EVALUATION_FUNCTION,
	)

	if plan is not None:
		score = coerce_score(evaluation.get("overall_score"), 0)
		try:
			plan.ai_score = score
			plan.ai_feedback = evaluation
			db.add(AIAssessment(
				project_id=plan.project_id,
				assessment_type="lesson_plan",
				target_id=plan.id,
				criteria=EVALUATION_CRITERIA,
				score=score,
				feedback=evaluation,
				suggestions=evaluation.get("specific_suggestions"),
			))
			db.commit()
		except SQLAlchemyError:
			db.rollback()
			logger.exception("Saving evaluation of lesson plan %s failed", plan.id)
			raise
	elif lesson_plan_id:
		logger.warning("Lesson plan %s not found; evaluation not persisted", lesson_plan_id)
	return evaluation


def coerce_number(value: Any, default: float) -> float:
	try:
		number = float(value) if value is not None else default
	except (TypeError, ValueError):
		return default
	return number if math.isfinite(number) else default


def coerce_score(value: Any, default: float) -> float:
	return max(0.0, min(coerce_number(value, default), 100.0))
