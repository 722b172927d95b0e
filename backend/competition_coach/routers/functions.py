from __future__ import annotations
import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse, StreamingResponse
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from starlette.background import BackgroundTask

from ..content_service import evaluate_lesson_plan, generate_content
from ..db import get_db
from ..gateway_client import GatewayClient, GatewayError, gateway_session, get_gateway_client
from ..models import CompetitionProject
from ..prompts import COMPETITION_EXPERT_PROMPT, UnsupportedContentType, build_context_prompt

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/functions", tags=["functions"])


class ChatMessage(BaseModel):
	role: str
	content: str


class ChatContext(BaseModel):
	model_config = ConfigDict(populate_by_name=True)
	project_id: Optional[str] = Field(default=None, alias="projectId")
	project_title: Optional[str] = Field(default=None, alias="projectTitle")
	stage: Optional[str] = None
	step: Optional[str] = None


class ChatRequest(BaseModel):
	messages: List[ChatMessage]
	context: Optional[ChatContext] = None


class GenerateContentRequest(BaseModel):
	model_config = ConfigDict(populate_by_name=True)
	type: str
	project_id: Optional[str] = Field(default=None, alias="projectId")
	context: Optional[Dict[str, Any]] = None
	requirements: Optional[Dict[str, Any]] = None


class EvaluateLessonPlanRequest(BaseModel):
	model_config = ConfigDict(populate_by_name=True)
	lesson_plan_id: Optional[str] = Field(default=None, alias="lessonPlanId")
	content: Optional[Any] = None


def error_response(exc: Exception, fallback: str) -> JSONResponse:
	if isinstance(exc, GatewayError):
		return JSONResponse({"error": exc.message}, status_code=exc.status_code)
	if isinstance(exc, UnsupportedContentType):
		return JSONResponse({"error": str(exc)}, status_code=500)
	return JSONResponse({"error": fallback}, status_code=500)


def _project_title(db: Session, context: ChatContext) -> Optional[str]:
	if context.project_title or not context.project_id:
		return context.project_title
	try:
		project = db.get(CompetitionProject, context.project_id)
	except SQLAlchemyError:
		logger.exception("Project lookup for chat context failed")
		return None
	return project.title if project else None


@router.post("/ai-chat")
async def ai_chat(req: ChatRequest, db: Session = Depends(get_db), client: GatewayClient = Depends(get_gateway_client)):
	messages: List[Dict[str, Any]] = [{"role": "system", "content": COMPETITION_EXPERT_PROMPT}]
	if req.context is not None:
		title = _project_title(db, req.context)
		messages.append({"role": "system", "content": build_context_prompt(req.context.stage, req.context.step, title)})
	messages.extend(m.model_dump() for m in req.messages)
	try:
		upstream = await client.open_stream(messages)
	except Exception as e:
		await client.aclose()
		if not isinstance(e, GatewayError):
			logger.exception("AI Chat error")
		return error_response(e, "服务器错误")

	async def _close() -> None:
		await upstream.aclose()
		await client.aclose()

	# Decoded bytes: the upstream Content-Encoding is not forwarded
	return StreamingResponse(
		upstream.aiter_bytes(),
		media_type="text/event-stream",
		background=BackgroundTask(_close),
	)


@router.post("/generate-content")
async def generate(req: GenerateContentRequest, client: GatewayClient = Depends(gateway_session)):
	try:
		return await generate_content(client, req.type, req.context, req.requirements)
	except (GatewayError, UnsupportedContentType) as e:
		logger.error("Generate content error: %s", e)
		return error_response(e, "生成失败")
	except Exception as e:
		logger.exception("Generate content error")
		return error_response(e, "生成失败")


@router.post("/evaluate-lesson-plan")
async def evaluate(
	req: EvaluateLessonPlanRequest,
	db: Session = Depends(get_db),
	client: GatewayClient = Depends(gateway_session),
):
	try:
		return await evaluate_lesson_plan(client, db, req.lesson_plan_id, req.content)
	except GatewayError as e:
		logger.error("Evaluate lesson plan error: %s", e)
		return error_response(e, "评估失败")
	except Exception as e:
		logger.exception("Evaluate lesson plan error")
		return error_response(e, "评估失败")
