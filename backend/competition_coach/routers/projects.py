from __future__ import annotations
import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from sqlalchemy.orm import Session

from ..catalog import COMPETITION_GROUPS, STAGES, find_step, step_guidance
from ..db import get_db
from ..models import AIAssessment, CompetitionProject, ProgressTracking
from ..storage import LocalFileStorage, get_storage
from .common import clamp_percentage, db_guard, get_project_or_404, require, to_dict

logger = logging.getLogger(__name__)

router = APIRouter(tags=["projects"])


class CreateProjectRequest(BaseModel):
	title: str = ""
	course_name: str = ""
	competition_group: str = "professional_1"
	total_hours: int = 16
	user_id: Optional[str] = None


class UpdateProjectRequest(BaseModel):
	title: Optional[str] = None
	course_name: Optional[str] = None
	competition_group: Optional[str] = None
	total_hours: Optional[int] = None
	current_stage: Optional[str] = None
	status: Optional[str] = None


class NavigateRequest(BaseModel):
	stage: str
	step: str


class ProgressRequest(BaseModel):
	stage: str
	step: str
	completion_percentage: float = 0
	status: Optional[str] = None
	notes: Optional[str] = None


def _check_group(group: Optional[str]) -> None:
	if group is not None and group not in COMPETITION_GROUPS:
		raise HTTPException(status_code=400, detail=f"未知的参赛组别: {group}")


def _check_stage(stage: Optional[str]) -> None:
	if stage is not None and stage not in {s["id"] for s in STAGES}:
		raise HTTPException(status_code=400, detail=f"未知的阶段: {stage}")


@router.get("/stages")
def list_stages():
	return STAGES


@router.get("/projects")
def list_projects(db: Session = Depends(get_db)):
	with db_guard(db, "加载项目失败"):
		rows = db.query(CompetitionProject).order_by(CompetitionProject.created_at.desc()).all()
	return [to_dict(r) for r in rows]


@router.post("/projects", status_code=201)
def create_project(req: CreateProjectRequest, db: Session = Depends(get_db)):
	require("请填写完整信息", req.title, req.course_name)
	_check_group(req.competition_group)
	with db_guard(db, "创建项目失败"):
		project = CompetitionProject(
			user_id=req.user_id,
			title=req.title.strip(),
			course_name=req.course_name.strip(),
			competition_group=req.competition_group,
			total_hours=req.total_hours,
			current_stage="preparation",
			status="in_progress",
		)
		db.add(project)
		db.commit()
		db.refresh(project)
	logger.info("Created project %s", project.id)
	return to_dict(project)


@router.get("/projects/{project_id}")
def get_project(project_id: str, db: Session = Depends(get_db)):
	return to_dict(get_project_or_404(db, project_id))


@router.patch("/projects/{project_id}")
def update_project(project_id: str, req: UpdateProjectRequest, db: Session = Depends(get_db)):
	project = get_project_or_404(db, project_id)
	changes = req.model_dump(exclude_unset=True, exclude_none=True)
	_check_group(changes.get("competition_group"))
	_check_stage(changes.get("current_stage"))
	for field in ("title", "course_name"):
		if field in changes:
			require("请填写完整信息", changes[field])
			changes[field] = changes[field].strip()
	with db_guard(db, "更新项目失败"):
		for key, value in changes.items():
			setattr(project, key, value)
		db.commit()
		db.refresh(project)
	return to_dict(project)


@router.delete("/projects/{project_id}")
async def delete_project(project_id: str, db: Session = Depends(get_db), storage: LocalFileStorage = Depends(get_storage)):
	project = get_project_or_404(db, project_id)
	with db_guard(db, "删除项目失败"):
		db.delete(project)
		db.commit()
	removed = await storage.delete_prefix(project_id)
	logger.info("Deleted project %s (%d stored files)", project_id, removed)
	return {"ok": True}


@router.post("/projects/{project_id}/navigate")
def navigate(project_id: str, req: NavigateRequest, db: Session = Depends(get_db)):
	found = find_step(req.stage, req.step)
	if found is None:
		raise HTTPException(status_code=400, detail=f"未知的步骤: {req.stage}/{req.step}")
	stage, step = found
	project = get_project_or_404(db, project_id)
	with db_guard(db, "更新项目失败"):
		project.current_stage = req.stage
		db.commit()
	return {
		"role": "assistant",
		"stage": req.stage,
		"step": req.step,
		"content": f"您已切换到【{stage['title']}】-【{step['title']}】\n\n我可以帮您：\n{step_guidance(req.stage, req.step)}",
	}


@router.get("/projects/{project_id}/progress")
def list_progress(project_id: str, db: Session = Depends(get_db)):
	get_project_or_404(db, project_id)
	with db_guard(db, "加载进度失败"):
		rows = db.query(ProgressTracking).filter(ProgressTracking.project_id == project_id).all()
	return [to_dict(r) for r in rows]


@router.put("/projects/{project_id}/progress")
def upsert_progress(project_id: str, req: ProgressRequest, db: Session = Depends(get_db)):
	if find_step(req.stage, req.step) is None:
		raise HTTPException(status_code=400, detail=f"未知的步骤: {req.stage}/{req.step}")
	get_project_or_404(db, project_id)
	percentage = int(round(clamp_percentage(req.completion_percentage)))
	with db_guard(db, "保存进度失败"):
		row = (
			db.query(ProgressTracking)
			.filter(
				ProgressTracking.project_id == project_id,
				ProgressTracking.stage == req.stage,
				ProgressTracking.step == req.step,
			)
			.first()
		)
		if not row:
			row = ProgressTracking(project_id=project_id, stage=req.stage, step=req.step)
			db.add(row)
		row.completion_percentage = percentage
		row.status = req.status or ("completed" if percentage >= 100 else "in_progress" if percentage > 0 else "not_started")
		if req.notes is not None:
			row.notes = req.notes
		if percentage >= 100:
			row.completed_at = row.completed_at or datetime.utcnow()
		else:
			row.completed_at = None
		db.commit()
		db.refresh(row)
	return to_dict(row)


@router.get("/projects/{project_id}/assessments")
def list_assessments(project_id: str, db: Session = Depends(get_db)):
	get_project_or_404(db, project_id)
	with db_guard(db, "加载评估记录失败"):
		rows = (
			db.query(AIAssessment)
			.filter(AIAssessment.project_id == project_id)
			.order_by(AIAssessment.created_at.desc())
			.all()
		)
	return [to_dict(r) for r in rows]
