from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Union

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile
from pydantic import BaseModel, Field
from sqlalchemy import func
from sqlalchemy.orm import Session

from ..catalog import (
    LESSON_PLAN_TARGET,
    MATERIAL_TYPES,
    REPORT_CHART_LIMIT,
    REPORT_WORD_TARGET,
    SHOOTING_CHECKLIST,
    VIDEO_SCRIPT_TARGET,
)
from ..content_service import coerce_score, evaluate_lesson_plan, extract_json_block, generate_content
from ..db import get_db
from ..gateway_client import GatewayClient, gateway_session
from ..models import (
    EvidenceMaterial,
    ImplementationReport,
    LessonPlan,
    ShootingChecklistItem,
    StandardsReview,
    VideoScript,
)
from ..settings import settings
from ..storage import LocalFileStorage, get_storage
from .common import clamp_percentage, db_guard, get_project_or_404, require, to_dict
from .uploads import delete_upload, store_upload

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/projects/{project_id}", tags=["preliminary"])

TARGET_STUDENTS = "高职学生"


def _split_points(value: Union[str, List[str], None]) -> List[str]:
    # Forms send comma separated text; API callers may send a list
    if not value:
        return []
    if isinstance(value, str):
        value = value.replace("，", ",").split(",")
    return [p.strip() for p in value if p and p.strip()]


def _completion(completed: int, target: int) -> Dict[str, Any]:
    return {
        "completed": completed,
        "target": target,
        "percentage": clamp_percentage(completed / target * 100),
    }


class GenerateLessonPlanRequest(BaseModel):
    title: str = ""
    objectives: str = ""
    duration: int = Field(default=45, gt=0)
    key_points: Union[str, List[str], None] = None
    difficult_points: Union[str, List[str], None] = None


class UpdateLessonPlanRequest(BaseModel):
    title: Optional[str] = None
    objectives: Optional[str] = None
    duration_minutes: Optional[int] = Field(default=None, gt=0)
    key_points: Optional[List[str]] = None
    difficult_points: Optional[List[str]] = None
    teaching_methods: Optional[List[str]] = None
    content: Optional[Dict[str, Any]] = None
    status: Optional[str] = None


class GenerateVideoScriptRequest(BaseModel):
    lesson_plan_id: Optional[str] = None


class UpdateVideoScriptRequest(BaseModel):
    title: Optional[str] = None
    status: Optional[str] = None
    script_content: Optional[Dict[str, Any]] = None
    key_moments: Optional[List[str]] = None
    interaction_points: Optional[List[str]] = None
    ideological_points: Optional[List[str]] = None
    tech_integration_points: Optional[List[str]] = None


class ChecklistToggleRequest(BaseModel):
    category: str
    item: str


class UpdateReportRequest(BaseModel):
    word_count: Optional[int] = Field(default=None, ge=0)
    chart_count: Optional[int] = Field(default=None, ge=0)
    status: Optional[str] = None
    content: Optional[Dict[str, Any]] = None


class StandardsRequest(BaseModel):
    standards: str = ""
    program: str = ""


# ---- Lesson plans ----

def _get_lesson_plan(db: Session, project_id: str, plan_id: str) -> LessonPlan:
    with db_guard(db, "加载教案失败"):
        plan = db.query(LessonPlan).filter(LessonPlan.id == plan_id, LessonPlan.project_id == project_id).first()
    if plan is None:
        raise HTTPException(status_code=404, detail="教案不存在")
    return plan


@router.get("/lesson-plans")
def list_lesson_plans(project_id: str, db: Session = Depends(get_db)):
    get_project_or_404(db, project_id)
    with db_guard(db, "加载教案失败"):
        rows = (
            db.query(LessonPlan)
            .filter(LessonPlan.project_id == project_id)
            .order_by(LessonPlan.lesson_number)
            .all()
        )
    completed = sum(1 for r in rows if r.status == "completed")
    return {"items": [to_dict(r) for r in rows], "progress": _completion(completed, LESSON_PLAN_TARGET)}


@router.post("/lesson-plans/generate", status_code=201)
async def generate_lesson_plan(
    project_id: str,
    req: GenerateLessonPlanRequest,
    db: Session = Depends(get_db),
    client: GatewayClient = Depends(gateway_session),
):
    require("请填写课程标题和教学目标", req.title, req.objectives)
    project = get_project_or_404(db, project_id)
    key_points = _split_points(req.key_points)
    difficult_points = _split_points(req.difficult_points)
    result = await generate_content(
        client,
        "lesson_plan",
        context={"courseName": project.course_name, "targetStudents": TARGET_STUDENTS},
        requirements={
            "title": req.title,
            "objectives": req.objectives,
            "duration": req.duration,
            "keyPoints": key_points,
            "difficultPoints": difficult_points,
        },
    )
    with db_guard(db, "生成教案失败"):
        count = db.query(func.count(LessonPlan.id)).filter(LessonPlan.project_id == project_id).scalar() or 0
        plan = LessonPlan(
            project_id=project_id,
            lesson_number=count + 1,
            title=req.title.strip(),
            objectives=req.objectives.strip(),
            duration_minutes=req.duration,
            key_points=key_points,
            difficult_points=difficult_points,
            content={"generated": result["content"]},
            status="draft",
        )
        db.add(plan)
        db.commit()
        db.refresh(plan)
    return to_dict(plan)


@router.patch("/lesson-plans/{plan_id}")
def update_lesson_plan(project_id: str, plan_id: str, req: UpdateLessonPlanRequest, db: Session = Depends(get_db)):
    plan = _get_lesson_plan(db, project_id, plan_id)
    with db_guard(db, "更新教案失败"):
        for key, value in req.model_dump(exclude_unset=True, exclude_none=True).items():
            setattr(plan, key, value)
        db.commit()
        db.refresh(plan)
    return to_dict(plan)


@router.delete("/lesson-plans/{plan_id}")
def delete_lesson_plan(project_id: str, plan_id: str, db: Session = Depends(get_db)):
    plan = _get_lesson_plan(db, project_id, plan_id)
    with db_guard(db, "删除教案失败"):
        db.delete(plan)
        db.commit()
    return {"ok": True}


@router.post("/lesson-plans/{plan_id}/evaluate")
async def evaluate_plan(
    project_id: str,
    plan_id: str,
    db: Session = Depends(get_db),
    client: GatewayClient = Depends(gateway_session),
):
    _get_lesson_plan(db, project_id, plan_id)
    with db_guard(db, "评估失败"):
        evaluation = await evaluate_lesson_plan(client, db, plan_id)
    return {"lesson_plan": to_dict(_get_lesson_plan(db, project_id, plan_id)), "evaluation": evaluation}


# ---- Video scripts ----

@router.get("/video-scripts")
def list_video_scripts(project_id: str, db: Session = Depends(get_db)):
    get_project_or_404(db, project_id)
    with db_guard(db, "加载视频脚本失败"):
        rows = (
            db.query(VideoScript)
            .filter(VideoScript.project_id == project_id)
            .order_by(VideoScript.video_number)
            .all()
        )
    completed = sum(1 for r in rows if r.status == "completed")
    return {"items": [to_dict(r) for r in rows], "progress": _completion(completed, VIDEO_SCRIPT_TARGET)}


@router.post("/video-scripts/generate", status_code=201)
async def generate_video_script(
    project_id: str,
    req: GenerateVideoScriptRequest,
    db: Session = Depends(get_db),
    client: GatewayClient = Depends(gateway_session),
):
    require("请先选择对应的教案", req.lesson_plan_id)
    project = get_project_or_404(db, project_id)
    with db_guard(db, "生成视频脚本失败"):
        plan = (
            db.query(LessonPlan)
            .filter(LessonPlan.id == req.lesson_plan_id, LessonPlan.project_id == project_id)
            .first()
        )
    if plan is None:
        raise HTTPException(status_code=400, detail="请先选择对应的教案")
    result = await generate_content(
        client,
        "video_script",
        context={"courseName": project.course_name},
        requirements={"title": plan.title, "lessonPlan": plan.content},
    )
    with db_guard(db, "生成视频脚本失败"):
        count = db.query(func.count(VideoScript.id)).filter(VideoScript.project_id == project_id).scalar() or 0
        script = VideoScript(
            project_id=project_id,
            video_number=count + 1,
            title=plan.title,
            lesson_plan_id=plan.id,
            duration_minutes=45,
            script_content={"generated": result["content"]},
            status="draft",
        )
        db.add(script)
        db.commit()
        db.refresh(script)
    return to_dict(script)


@router.patch("/video-scripts/{script_id}")
def update_video_script(project_id: str, script_id: str, req: UpdateVideoScriptRequest, db: Session = Depends(get_db)):
    with db_guard(db, "更新视频脚本失败"):
        script = db.query(VideoScript).filter(VideoScript.id == script_id, VideoScript.project_id == project_id).first()
        if script is None:
            raise HTTPException(status_code=404, detail="视频脚本不存在")
        for key, value in req.model_dump(exclude_unset=True, exclude_none=True).items():
            setattr(script, key, value)
        db.commit()
        db.refresh(script)
    return to_dict(script)


@router.delete("/video-scripts/{script_id}")
def delete_video_script(project_id: str, script_id: str, db: Session = Depends(get_db)):
    with db_guard(db, "删除视频脚本失败"):
        deleted = (
            db.query(VideoScript)
            .filter(VideoScript.id == script_id, VideoScript.project_id == project_id)
            .delete()
        )
        db.commit()
    if not deleted:
        raise HTTPException(status_code=404, detail="视频脚本不存在")
    return {"ok": True}


# ---- Video shooting checklist ----

def _checklist_view(rows: List[ShootingChecklistItem]) -> Dict[str, Any]:
    checked = {(r.category, r.item) for r in rows if r.checked}
    categories = []
    for section in SHOOTING_CHECKLIST:
        items = [{"item": item, "checked": (section["category"], item) in checked} for item in section["items"]]
        done = sum(1 for i in items if i["checked"])
        categories.append({
            "category": section["category"],
            "items": items,
            "progress": round(done / len(items) * 100),
        })
    total = round(sum(c["progress"] for c in categories) / len(categories))
    return {"categories": categories, "total_progress": total}


@router.get("/video-shoot")
def get_checklist(project_id: str, db: Session = Depends(get_db)):
    get_project_or_404(db, project_id)
    with db_guard(db, "加载清单失败"):
        rows = db.query(ShootingChecklistItem).filter(ShootingChecklistItem.project_id == project_id).all()
    return _checklist_view(rows)


@router.post("/video-shoot/toggle")
def toggle_checklist_item(project_id: str, req: ChecklistToggleRequest, db: Session = Depends(get_db)):
    section = next((s for s in SHOOTING_CHECKLIST if s["category"] == req.category), None)
    if section is None or req.item not in section["items"]:
        raise HTTPException(status_code=400, detail=f"未知的清单项: {req.category}/{req.item}")
    get_project_or_404(db, project_id)
    with db_guard(db, "操作失败"):
        row = (
            db.query(ShootingChecklistItem)
            .filter(
                ShootingChecklistItem.project_id == project_id,
                ShootingChecklistItem.category == req.category,
                ShootingChecklistItem.item == req.item,
            )
            .first()
        )
        if row:
            row.checked = not row.checked
        else:
            db.add(ShootingChecklistItem(project_id=project_id, category=req.category, item=req.item, checked=True))
        db.commit()
        rows = db.query(ShootingChecklistItem).filter(ShootingChecklistItem.project_id == project_id).all()
    return _checklist_view(rows)


# ---- Implementation report ----

def _latest_report(db: Session, project_id: str) -> Optional[ImplementationReport]:
    return (
        db.query(ImplementationReport)
        .filter(ImplementationReport.project_id == project_id)
        .order_by(ImplementationReport.version.desc())
        .first()
    )


def _report_view(report: Optional[ImplementationReport]) -> Dict[str, Any]:
    if report is None:
        return {"report": None, "word_progress": 0.0, "chart_progress": 0.0}
    return {
        "report": to_dict(report),
        "word_progress": clamp_percentage(report.word_count / REPORT_WORD_TARGET * 100),
        "chart_progress": clamp_percentage(report.chart_count / REPORT_CHART_LIMIT * 100),
    }


@router.get("/report")
def get_report(project_id: str, db: Session = Depends(get_db)):
    get_project_or_404(db, project_id)
    with db_guard(db, "加载报告失败"):
        report = _latest_report(db, project_id)
    return _report_view(report)


@router.get("/report/versions")
def list_report_versions(project_id: str, db: Session = Depends(get_db)):
    get_project_or_404(db, project_id)
    with db_guard(db, "加载报告失败"):
        rows = (
            db.query(ImplementationReport)
            .filter(ImplementationReport.project_id == project_id)
            .order_by(ImplementationReport.version.desc())
            .all()
        )
    return [to_dict(r) for r in rows]


@router.post("/report/generate", status_code=201)
async def generate_report(
    project_id: str,
    db: Session = Depends(get_db),
    client: GatewayClient = Depends(gateway_session),
):
    project = get_project_or_404(db, project_id)
    with db_guard(db, "生成报告失败"):
        lesson_plans = db.query(LessonPlan).filter(LessonPlan.project_id == project_id).all()
        video_scripts = db.query(VideoScript).filter(VideoScript.project_id == project_id).all()
    context = {
        **to_dict(project),
        "lessonPlans": [to_dict(p) for p in lesson_plans],
        "videoScripts": [to_dict(s) for s in video_scripts],
    }
    result = await generate_content(client, "implementation_report", context=context)
    with db_guard(db, "生成报告失败"):
        latest = _latest_report(db, project_id)
        report = ImplementationReport(
            project_id=project_id,
            content={"generated": result["content"]},
            word_count=0,
            chart_count=0,
            status="draft",
            version=(latest.version if latest else 0) + 1,
        )
        db.add(report)
        db.commit()
        db.refresh(report)
    return _report_view(report)


@router.patch("/report/{report_id}")
def update_report(project_id: str, report_id: str, req: UpdateReportRequest, db: Session = Depends(get_db)):
    with db_guard(db, "更新报告失败"):
        report = (
            db.query(ImplementationReport)
            .filter(ImplementationReport.id == report_id, ImplementationReport.project_id == project_id)
            .first()
        )
        if report is None:
            raise HTTPException(status_code=404, detail="报告不存在")
        for key, value in req.model_dump(exclude_unset=True, exclude_none=True).items():
            setattr(report, key, value)
        db.commit()
        db.refresh(report)
    return _report_view(report)


# ---- Curriculum standards / training programme review ----

@router.get("/standards")
def get_standards_review(project_id: str, db: Session = Depends(get_db)):
    get_project_or_404(db, project_id)
    with db_guard(db, "加载审核结果失败"):
        row = db.query(StandardsReview).filter(StandardsReview.project_id == project_id).first()
    return to_dict(row) if row else None


@router.post("/standards/review")
async def review_standards(
    project_id: str,
    req: StandardsRequest,
    db: Session = Depends(get_db),
    client: GatewayClient = Depends(gateway_session),
):
    require("请填写完整的课标和人培方案信息", req.standards, req.program)
    get_project_or_404(db, project_id)
    result = await generate_content(
        client,
        "standards_review",
        requirements={"standards": req.standards, "program": req.program},
    )
    data = extract_json_block(result["content"]) or {}
    with db_guard(db, "审核失败"):
        row = db.query(StandardsReview).filter(StandardsReview.project_id == project_id).first()
        if not row:
            row = StandardsReview(project_id=project_id)
            db.add(row)
        row.curriculum_standards = req.standards
        row.training_program = req.program
        row.alignment_score = coerce_score(data.get("alignment_score"), 85)
        row.ai_feedback = data.get("feedback") or {"generated": result["content"]}
        row.status = "reviewed"
        db.commit()
        db.refresh(row)
    return to_dict(row)


# ---- Evidence materials ----

@router.get("/materials")
def list_materials(project_id: str, db: Session = Depends(get_db), storage: LocalFileStorage = Depends(get_storage)):
    get_project_or_404(db, project_id)
    with db_guard(db, "加载材料失败"):
        rows = (
            db.query(EvidenceMaterial)
            .filter(EvidenceMaterial.project_id == project_id)
            .order_by(EvidenceMaterial.created_at.desc())
            .all()
        )
    return [{**to_dict(r), "public_url": storage.get_public_url(r.file_path)} for r in rows]


@router.post("/materials", status_code=201)
async def upload_material(
    project_id: str,
    material_type: str = Form(...),
    description: Optional[str] = Form(default=None),
    file: UploadFile = File(...),
    db: Session = Depends(get_db),
    storage: LocalFileStorage = Depends(get_storage),
):
    if material_type not in MATERIAL_TYPES:
        raise HTTPException(status_code=400, detail=f"未知的材料类型: {material_type}")
    get_project_or_404(db, project_id)
    return await store_upload(
        db,
        storage,
        EvidenceMaterial,
        project_id=project_id,
        material_type=material_type,
        key_prefix=f"{project_id}/{material_type}",
        upload=file,
        max_bytes=settings.materials_max_bytes,
        file_type="material",
        description=description or None,
    )


@router.delete("/materials/{material_id}")
async def delete_material(
    project_id: str,
    material_id: str,
    db: Session = Depends(get_db),
    storage: LocalFileStorage = Depends(get_storage),
):
    await delete_upload(db, storage, EvidenceMaterial, project_id=project_id, row_id=material_id)
    return {"ok": True}
