from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Type

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile
from sqlalchemy.orm import Session

from ..catalog import EVIDENCE_TYPES
from ..content_service import coerce_number, extract_json_block, generate_content
from ..db import get_db
from ..gateway_client import GatewayClient, gateway_session
from ..models import (
    FinalEvidence,
    ImplementationReport,
    LessonPlan,
    PresentationPPT,
    PresentationScript,
    QAPreparation,
    TeachingPPT,
    TeachingScript,
)
from ..settings import settings
from ..storage import LocalFileStorage, get_storage
from .common import db_guard, get_project_or_404, to_dict
from .uploads import delete_upload, store_upload

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/projects/{project_id}", tags=["final"])


def _singleton(db: Session, model: Type[Any], project_id: str) -> Optional[Any]:
    return db.query(model).filter(model.project_id == project_id).first()


def _upsert(db: Session, model: Type[Any], project_id: str, **values: Any) -> Dict[str, Any]:
    """Create or overwrite the project's single row of ``model``."""
    with db_guard(db, "保存失败"):
        row = _singleton(db, model, project_id)
        if not row:
            row = model(project_id=project_id)
            db.add(row)
        for key, value in values.items():
            setattr(row, key, value)
        db.commit()
        db.refresh(row)
    return to_dict(row)


def _lesson_plans(db: Session, project_id: str) -> List[LessonPlan]:
    with db_guard(db, "加载教案失败"):
        return (
            db.query(LessonPlan)
            .filter(LessonPlan.project_id == project_id)
            .order_by(LessonPlan.lesson_number)
            .all()
        )


async def _generate(client: GatewayClient, content_type: str, context: Dict[str, Any]) -> str:
    result = await generate_content(client, content_type, context=context)
    return result["content"]


def _outline(content: str, default_slides: int) -> Dict[str, Any]:
    data = extract_json_block(content) or {}
    outline = data.get("outline")
    slide_count = int(coerce_number(data.get("slide_count"), default_slides))
    return {
        "outline": outline if isinstance(outline, dict) else {"generated": content},
        "slide_count": slide_count if slide_count > 0 else default_slides,
    }


def _get(db: Session, model: Type[Any], project_id: str, message: str):
    get_project_or_404(db, project_id)
    with db_guard(db, message):
        row = _singleton(db, model, project_id)
    return to_dict(row) if row else None


# ---- Presentation (说课) PPT and script ----

@router.get("/presentation-ppt")
def get_presentation_ppt(project_id: str, db: Session = Depends(get_db)):
    return _get(db, PresentationPPT, project_id, "加载说课PPT失败")


@router.post("/presentation-ppt/generate")
async def generate_presentation_ppt(
    project_id: str,
    db: Session = Depends(get_db),
    client: GatewayClient = Depends(gateway_session),
):
    project = get_project_or_404(db, project_id)
    plans = _lesson_plans(db, project_id)
    context = {**to_dict(project), "lessonPlans": [to_dict(p) for p in plans]}
    content = await _generate(client, "presentation_ppt", context)
    return _upsert(db, PresentationPPT, project_id, status="generated", **_outline(content, 20))


@router.get("/presentation-script")
def get_presentation_script(project_id: str, db: Session = Depends(get_db)):
    return _get(db, PresentationScript, project_id, "加载说课稿失败")


@router.post("/presentation-script/generate")
async def generate_presentation_script(
    project_id: str,
    db: Session = Depends(get_db),
    client: GatewayClient = Depends(gateway_session),
):
    project = get_project_or_404(db, project_id)
    plans = _lesson_plans(db, project_id)
    with db_guard(db, "加载说课PPT失败"):
        ppt = _singleton(db, PresentationPPT, project_id)
    context = {
        **to_dict(project),
        "lessonPlans": [to_dict(p) for p in plans],
        "pptOutline": ppt.outline if ppt else None,
    }
    content = await _generate(client, "presentation_script", context)
    return _upsert(
        db,
        PresentationScript,
        project_id,
        script_content={"generated": content},
        estimated_duration=10,
        status="generated",
    )


# ---- Teaching (模拟授课) PPT and script ----

def _drawn_lesson(db: Session, project_id: str) -> LessonPlan:
    plans = _lesson_plans(db, project_id)
    if not plans:
        raise HTTPException(status_code=400, detail="请先生成教案")
    return plans[0]


@router.get("/teaching-ppt")
def get_teaching_ppt(project_id: str, db: Session = Depends(get_db)):
    return _get(db, TeachingPPT, project_id, "加载授课PPT失败")


@router.post("/teaching-ppt/generate")
async def generate_teaching_ppt(
    project_id: str,
    db: Session = Depends(get_db),
    client: GatewayClient = Depends(gateway_session),
):
    get_project_or_404(db, project_id)
    plan = _drawn_lesson(db, project_id)
    content = await _generate(client, "teaching_ppt", to_dict(plan))
    return _upsert(db, TeachingPPT, project_id, status="generated", **_outline(content, 30))


@router.get("/teaching-script")
def get_teaching_script(project_id: str, db: Session = Depends(get_db)):
    return _get(db, TeachingScript, project_id, "加载授课脚本失败")


@router.post("/teaching-script/generate")
async def generate_teaching_script(
    project_id: str,
    db: Session = Depends(get_db),
    client: GatewayClient = Depends(gateway_session),
):
    get_project_or_404(db, project_id)
    plan = _drawn_lesson(db, project_id)
    with db_guard(db, "加载授课PPT失败"):
        ppt = _singleton(db, TeachingPPT, project_id)
    context = {**to_dict(plan), "pptOutline": ppt.outline if ppt else None}
    content = await _generate(client, "teaching_script", context)
    return _upsert(
        db,
        TeachingScript,
        project_id,
        script_content={"generated": content},
        estimated_duration=15,
        status="generated",
    )


# ---- Q&A preparation ----

@router.get("/qa-prep")
def get_qa_prep(project_id: str, db: Session = Depends(get_db)):
    return _get(db, QAPreparation, project_id, "加载答辩准备失败")


@router.post("/qa-prep/generate")
async def generate_qa_prep(
    project_id: str,
    db: Session = Depends(get_db),
    client: GatewayClient = Depends(gateway_session),
):
    project = get_project_or_404(db, project_id)
    plans = _lesson_plans(db, project_id)
    with db_guard(db, "加载报告失败"):
        report = (
            db.query(ImplementationReport)
            .filter(ImplementationReport.project_id == project_id)
            .order_by(ImplementationReport.version.desc())
            .first()
        )
    context = {
        **to_dict(project),
        "lessonPlans": [to_dict(p) for p in plans],
        "report": to_dict(report) if report else None,
    }
    content = await _generate(client, "qa_preparation", context)
    data = extract_json_block(content) or {}
    qa_list = data.get("qa_list") if isinstance(data.get("qa_list"), list) else []
    return _upsert(
        db,
        QAPreparation,
        project_id,
        qa_list=qa_list,
        total_questions=len(qa_list),
        raw_content=content,
        status="prepared",
    )


# ---- Final evidence ----

@router.get("/evidence")
def list_evidence(project_id: str, db: Session = Depends(get_db), storage: LocalFileStorage = Depends(get_storage)):
    get_project_or_404(db, project_id)
    with db_guard(db, "加载佐证材料失败"):
        rows = (
            db.query(FinalEvidence)
            .filter(FinalEvidence.project_id == project_id)
            .order_by(FinalEvidence.created_at.desc())
            .all()
        )
    return [{**to_dict(r), "public_url": storage.get_public_url(r.file_path)} for r in rows]


@router.post("/evidence", status_code=201)
async def upload_evidence(
    project_id: str,
    material_type: str = Form(...),
    file: UploadFile = File(...),
    db: Session = Depends(get_db),
    storage: LocalFileStorage = Depends(get_storage),
):
    if material_type not in EVIDENCE_TYPES:
        raise HTTPException(status_code=400, detail=f"未知的材料类型: {material_type}")
    get_project_or_404(db, project_id)
    return await store_upload(
        db,
        storage,
        FinalEvidence,
        project_id=project_id,
        material_type=material_type,
        key_prefix=f"{project_id}/final/{material_type}",
        upload=file,
        max_bytes=settings.evidence_max_bytes,
        file_type="final_evidence",
    )


@router.delete("/evidence/{evidence_id}")
async def delete_evidence(
    project_id: str,
    evidence_id: str,
    db: Session = Depends(get_db),
    storage: LocalFileStorage = Depends(get_storage),
):
    await delete_upload(db, storage, FinalEvidence, project_id=project_id, row_id=evidence_id)
    return {"ok": True}
