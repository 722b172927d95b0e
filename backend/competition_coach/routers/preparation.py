from __future__ import annotations

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from ..catalog import PLATFORM_CATEGORIES, RESOURCE_TYPES, find_platform_tool
from ..content_service import coerce_score, extract_json_block, generate_content
from ..db import get_db
from ..gateway_client import GatewayClient, gateway_session
from ..models import PlatformTool, TeachingResource, TeamMember, TopicAnalysis
from .common import db_guard, get_project_or_404, require, to_dict

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/projects/{project_id}", tags=["preparation"])


class TeamMemberRequest(BaseModel):
    name: str = ""
    role: str = ""
    title: Optional[str] = None
    experience_years: Optional[int] = Field(default=None, ge=0)
    specialties: List[str] = []


class TopicRequest(BaseModel):
    title: str = ""
    description: str = ""


class ResourceRequest(BaseModel):
    type: str = ""
    name: str = ""
    url: Optional[str] = None
    description: Optional[str] = None


class ToolToggleRequest(BaseModel):
    category: str
    name: str


# ---- Team ----

@router.get("/team")
def list_team(project_id: str, db: Session = Depends(get_db)):
    get_project_or_404(db, project_id)
    with db_guard(db, "加载团队成员失败"):
        rows = db.query(TeamMember).filter(TeamMember.project_id == project_id).order_by(TeamMember.created_at).all()
    return [to_dict(r) for r in rows]


@router.post("/team", status_code=201)
def add_team_member(project_id: str, req: TeamMemberRequest, db: Session = Depends(get_db)):
    require("请填写姓名和角色", req.name, req.role)
    get_project_or_404(db, project_id)
    specialties = [s.strip() for s in req.specialties if s and s.strip()]
    with db_guard(db, "添加成员失败"):
        member = TeamMember(
            project_id=project_id,
            name=req.name.strip(),
            role=req.role.strip(),
            title=(req.title or "").strip() or None,
            experience_years=req.experience_years,
            specialties=specialties,
        )
        db.add(member)
        db.commit()
        db.refresh(member)
    return to_dict(member)


@router.delete("/team/{member_id}")
def delete_team_member(project_id: str, member_id: str, db: Session = Depends(get_db)):
    with db_guard(db, "删除成员失败"):
        deleted = (
            db.query(TeamMember)
            .filter(TeamMember.id == member_id, TeamMember.project_id == project_id)
            .delete()
        )
        db.commit()
    if not deleted:
        raise HTTPException(status_code=404, detail="成员不存在")
    return {"ok": True}


# ---- Topic ----

@router.get("/topic")
def get_topic(project_id: str, db: Session = Depends(get_db)):
    get_project_or_404(db, project_id)
    with db_guard(db, "加载选题分析失败"):
        row = db.query(TopicAnalysis).filter(TopicAnalysis.project_id == project_id).first()
    return to_dict(row) if row else None


@router.post("/topic/analyze")
async def analyze_topic(
    project_id: str,
    req: TopicRequest,
    db: Session = Depends(get_db),
    client: GatewayClient = Depends(gateway_session),
):
    require("请填写完整的选题信息", req.title, req.description)
    get_project_or_404(db, project_id)
    result = await generate_content(
        client,
        "topic_analysis",
        requirements={"title": req.title, "description": req.description},
    )
    data = extract_json_block(result["content"]) or {}
    with db_guard(db, "选题分析失败"):
        row = db.query(TopicAnalysis).filter(TopicAnalysis.project_id == project_id).first()
        if not row:
            row = TopicAnalysis(project_id=project_id)
            db.add(row)
        row.topic_title = req.title
        row.topic_description = req.description
        row.feasibility_score = coerce_score(data.get("feasibility_score"), 75)
        row.innovation_score = coerce_score(data.get("innovation_score"), 80)
        row.competitiveness_score = coerce_score(data.get("competitiveness_score"), 70)
        row.ai_feedback = data.get("feedback") or {"generated": result["content"]}
        row.status = "analyzed"
        db.commit()
        db.refresh(row)
    return to_dict(row)


# ---- Resources ----

@router.get("/resources")
def list_resources(project_id: str, db: Session = Depends(get_db)):
    get_project_or_404(db, project_id)
    with db_guard(db, "加载资源失败"):
        rows = (
            db.query(TeachingResource)
            .filter(TeachingResource.project_id == project_id)
            .order_by(TeachingResource.created_at.desc())
            .all()
        )
    stats = {key: 0 for key in RESOURCE_TYPES}
    for r in rows:
        stats[r.resource_type] = stats.get(r.resource_type, 0) + 1
    return {"items": [to_dict(r) for r in rows], "stats": stats}


@router.post("/resources", status_code=201)
def add_resource(project_id: str, req: ResourceRequest, db: Session = Depends(get_db)):
    require("请填写资源类型和名称", req.type, req.name)
    if req.type not in RESOURCE_TYPES:
        raise HTTPException(status_code=400, detail=f"未知的资源类型: {req.type}")
    get_project_or_404(db, project_id)
    with db_guard(db, "添加资源失败"):
        row = TeachingResource(
            project_id=project_id,
            resource_type=req.type,
            resource_name=req.name.strip(),
            resource_url=req.url or None,
            description=req.description or None,
            status="available",
        )
        db.add(row)
        db.commit()
        db.refresh(row)
    return to_dict(row)


@router.delete("/resources/{resource_id}")
def delete_resource(project_id: str, resource_id: str, db: Session = Depends(get_db)):
    with db_guard(db, "删除资源失败"):
        deleted = (
            db.query(TeachingResource)
            .filter(TeachingResource.id == resource_id, TeachingResource.project_id == project_id)
            .delete()
        )
        db.commit()
    if not deleted:
        raise HTTPException(status_code=404, detail="资源不存在")
    return {"ok": True}


# ---- Platform & tools ----

@router.get("/platform")
def list_platform(project_id: str, db: Session = Depends(get_db)):
    get_project_or_404(db, project_id)
    with db_guard(db, "加载工具失败"):
        rows = db.query(PlatformTool).filter(PlatformTool.project_id == project_id).all()
    selected = {(r.category, r.name) for r in rows}
    return {
        "categories": [
            {
                **cat,
                "tools": [
                    {**tool, "selected": (cat["id"], tool["name"]) in selected}
                    for tool in cat["tools"]
                ],
            }
            for cat in PLATFORM_CATEGORIES
        ],
        "selected": [to_dict(r) for r in rows],
    }


@router.post("/platform/toggle")
def toggle_tool(project_id: str, req: ToolToggleRequest, db: Session = Depends(get_db)):
    tool = find_platform_tool(req.category, req.name)
    if tool is None:
        raise HTTPException(status_code=400, detail=f"未知的工具: {req.category}/{req.name}")
    get_project_or_404(db, project_id)
    with db_guard(db, "操作失败"):
        existing = (
            db.query(PlatformTool)
            .filter(
                PlatformTool.project_id == project_id,
                PlatformTool.category == req.category,
                PlatformTool.name == req.name,
            )
            .first()
        )
        if existing:
            db.delete(existing)
            selected = False
        else:
            db.add(PlatformTool(
                project_id=project_id,
                category=req.category,
                name=tool["name"],
                description=tool["description"],
                priority=tool["priority"],
            ))
            selected = True
        db.commit()
    return {"category": req.category, "name": req.name, "selected": selected}
