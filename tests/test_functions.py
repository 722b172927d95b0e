import gzip
import json

import httpx
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from conftest import completion, tool_call

from competition_coach.gateway_client import get_gateway_client
from competition_coach.main import app
from competition_coach.models import AIAssessment, LessonPlan
from competition_coach.settings import settings


def test_generate_content(client, gateway):
	gateway.queue(completion("生成的教案"))
	r = client.post(
		"/functions/generate-content",
		json={"type": "lesson_plan", "context": {"courseName": "数控"}, "requirements": {"title": "课题"}},
	)
	assert r.status_code == 200
	body = r.json()
	assert body["content"] == "生成的教案"
	assert body["type"] == "lesson_plan"
	assert body["timestamp"]

	sent = gateway.requests[0]
	assert sent["model"] == settings.gateway_model
	assert sent["temperature"] == 0.8
	assert [m["role"] for m in sent["messages"]] == ["system", "user"]


def test_generate_content_unknown_type(client, gateway):
	r = client.post("/functions/generate-content", json={"type": "poem"})
	assert r.status_code == 500
	assert r.json() == {"error": "不支持的生成类型: poem"}
	assert gateway.requests == []


def test_generate_content_maps_gateway_errors(client, gateway):
	gateway.queue(
		httpx.Response(429, text="rate"),
		httpx.Response(402, text="pay"),
		httpx.Response(503, text="down"),
	)
	body = {"type": "qa_preparation", "context": {}}
	r = client.post("/functions/generate-content", json=body)
	assert (r.status_code, r.json()) == (429, {"error": "请求过于频繁，请稍后再试。"})
	r = client.post("/functions/generate-content", json=body)
	assert (r.status_code, r.json()) == (402, {"error": "AI服务额度不足，请联系管理员。"})
	r = client.post("/functions/generate-content", json=body)
	assert (r.status_code, r.json()) == (500, {"error": "AI服务错误: 503"})


def test_missing_api_key(client, monkeypatch):
	monkeypatch.setattr(settings, "gateway_api_key", None)
	app.dependency_overrides.pop(get_gateway_client, None)
	r = client.post("/functions/generate-content", json={"type": "lesson_plan"})
	assert r.status_code == 500
	assert r.json() == {"error": "LOVABLE_API_KEY is not configured"}


def test_evaluate_lesson_plan_with_content(client, db, gateway):
	evaluation = {"overall_score": 91, "strengths": ["目标清晰"], "specific_suggestions": []}
	gateway.queue(tool_call(evaluation))
	r = client.post("/functions/evaluate-lesson-plan", json={"content": {"title": "课题"}})
	assert r.status_code == 200
	assert r.json() == evaluation

	sent = gateway.requests[0]
	assert sent["tool_choice"] == {"type": "function", "function": {"name": "return_evaluation"}}
	assert sent["tools"][0]["function"]["name"] == "return_evaluation"
	assert db.query(AIAssessment).count() == 0


def test_evaluate_lesson_plan_persists_by_id(client, db, gateway, project):
	plan = LessonPlan(project_id=project["id"], lesson_number=1, title="课题", objectives="目标")
	db.add(plan)
	db.commit()
	gateway.queue(tool_call({"overall_score": 76, "specific_suggestions": ["补充评价量规"]}))

	r = client.post("/functions/evaluate-lesson-plan", json={"lessonPlanId": plan.id, "content": {"title": "课题"}})
	assert r.status_code == 200
	db.expire_all()
	assert db.get(LessonPlan, plan.id).ai_score == 76
	assessment = db.query(AIAssessment).one()
	assert assessment.score == 76
	assert set(assessment.criteria) == {"completeness", "innovation", "ideological", "practicality", "studentCentered", "consistency"}
	assert client.get(f"/projects/{project['id']}/assessments").json()[0]["target_id"] == plan.id


def test_evaluate_without_tool_call(client, gateway):
	gateway.queue(completion("我觉得不错"))
	r = client.post("/functions/evaluate-lesson-plan", json={"content": "教案"})
	assert r.status_code == 500
	assert r.json() == {"error": "AI返回格式错误"}


def test_ai_chat_streams_upstream_bytes(client, gateway, project):
	stream = (
		'data: {"choices":[{"delta":{"content":"你好"}}]}\n\n'
		'data: {"choices":[{"delta":{"content":"！"}}]}\n\n'
		"data: [DONE]\n\n"
	).encode()
	gateway.queue(httpx.Response(200, content=stream, headers={"content-type": "text/event-stream"}))
	r = client.post(
		"/functions/ai-chat",
		json={
			"messages": [{"role": "user", "content": "怎么写教案？"}],
			"context": {"projectId": project["id"], "stage": "preliminary", "step": "lesson-plan"},
		},
	)
	assert r.status_code == 200
	assert r.headers["content-type"].startswith("text/event-stream")
	assert r.content == stream

	sent = gateway.requests[0]
	assert sent["stream"] is True
	assert sent["temperature"] == 0.7
	roles = [m["role"] for m in sent["messages"]]
	assert roles == ["system", "system", "user"]
	assert sent["messages"][1]["content"] == (
		f"当前上下文：\n阶段：preliminary\n步骤：lesson-plan\n项目：{project['title']}"
	)


def test_ai_chat_without_project(client, gateway):
	gateway.queue(httpx.Response(200, content=b"data: [DONE]\n\n"))
	client.post("/functions/ai-chat", json={"messages": [], "context": {"stage": "final"}})
	assert gateway.requests[0]["messages"][1]["content"].endswith("项目：未创建")


def test_ai_chat_errors(client, gateway):
	gateway.queue(httpx.Response(402, text="no credit"), httpx.Response(500, text="boom"))
	body = {"messages": [{"role": "user", "content": "hi"}]}
	r = client.post("/functions/ai-chat", json=body)
	assert r.status_code == 402
	assert r.json() == {"error": "AI服务额度不足，请联系管理员。"}
	r = client.post("/functions/ai-chat", json=body)
	assert r.status_code == 500
	assert r.json() == {"error": "AI服务错误: 500"}
	assert len(gateway.requests[0]["messages"]) == 2


def test_ai_chat_decodes_compressed_upstream(client, gateway):
	stream = (
		'data: {"choices":[{"delta":{"content":"压缩"}}]}\n\n'
		"data: [DONE]\n\n"
	).encode()
	compressed = gzip.compress(stream)

	async def body():
		yield compressed[:8]
		yield compressed[8:]

	gateway.queue(httpx.Response(
		200,
		content=body(),
		headers={"content-type": "text/event-stream", "content-encoding": "gzip"},
	))
	r = client.post("/functions/ai-chat", json={"messages": [{"role": "user", "content": "hi"}]})
	assert r.status_code == 200
	assert "content-encoding" not in r.headers
	assert r.content == stream
	assert gateway.all_closed()


def test_evaluation_with_non_numeric_score(client, db, gateway, project):
	plan = LessonPlan(project_id=project["id"], lesson_number=1, title="课题", objectives="目标")
	db.add(plan)
	db.commit()
	gateway.queue(tool_call({"overall_score": {"total": 88}}))

	r = client.post("/functions/evaluate-lesson-plan", json={"lessonPlanId": plan.id})
	assert r.status_code == 200
	db.expire_all()
	assert db.get(LessonPlan, plan.id).ai_score == 0
	assert db.query(AIAssessment).one().score == 0


def test_evaluation_save_failure_keeps_error_generic(client, db, gateway, project, monkeypatch):
	plan = LessonPlan(project_id=project["id"], lesson_number=1, title="课题", objectives="目标")
	db.add(plan)
	db.commit()
	gateway.queue(tool_call({"overall_score": 80}))

	def broken_commit(self):
		raise OperationalError("INSERT INTO ai_assessments (secret)", {}, Exception("disk I/O error"))

	monkeypatch.setattr(Session, "commit", broken_commit)
	r = client.post("/functions/evaluate-lesson-plan", json={"lessonPlanId": plan.id})
	assert r.status_code == 500
	assert r.json() == {"error": "评估失败"}
	assert "INSERT" not in r.text


def test_generate_content_closes_client(client, gateway):
	client.post("/functions/generate-content", json={"type": "lesson_plan"})
	client.post("/functions/generate-content", json={"type": "poem"})
	assert len(gateway.clients) == 2
	assert gateway.all_closed()
