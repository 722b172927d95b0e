import json

import httpx

from conftest import completion

from competition_coach.models import TopicAnalysis


def test_team_add_list_delete(client, project):
	url = f"/projects/{project['id']}/team"
	r = client.post(url, json={"name": "张老师", "role": "主讲教师", "experience_years": 8, "specialties": ["数控", " ", "机械"]})
	assert r.status_code == 201
	member = r.json()
	assert member["specialties"] == ["数控", "机械"]

	assert [m["name"] for m in client.get(url).json()] == ["张老师"]
	assert client.delete(f"{url}/{member['id']}").status_code == 200
	assert client.get(url).json() == []
	assert client.delete(f"{url}/{member['id']}").status_code == 404


def test_team_requires_name_and_role(client, project):
	r = client.post(f"/projects/{project['id']}/team", json={"name": "张老师"})
	assert r.status_code == 400
	assert r.json()["detail"] == "请填写姓名和角色"


def test_team_unknown_project(client):
	assert client.post("/projects/missing/team", json={"name": "a", "role": "b"}).status_code == 404


def test_topic_analysis_upserts_single_row(client, db, gateway, project):
	gateway.queue(
		completion(json.dumps({"feasibility_score": 90, "innovation_score": 85, "competitiveness_score": 88, "feedback": {"highlights": ["产教融合"]}})),
		completion("无法给出结构化结果"),
	)
	url = f"/projects/{project['id']}/topic/analyze"
	first = client.post(url, json={"title": "选题", "description": "描述"}).json()
	assert first["feasibility_score"] == 90
	assert first["ai_feedback"] == {"highlights": ["产教融合"]}
	assert first["status"] == "analyzed"

	second = client.post(url, json={"title": "新选题", "description": "新描述"}).json()
	assert second["id"] == first["id"]
	assert second["topic_title"] == "新选题"
	assert (second["feasibility_score"], second["innovation_score"], second["competitiveness_score"]) == (75, 80, 70)
	assert second["ai_feedback"] == {"generated": "无法给出结构化结果"}
	assert db.query(TopicAnalysis).count() == 1
	assert client.get(f"/projects/{project['id']}/topic").json()["id"] == first["id"]


def test_topic_analysis_requires_fields(client, gateway, project):
	r = client.post(f"/projects/{project['id']}/topic/analyze", json={"title": "选题"})
	assert r.status_code == 400
	assert gateway.requests == []


def test_topic_analysis_rate_limited(client, gateway, project):
	gateway.queue(httpx.Response(429, text="slow down"))
	r = client.post(f"/projects/{project['id']}/topic/analyze", json={"title": "a", "description": "b"})
	assert r.status_code == 429
	assert r.json() == {"error": "请求过于频繁，请稍后再试。"}


def test_resources_stats(client, project):
	url = f"/projects/{project['id']}/resources"
	client.post(url, json={"type": "video", "name": "微课1"})
	client.post(url, json={"type": "video", "name": "微课2"})
	client.post(url, json={"type": "case", "name": "企业案例"})
	body = client.get(url).json()
	assert len(body["items"]) == 3
	assert body["stats"]["video"] == 2
	assert body["stats"]["case"] == 1
	assert body["stats"]["textbook"] == 0

	assert client.post(url, json={"type": "nope", "name": "x"}).status_code == 400
	assert client.post(url, json={"type": "video"}).status_code == 400


def test_platform_toggle_selects_and_deselects(client, project):
	url = f"/projects/{project['id']}/platform"
	r = client.post(f"{url}/toggle", json={"category": "teaching", "name": "学习通"})
	assert r.json() == {"category": "teaching", "name": "学习通", "selected": True}

	body = client.get(url).json()
	teaching = next(c for c in body["categories"] if c["id"] == "teaching")
	assert {t["name"]: t["selected"] for t in teaching["tools"]}["学习通"] is True
	assert [s["name"] for s in body["selected"]] == ["学习通"]
	assert body["selected"][0]["priority"] == "high"

	r = client.post(f"{url}/toggle", json={"category": "teaching", "name": "学习通"})
	assert r.json()["selected"] is False
	assert client.get(url).json()["selected"] == []


def test_platform_toggle_unknown_tool(client, project):
	r = client.post(f"/projects/{project['id']}/platform/toggle", json={"category": "teaching", "name": "不存在"})
	assert r.status_code == 400


def test_topic_scores_are_clamped(client, gateway, project):
	gateway.queue(completion(json.dumps({"feasibility_score": 150, "innovation_score": -3, "competitiveness_score": "NaN"})))
	row = client.post(f"/projects/{project['id']}/topic/analyze", json={"title": "选题", "description": "描述"}).json()
	assert (row["feasibility_score"], row["innovation_score"], row["competitiveness_score"]) == (100, 0, 70)
