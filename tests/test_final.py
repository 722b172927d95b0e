import json
from pathlib import Path

from conftest import completion

from competition_coach.models import PresentationPPT, QAPreparation
from competition_coach.settings import settings


def _plan(client, project_id):
	r = client.post(f"/projects/{project_id}/lesson-plans/generate", json={"title": "首课", "objectives": "目标"})
	assert r.status_code == 201
	return r.json()


def test_presentation_ppt_upserts(client, db, gateway, project):
	outline = {"sections": [{"title": "教学分析", "slides": 4, "content": ["学情"]}]}
	gateway.queue(completion(json.dumps({"slide_count": 18, "outline": outline})), completion("纯文本大纲"))
	url = f"/projects/{project['id']}/presentation-ppt"
	assert client.get(url).json() is None

	first = client.post(f"{url}/generate").json()
	assert first["slide_count"] == 18
	assert first["outline"] == outline

	second = client.post(f"{url}/generate").json()
	assert second["id"] == first["id"]
	assert second["slide_count"] == 20
	assert second["outline"] == {"generated": "纯文本大纲"}
	assert db.query(PresentationPPT).count() == 1


def test_presentation_script_uses_ppt_outline(client, gateway, project):
	outline = {"sections": [{"title": "亮点展示"}]}
	gateway.queue(completion(json.dumps({"outline": outline})), completion("说课稿正文"))
	url = f"/projects/{project['id']}"
	client.post(f"{url}/presentation-ppt/generate")
	script = client.post(f"{url}/presentation-script/generate").json()
	assert script["script_content"] == {"generated": "说课稿正文"}
	assert script["estimated_duration"] == 10
	assert "亮点展示" in gateway.requests[-1]["messages"][1]["content"]


def test_teaching_material_needs_a_lesson_plan(client, gateway, project):
	url = f"/projects/{project['id']}"
	assert client.post(f"{url}/teaching-ppt/generate").status_code == 400
	assert client.post(f"{url}/teaching-script/generate").status_code == 400
	assert gateway.requests == []


def test_teaching_ppt_and_script(client, gateway, project):
	plan = _plan(client, project["id"])
	gateway.queue(completion("{}"), completion("授课脚本"))
	url = f"/projects/{project['id']}"
	ppt = client.post(f"{url}/teaching-ppt/generate").json()
	assert ppt["slide_count"] == 30
	assert plan["title"] in gateway.requests[-1]["messages"][1]["content"]

	script = client.post(f"{url}/teaching-script/generate").json()
	assert script["estimated_duration"] == 15
	assert client.get(f"{url}/teaching-script").json()["id"] == script["id"]


def test_qa_prep_collects_questions(client, db, gateway, project):
	qa = [{"category": "教学设计", "question": "如何体现学生中心？", "answer": "……"}] * 3
	answer = "以下是答辩问题\n" + json.dumps({"qa_list": qa}, ensure_ascii=False)
	gateway.queue(completion(answer), completion("没有结构化列表"))
	url = f"/projects/{project['id']}/qa-prep"

	first = client.post(f"{url}/generate").json()
	assert first["total_questions"] == 3
	assert first["raw_content"] == answer
	assert first["status"] == "prepared"

	second = client.post(f"{url}/generate").json()
	assert second["id"] == first["id"]
	assert second["qa_list"] == []
	assert second["total_questions"] == 0
	assert db.query(QAPreparation).count() == 1


def test_final_evidence_upload_and_delete(client, project):
	url = f"/projects/{project['id']}/evidence"
	r = client.post(url, data={"material_type": "award_certificate"}, files={"file": ("证书.pdf", b"%PDF", "application/pdf")})
	assert r.status_code == 201
	evidence = r.json()
	assert evidence["file_path"].startswith(f"{project['id']}/final/award_certificate/")
	stored = Path(settings.storage_dir).resolve() / settings.storage_bucket / evidence["file_path"]
	assert stored.exists()

	assert client.post(url, data={"material_type": "photo"}, files={"file": ("a.pdf", b"x")}).status_code == 400

	assert client.delete(f"{url}/{evidence['id']}").status_code == 200
	assert not stored.exists()
	assert client.get(url).json() == []


def test_deleting_project_removes_stored_files(client, project):
	r = client.post(
		f"/projects/{project['id']}/materials",
		data={"material_type": "photo"},
		files={"file": ("a.png", b"png")},
	)
	stored = Path(settings.storage_dir).resolve() / settings.storage_bucket / r.json()["file_path"]
	assert stored.exists()
	client.delete(f"/projects/{project['id']}")
	assert not stored.exists()


def test_presentation_ppt_ignores_unusable_slide_count(client, gateway, project):
	gateway.queue(completion('{"slide_count": "inf"}'), completion('{"slide_count": -4}'))
	url = f"/projects/{project['id']}/presentation-ppt/generate"
	assert client.post(url).json()["slide_count"] == 20
	assert client.post(url).json()["slide_count"] == 20
