import json
import os
import tempfile
from typing import Callable, List

import httpx
import pytest

# Settings are read at import time, so the environment must be ready first
_TMP = tempfile.mkdtemp(prefix="competition-coach-")
os.environ["DATABASE_URL"] = f"sqlite:///{_TMP}/test.db"
os.environ["STORAGE_DIR"] = os.path.join(_TMP, "storage")
os.environ["LOVABLE_API_KEY"] = "test-key"

from fastapi.testclient import TestClient  # noqa: E402

from competition_coach.db import Base, SessionLocal, engine, init_db  # noqa: E402
from competition_coach.gateway_client import GatewayClient, get_gateway_client  # noqa: E402
from competition_coach.main import app  # noqa: E402


def completion(content: str) -> httpx.Response:
	return httpx.Response(200, json={"choices": [{"message": {"role": "assistant", "content": content}}]})


def tool_call(arguments: dict) -> httpx.Response:
	message = {
		"role": "assistant",
		"content": None,
		"tool_calls": [{"type": "function", "function": {"name": "return_evaluation", "arguments": json.dumps(arguments)}}],
	}
	return httpx.Response(200, json={"choices": [{"message": message}]})


class FakeGateway:
	"""Queue of canned upstream responses; every request body is recorded."""

	def __init__(self) -> None:
		self.responses: List[httpx.Response] = []
		self.requests: List[dict] = []
		self.clients: List[GatewayClient] = []

	def queue(self, *responses: httpx.Response) -> None:
		self.responses.extend(responses)

	def handler(self, request: httpx.Request) -> httpx.Response:
		self.requests.append(json.loads(request.content))
		if not self.responses:
			return completion("ok")
		return self.responses.pop(0)

	def client(self) -> GatewayClient:
		client = GatewayClient(api_key="test-key", transport=httpx.MockTransport(self.handler))
		self.clients.append(client)
		return client

	def all_closed(self) -> bool:
		return all(c._client.is_closed for c in self.clients)


@pytest.fixture(autouse=True)
def _fresh_db():
	Base.metadata.drop_all(bind=engine)
	init_db()
	yield


@pytest.fixture()
def gateway():
	fake = FakeGateway()
	app.dependency_overrides[get_gateway_client] = fake.client
	yield fake
	app.dependency_overrides.pop(get_gateway_client, None)


@pytest.fixture()
def client():
	return TestClient(app)


@pytest.fixture()
def db():
	session = SessionLocal()
	try:
		yield session
	finally:
		session.close()


@pytest.fixture()
def project(client) -> dict:
	r = client.post("/projects", json={"title": "智能制造实训", "course_name": "数控加工技术"})
	assert r.status_code == 201
	return r.json()


@pytest.fixture()
def make_project(client) -> Callable[..., dict]:
	def _make(**fields) -> dict:
		body = {"title": "项目", "course_name": "课程", **fields}
		r = client.post("/projects", json=body)
		assert r.status_code == 201
		return r.json()
	return _make
