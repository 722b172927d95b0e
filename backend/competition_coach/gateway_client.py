from __future__ import annotations
import json
import logging
import httpx
from fastapi import Depends
from typing import Any, AsyncIterator, Dict, List, Optional
from .settings import settings

logger = logging.getLogger(__name__)

Message = Dict[str, Any]


class GatewayError(Exception):
	"""Upstream chat-completion failure, carrying the status the caller should see."""

	status_code = 500

	def __init__(self, message: str, *, status_code: Optional[int] = None) -> None:
		super().__init__(message)
		self.message = message
		if status_code is not None:
			self.status_code = status_code


class GatewayNotConfiguredError(GatewayError):
	def __init__(self) -> None:
		super().__init__("LOVABLE_API_KEY is not configured")


class RateLimitedError(GatewayError):
	status_code = 429

	def __init__(self) -> None:
		super().__init__("请求过于频繁，请稍后再试。")


class QuotaExhaustedError(GatewayError):
	status_code = 402

	def __init__(self) -> None:
		super().__init__("AI服务额度不足，请联系管理员。")


def error_for_status(status_code: int, body: str = "") -> GatewayError:
	if status_code == 429:
		return RateLimitedError()
	if status_code == 402:
		return QuotaExhaustedError()
	logger.error("AI gateway error: %s %s", status_code, body[:500])
	return GatewayError(f"AI服务错误: {status_code}")


class GatewayClient:
	def __init__(
		self,
		api_key: Optional[str] = None,
		*,
		base_url: Optional[str] = None,
		model: Optional[str] = None,
		transport: Optional[httpx.AsyncBaseTransport] = None,
	) -> None:
		self.api_key = api_key or settings.gateway_api_key
		if not self.api_key:
			raise GatewayNotConfiguredError()
		self.model = model or settings.gateway_model
		self.base_url = base_url or settings.gateway_url
		self._headers = {
			"Authorization": f"Bearer {self.api_key}",
			"Content-Type": "application/json",
		}
		self._client = httpx.AsyncClient(timeout=settings.gateway_timeout_seconds, transport=transport)

	def _payload(self, messages: List[Message], **extra: Any) -> Dict[str, Any]:
		payload: Dict[str, Any] = {"model": self.model, "messages": messages}
		payload.update({k: v for k, v in extra.items() if v is not None})
		return payload

	async def complete(
		self,
		messages: List[Message],
		*,
		temperature: Optional[float] = None,
		tools: Optional[List[Dict[str, Any]]] = None,
		tool_choice: Optional[Dict[str, Any]] = None,
	) -> Message:
		"""Run one non-streaming completion and return the first choice's message."""
		payload = self._payload(messages, temperature=temperature, tools=tools, tool_choice=tool_choice)
		try:
			r = await self._client.post(self.base_url, headers=self._headers, json=payload)
		except httpx.RequestError as net_err:
			logger.error("AI gateway unreachable: %s", net_err)
			raise GatewayError(f"AI服务错误: {net_err}") from net_err
		if r.is_error:
			raise error_for_status(r.status_code, r.text)
		try:
			return r.json()["choices"][0]["message"]
		except (ValueError, KeyError, IndexError, TypeError) as err:
			raise GatewayError(f"Unexpected gateway response: {r.text[:200]}") from err

	async def generate(self, system_prompt: str, user_prompt: str, *, temperature: Optional[float] = None) -> str:
		message = await self.complete(
			[
				{"role": "system", "content": system_prompt},
				{"role": "user", "content": user_prompt},
			],
			temperature=settings.generate_temperature if temperature is None else temperature,
		)
		return message.get("content") or ""

	async def call_function(self, messages: List[Message], function: Dict[str, Any]) -> Dict[str, Any]:
		"""Force a call to ``function`` and return its decoded arguments."""
		message = await self.complete(
			messages,
			tools=[{"type": "function", "function": function}],
			tool_choice={"type": "function", "function": {"name": function["name"]}},
		)
		tool_calls = message.get("tool_calls") or []
		if not tool_calls:
			raise GatewayError("AI返回格式错误")
		arguments = tool_calls[0].get("function", {}).get("arguments")
		try:
			decoded = json.loads(arguments) if isinstance(arguments, str) else dict(arguments or {})
		except (ValueError, TypeError) as err:
			raise GatewayError("AI返回格式错误") from err
		if not isinstance(decoded, dict):
			raise GatewayError("AI返回格式错误")
		return decoded

	async def open_stream(self, messages: List[Message], *, temperature: Optional[float] = None) -> httpx.Response:
		"""Start a streaming completion. The caller must close the returned response."""
		payload = self._payload(
			messages,
			stream=True,
			temperature=settings.chat_temperature if temperature is None else temperature,
		)
		request = self._client.build_request("POST", self.base_url, headers=self._headers, json=payload)
		try:
			response = await self._client.send(request, stream=True)
		except httpx.RequestError as net_err:
			logger.error("AI gateway unreachable: %s", net_err)
			raise GatewayError(f"AI服务错误: {net_err}") from net_err
		if response.is_error:
			body = (await response.aread()).decode("utf-8", errors="replace")
			await response.aclose()
			raise error_for_status(response.status_code, body)
		return response

	async def aclose(self) -> None:
		await self._client.aclose()


def get_gateway_client() -> GatewayClient:
	return GatewayClient()


async def gateway_session(client: GatewayClient = Depends(get_gateway_client)) -> AsyncIterator[GatewayClient]:
	"""Request-scoped client, closed once the endpoint returns."""
	try:
		yield client
	finally:
		await client.aclose()
