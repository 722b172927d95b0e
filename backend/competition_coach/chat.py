from __future__ import annotations
import asyncio
import json
import logging
from typing import Any, Dict, List, Optional

import httpx

from .catalog import WELCOME_MESSAGE

logger = logging.getLogger(__name__)


class ChatError(Exception):
	pass


class SSEDeltaParser:
	"""Incrementally pull ``choices[0].delta.content`` out of an SSE byte stream.

	Chunks may split a line anywhere; incomplete lines wait in the buffer
	until the rest arrives.
	"""

	def __init__(self) -> None:
		self._buffer = ""
		self.done = False

	def feed(self, text: str) -> List[str]:
		self._buffer += text
		*lines, self._buffer = self._buffer.split("\n")
		return [d for d in (self._parse_line(line) for line in lines) if d]

	def flush(self) -> List[str]:
		rest, self._buffer = self._buffer, ""
		delta = self._parse_line(rest)
		return [delta] if delta else []

	def _parse_line(self, line: str) -> Optional[str]:
		line = line.rstrip("\r")
		if not line.startswith("data:"):
			# blank separators, ": keep-alive" comments, event/id fields
			return None
		data = line[5:].strip()
		if data == "[DONE]":
			self.done = True
			return None
		try:
			payload = json.loads(data)
			content = payload["choices"][0]["delta"].get("content")
		except (ValueError, KeyError, IndexError, TypeError, AttributeError):
			return None
		return content if isinstance(content, str) else None


class ChatSession:
	"""Client-side conversation with the ``/functions/ai-chat`` endpoint."""

	def __init__(
		self,
		base_url: str,
		project_id: Optional[str] = None,
		stage: Optional[str] = None,
		step: Optional[str] = None,
		*,
		project_title: Optional[str] = None,
		api_key: Optional[str] = None,
		transport: Optional[httpx.AsyncBaseTransport] = None,
		timeout: float = 120.0,
	) -> None:
		self.url = base_url.rstrip("/") + "/functions/ai-chat"
		self.project_id = project_id
		self.project_title = project_title
		self.stage = stage
		self.step = step
		self.messages: List[Dict[str, str]] = [{"role": "assistant", "content": WELCOME_MESSAGE}]
		self.is_loading = False
		self._headers = {"Authorization": f"Bearer {api_key}"} if api_key else {}
		self._transport = transport
		self._timeout = timeout
		self._task: Optional[asyncio.Task] = None
		self._cancel_requested = False

	def _context(self) -> Dict[str, Any]:
		return {
			"projectId": self.project_id,
			"projectTitle": self.project_title,
			"stage": self.stage,
			"step": self.step,
		}

	async def send(self, content: str) -> bool:
		"""Send one user message and stream the reply into ``messages``.

		Returns False without doing anything while another send is in flight
		or when ``content`` is blank.
		"""
		if self.is_loading or not content.strip():
			return False
		self.is_loading = True
		self._cancel_requested = False
		self.messages.append({"role": "user", "content": content})
		history = [dict(m) for m in self.messages]
		self._task = asyncio.ensure_future(self._exchange(history))
		try:
			await self._task
		except asyncio.CancelledError:
			if not self._cancel_requested:
				raise
			logger.info("Chat request cancelled")
		finally:
			self._task = None
			self.is_loading = False
		return True

	def cancel(self) -> bool:
		"""Abort the in-flight reply; whatever already arrived is kept."""
		if self._task is None or self._task.done():
			return False
		self._cancel_requested = True
		self._task.cancel()
		return True

	async def _exchange(self, history: List[Dict[str, str]]) -> None:
		try:
			async with httpx.AsyncClient(transport=self._transport, timeout=self._timeout) as client:
				async with client.stream(
					"POST",
					self.url,
					headers=self._headers,
					json={"messages": history, "context": self._context()},
				) as response:
					if response.is_error:
						raise ChatError(_error_message(await response.aread(), response.status_code))
					await self._consume(response)
		except (ChatError, httpx.HTTPError) as e:
			logger.error("Chat error: %s", e)
			self.messages.append({"role": "assistant", "content": f"抱歉，发生了错误：{e}"})

	async def _consume(self, response: httpx.Response) -> None:
		reply = {"role": "assistant", "content": ""}
		self.messages.append(reply)
		parser = SSEDeltaParser()
		async for text in response.aiter_text():
			for delta in parser.feed(text):
				reply["content"] += delta
			if parser.done:
				return
		for delta in parser.flush():
			reply["content"] += delta


def _error_message(body: bytes, status_code: int) -> str:
	try:
		error = json.loads(body).get("error")
	except (ValueError, AttributeError):
		error = None
	return error or f"请求失败: {status_code}"
