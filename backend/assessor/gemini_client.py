from __future__ import annotations
import json
import logging
import httpx
from typing import Any, Dict, Optional
from .errors import ProviderUnavailable
from .settings import settings

logger = logging.getLogger(__name__)


class GeminiClient:
	def __init__(
		self,
		api_key: Optional[str] = None,
		*,
		base_url: Optional[str] = None,
		model: Optional[str] = None,
		timeout: Optional[float] = None,
		http_client: Optional[httpx.AsyncClient] = None,
	) -> None:
		self.api_key = api_key or settings.gemini_api_key
		if not self.api_key:
			raise ValueError("GEMINI_API_KEY is not configured")
		self.model = model or settings.gemini_model
		root = (base_url or settings.gemini_base_url).rstrip("/")
		self.endpoint = f"{root}/models/{self.model}:generateText"
		self._client = http_client or httpx.AsyncClient(timeout=timeout or settings.gemini_timeout_seconds)

	async def generate(self, prompt: str, *, temperature: float = 0, max_output_tokens: int = 512) -> str:
		payload: Dict[str, Any] = {
			"prompt": {"text": prompt},
			"temperature": temperature,
			"maxOutputTokens": max_output_tokens,
		}
		headers = {"x-goog-api-key": self.api_key, "Content-Type": "application/json"}
		try:
			r = await self._client.post(self.endpoint, headers=headers, json=payload)
			r.raise_for_status()
		except httpx.HTTPStatusError as http_err:
			logger.warning("Gemini returned %s", http_err.response.status_code)
			raise ProviderUnavailable(
				f"Gemini error {http_err.response.status_code}: {http_err.response.text}"
			) from http_err
		except httpx.RequestError as net_err:
			logger.warning("Gemini request failed: %s", net_err)
			raise ProviderUnavailable(f"Gemini request failed: {net_err}") from net_err
		try:
			data = r.json()
		except ValueError as err:
			raise ProviderUnavailable(f"Unexpected Gemini response: {r.text}") from err
		return _candidate_text(data)

	async def aclose(self) -> None:
		await self._client.aclose()


def _candidate_text(data: Any) -> str:
	"""Pull the first candidate's text out of a generateText reply.

	Falls back to the whole reply re-serialised, so the normalizer still gets a
	chance to find the JSON object in it.
	"""
	if not isinstance(data, dict):
		return json.dumps(data)
	candidates = data.get("candidates") or []
	if candidates and isinstance(candidates[0], dict):
		first = candidates[0]
		if isinstance(first.get("output"), str):
			return first["output"]
		content = first.get("content")
		if isinstance(content, str):
			return content
		if isinstance(content, dict):
			try:
				return content["parts"][0]["text"]
			except (KeyError, IndexError, TypeError):
				pass
	if isinstance(data.get("content"), str):
		return data["content"]
	return json.dumps(data)
