"""
Speech Transcription Client
===========================

Turns an audio upload into transcript text using an AssemblyAI-compatible
asynchronous job API:

1. ``POST /upload`` with the raw bytes, giving an ``upload_url``
2. ``POST /transcript`` with ``{"audio_url": upload_url}``, giving a job ``id``
3. ``GET /transcript/{id}`` until the job is ``completed`` or ``error``

Polling is bounded by both a maximum number of status reads and a wall-clock
deadline. Cancelling the calling task stops the loop at its next await.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, Optional

import httpx

from .errors import ProviderUnavailable, TranscriptionFailed, TranscriptionTimeout
from .settings import settings

logger = logging.getLogger(__name__)

TERMINAL_COMPLETED = "completed"
TERMINAL_ERROR = "error"


class TranscriptionClient:
	def __init__(
		self,
		api_key: Optional[str] = None,
		*,
		base_url: Optional[str] = None,
		poll_interval: Optional[float] = None,
		max_polls: Optional[int] = None,
		deadline_seconds: Optional[float] = None,
		http_client: Optional[httpx.AsyncClient] = None,
	) -> None:
		self.api_key = api_key or settings.transcription_api_key
		if not self.api_key:
			raise ValueError("ASSEMBLYAI_API_KEY is not configured")
		self.base_url = (base_url or settings.transcription_base_url).rstrip("/")
		self.poll_interval = settings.transcription_poll_interval if poll_interval is None else poll_interval
		self.max_polls = settings.transcription_max_polls if max_polls is None else max_polls
		if self.max_polls < 1:
			raise ValueError(f"max_polls must be at least 1, got {self.max_polls}")
		self.deadline_seconds = deadline_seconds or settings.transcription_deadline_seconds
		self._client = http_client or httpx.AsyncClient(timeout=60)

	async def transcribe(self, audio: bytes) -> str:
		"""Upload ``audio``, start a job and wait for its transcript.

		Raises:
			ProviderUnavailable: An HTTP call failed or returned an unexpected body
			TranscriptionFailed: The job finished with status ``error``
			TranscriptionTimeout: The job was still running when the poll budget ran out
		"""
		upload_url = await self._upload(audio)
		job_id = await self._start_job(upload_url)
		return await self._wait_for(job_id)

	async def _upload(self, audio: bytes) -> str:
		data = await self._request(
			"POST",
			"/upload",
			content=audio,
			headers={"Content-Type": "application/octet-stream"},
		)
		upload_url = data.get("upload_url")
		if not upload_url:
			raise ProviderUnavailable("Transcription upload returned no upload_url", detail=data)
		return upload_url

	async def _start_job(self, upload_url: str) -> str:
		data = await self._request("POST", "/transcript", json={"audio_url": upload_url})
		job_id = data.get("id")
		if not job_id:
			raise ProviderUnavailable("Transcription job returned no id", detail=data)
		return str(job_id)

	async def _wait_for(self, job_id: str) -> str:
		loop = asyncio.get_running_loop()
		deadline = loop.time() + self.deadline_seconds
		for attempt in range(1, self.max_polls + 1):
			data = await self._request("GET", f"/transcript/{job_id}")
			status = data.get("status")
			if status == TERMINAL_COMPLETED:
				return data.get("text") or ""
			if status == TERMINAL_ERROR:
				error = data.get("error") or "unknown error"
				raise TranscriptionFailed(f"Transcription failed: {error}", detail=error)
			logger.debug("transcript %s is %s (poll %d/%d)", job_id, status, attempt, self.max_polls)
			if attempt == self.max_polls or loop.time() + self.poll_interval > deadline:
				break
			await asyncio.sleep(self.poll_interval)
		raise TranscriptionTimeout(
			f"Transcription {job_id} did not finish after {attempt} status checks",
			detail={"job_id": job_id, "status": status},
		)

	async def _request(self, method: str, path: str, **kwargs: Any) -> Dict[str, Any]:
		headers = {"authorization": self.api_key, **kwargs.pop("headers", {})}
		try:
			r = await self._client.request(method, f"{self.base_url}{path}", headers=headers, **kwargs)
			r.raise_for_status()
			data = r.json()
		except httpx.HTTPStatusError as http_err:
			logger.warning("Transcription %s %s returned %s", method, path, http_err.response.status_code)
			raise ProviderUnavailable(
				f"Transcription error {http_err.response.status_code}: {http_err.response.text}"
			) from http_err
		except httpx.RequestError as net_err:
			logger.warning("Transcription %s %s failed: %s", method, path, net_err)
			raise ProviderUnavailable(f"Transcription request failed: {net_err}") from net_err
		except ValueError as err:
			raise ProviderUnavailable(f"Unexpected transcription response: {r.text}") from err
		if not isinstance(data, dict):
			raise ProviderUnavailable("Unexpected transcription response", detail=data)
		return data

	async def aclose(self) -> None:
		await self._client.aclose()
