"""Error kinds raised by the assessment pipeline.

Each error carries the HTTP status the API answers with; ``main`` maps them to
the ``{"ok": false, "error": ...}`` envelope.
"""

from __future__ import annotations
from typing import Any, Dict, Optional


class AssessmentError(Exception):
	status_code: int = 500

	def __init__(self, message: str, *, detail: Optional[Any] = None) -> None:
		super().__init__(message)
		self.message = message
		self.detail = detail

	def to_payload(self) -> Dict[str, Any]:
		return {"ok": False, "error": self.message}


class BadRequest(AssessmentError):
	status_code = 400


class MethodNotAllowed(AssessmentError):
	status_code = 405


class ProviderUnavailable(AssessmentError):
	"""Upload, transcription or model HTTP call failed."""
	status_code = 502


class TranscriptionFailed(AssessmentError):
	"""The transcription job reached its ``error`` state."""
	status_code = 502


class TranscriptionTimeout(AssessmentError):
	"""The transcription job did not finish within the poll budget."""
	status_code = 504


class UnparsableResponse(AssessmentError):
	status_code = 502


class PersistenceFailure(AssessmentError):
	status_code = 500

	def __init__(self, message: str, *, detail: Optional[Any] = None, result: Optional[Dict[str, Any]] = None) -> None:
		super().__init__(message, detail=detail)
		# The assessment itself may have succeeded; keep it so callers can tell
		self.result = result

	def to_payload(self) -> Dict[str, Any]:
		payload = super().to_payload()
		payload["saved"] = False
		if self.result is not None:
			payload["result"] = self.result
		return payload
