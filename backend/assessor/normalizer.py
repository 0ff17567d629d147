"""
Model Output Normalizer
=======================

Language models are asked for "STRICT JSON only" but still wrap the object in
prose or markdown fences now and then. This module recovers the JSON object in
two stages and reports the outcome as a tagged value so that each caller
decides explicitly whether to degrade or to fail.

Stages:
1. Strip ``` fences (with or without a ``json`` tag) and parse the whole text.
2. Parse the greedy span from the first ``{`` to the last ``}``.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional

from .errors import UnparsableResponse


_FENCE_RE = re.compile(r"```(?:json)?", re.IGNORECASE)
_OBJECT_RE = re.compile(r"\{[\s\S]*\}")


class ParseStatus(str, Enum):
	PARSED = "parsed"
	DEGRADED = "degraded"
	FAILED = "failed"


@dataclass(frozen=True)
class ParseOutcome:
	"""Result of normalizing one model reply.

	Attributes:
		status: PARSED, DEGRADED or FAILED
		raw: The original model text, always kept
		data: The recovered object (PARSED) or ``{"raw": raw}`` (DEGRADED)
		error: Why parsing failed, for FAILED/DEGRADED outcomes
	"""
	status: ParseStatus
	raw: str
	data: Optional[Dict[str, Any]] = None
	error: Optional[str] = None

	@property
	def ok(self) -> bool:
		return self.status is ParseStatus.PARSED

	def degrade(self) -> "ParseOutcome":
		"""Turn a failure into a partial result that wraps the raw text."""
		if self.ok:
			return self
		return ParseOutcome(ParseStatus.DEGRADED, self.raw, {"raw": self.raw}, self.error)

	def unwrap(self) -> Dict[str, Any]:
		if not self.ok or self.data is None:
			raise UnparsableResponse("Model returned unparsable JSON", detail=self.error)
		return self.data


def _strip_fences(text: str) -> str:
	return _FENCE_RE.sub("", text).strip()


def _load_object(candidate: str) -> Optional[Dict[str, Any]]:
	try:
		value = json.loads(candidate)
	except ValueError:
		return None
	return value if isinstance(value, dict) else None


def parse_model_output(raw: Optional[str]) -> ParseOutcome:
	"""Recover the JSON object embedded in a model reply.

	Args:
		raw: Raw text returned by the model

	Returns:
		A PARSED outcome carrying the object, or a FAILED outcome carrying the
		raw text. Optional keys are left absent; no defaults are filled in.
	"""
	text = "" if raw is None else str(raw)
	cleaned = _strip_fences(text)
	data = _load_object(cleaned)
	if data is not None:
		return ParseOutcome(ParseStatus.PARSED, text, data)
	match = _OBJECT_RE.search(cleaned)
	if match:
		data = _load_object(match.group(0))
		if data is not None:
			return ParseOutcome(ParseStatus.PARSED, text, data)
		return ParseOutcome(ParseStatus.FAILED, text, error="object span is not valid JSON")
	return ParseOutcome(ParseStatus.FAILED, text, error="no JSON object found")


def normalize(raw: Optional[str]) -> Dict[str, Any]:
	"""Return the JSON object in ``raw`` or raise UnparsableResponse."""
	return parse_model_output(raw).unwrap()
