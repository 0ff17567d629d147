from __future__ import annotations
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from .levels import clamp_score


class PlacementAnswer(BaseModel):
	model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

	# Any type on purpose: grading uses strict equality, "1" != 1
	selected: Any = None
	type: Optional[str] = None
	writing_sample: Optional[str] = Field(default=None, validation_alias=AliasChoices("writing_sample", "writingSample"))


class PlacementSubmission(BaseModel):
	model_config = ConfigDict(frozen=True, populate_by_name=True)

	uid: Optional[str] = None
	claimed_level: Optional[str] = Field(default=None, validation_alias=AliasChoices("claimed_level", "claimedLevel"))
	answers: List[PlacementAnswer]


class WritingSample(BaseModel):
	model_config = ConfigDict(frozen=True, populate_by_name=True)

	text: str = Field(validation_alias=AliasChoices("textSample", "text_sample", "text"))
	uid: str

	@field_validator("text", "uid")
	@classmethod
	def _not_blank(cls, value: str) -> str:
		value = (value or "").strip()
		if not value:
			raise ValueError("must not be empty")
		return value


class AssessmentResult(BaseModel):
	"""One assessment outcome; never mutated after creation."""
	model_config = ConfigDict(frozen=True)

	level: str
	confidence: float = Field(ge=0, le=1)
	scores: Dict[str, float] = Field(default_factory=dict)
	explanation: str = ""
	improvements: Optional[str] = None
	details: Optional[Dict[str, Any]] = None
	# Only set on degraded results: the model text that could not be parsed
	raw: Optional[str] = None

	@field_validator("scores")
	@classmethod
	def _clamp_scores(cls, value: Dict[str, Any]) -> Dict[str, float]:
		return {k: clamp_score(v) for k, v in value.items()}

	@property
	def graded(self) -> bool:
		return self.level != "Unknown"

	def to_dict(self) -> Dict[str, Any]:
		return self.model_dump(exclude_none=True)


class ProgressSnapshot(BaseModel):
	model_config = ConfigDict(from_attributes=True)

	uid: str
	level: Optional[str] = None
	level_confidence: Optional[float] = None
	last_assessment_at: Optional[datetime] = None
	last_assessment_date_iso: Optional[str] = None
	streak: int = 0
	avatars: List[str] = Field(default_factory=list)
	new_badges: List[str] = Field(default_factory=list)


class HistoryEntry(BaseModel):
	model_config = ConfigDict(from_attributes=True)

	id: str
	type: str
	payload: Dict[str, Any]
	result: Dict[str, Any]
	created_at: datetime
