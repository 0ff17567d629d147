"""
Assessment Evaluation
=====================

Turns a writing sample, a speaking recording or a placement submission into one
AssessmentResult.

- Writing/speaking: the model scores the text; if its reply cannot be parsed
  the result degrades to level "Unknown" instead of failing the request.
- Placement: multiple-choice answers are graded against the server-side key;
  an optional writing answer is scored by the model, whose sub-scores override
  the MCQ percentage. A model failure falls back to MCQ-only scoring.

The final level always comes from ``levels.map_to_level`` over the merged
sub-scores.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Protocol, Sequence

from .errors import AssessmentError, BadRequest, ProviderUnavailable
from .levels import SCORE_KEYS, UNKNOWN_LEVEL, canonical_scores, clamp, clamp_score, map_to_level
from .normalizer import ParseOutcome, parse_model_output
from .questions import MCQ, PLACEMENT_QUESTIONS, WRITING, Question
from .schemas import AssessmentResult, PlacementAnswer
from .settings import settings

logger = logging.getLogger(__name__)

MIN_PLACEMENT_WRITING_CHARS = 20


class TextGenerator(Protocol):
	async def generate(self, prompt: str) -> str: ...


class Transcriber(Protocol):
	async def transcribe(self, audio: bytes) -> str: ...


# ============================================================================
# MULTIPLE-CHOICE GRADING
# ============================================================================

@dataclass(frozen=True)
class McqGrading:
	correct: int
	total: int
	details: List[Dict[str, Any]] = field(default_factory=list)

	@property
	def percent(self) -> int:
		return round(self.correct / max(self.total, 1) * 100)


def grade_mcqs(questions: Sequence[Question], answers: Sequence[PlacementAnswer]) -> McqGrading:
	correct = 0
	total = 0
	details: List[Dict[str, Any]] = []
	for idx, question in enumerate(questions):
		if question.type != MCQ:
			continue
		total += 1
		selected = answers[idx].selected if idx < len(answers) else None
		is_correct = selected is not None and selected == question.answer
		if is_correct:
			correct += 1
		details.append({"id": question.id, "expected": question.answer, "selected": selected, "is_correct": is_correct})
	return McqGrading(correct=correct, total=total, details=details)


def find_writing_sample(questions: Sequence[Question], answers: Sequence[PlacementAnswer]) -> Optional[str]:
	"""Return the first writing answer long enough to be worth scoring."""
	for idx, question in enumerate(questions):
		if question.type != WRITING or idx >= len(answers):
			continue
		sample = (answers[idx].writing_sample or "").strip()
		if len(sample) >= MIN_PLACEMENT_WRITING_CHARS:
			return sample
	return None


# ============================================================================
# PROMPTS
# ============================================================================

def build_evaluation_prompt(text: str, kind: str = "writing") -> str:
	source = "transcript of a spoken answer" if kind == "speaking" else "writing sample"
	return f"""
You are an expert English teacher and CEFR examiner. Analyze the student's {source}.

Score each dimension from 0 to 100:
- vocabulary: range and appropriacy of lexis
- grammar: range and accuracy of structures
- cohesion: organisation, linking words and flow

Return STRICT JSON only, no markdown, following exactly this schema:
{{
  "level": "A1|A2|B1|B2|C1|C2",
  "confidence": number (0-1),
  "scores": {{"vocabulary": number, "grammar": number, "cohesion": number}},
  "explanation": "two or three sentences on the level",
  "improvements": "one or two concrete suggestions"
}}

Text:
\"\"\"{text}\"\"\"
""".strip()


# ============================================================================
# EVALUATOR
# ============================================================================

def _model_scores(data: Dict[str, Any]) -> Dict[str, Any]:
	scores = data.get("scores")
	if not isinstance(scores, dict):
		return {}
	return {k: v for k, v in canonical_scores(scores).items() if _is_number(v)}


def _is_number(value: Any) -> bool:
	return isinstance(value, (int, float)) and not isinstance(value, bool)


def _confidence(value: Any, default: float) -> float:
	if not _is_number(value):
		return default
	return clamp(value, 0.0, 1.0)


def _text_or_none(value: Any) -> Optional[str]:
	if isinstance(value, str) and value.strip():
		return value.strip()
	return None


def degraded_result(outcome: ParseOutcome) -> AssessmentResult:
	return AssessmentResult(
		level=UNKNOWN_LEVEL,
		confidence=0,
		scores={},
		explanation="The evaluator reply could not be read.",
		raw=outcome.raw,
	)


class Evaluator:
	def __init__(self, generator: Optional[TextGenerator], transcriber: Optional[Transcriber] = None, *, questions: Optional[Sequence[Question]] = None) -> None:
		self.generator = generator
		self.transcriber = transcriber
		self.questions = list(questions) if questions is not None else PLACEMENT_QUESTIONS

	async def _ask_model(self, text: str, kind: str) -> ParseOutcome:
		if self.generator is None:
			raise ProviderUnavailable("Text evaluation provider is not configured")
		if len(text) > settings.max_writing_chars:
			text = text[: settings.max_writing_chars]
		raw = await self.generator.generate(build_evaluation_prompt(text, kind))
		return parse_model_output(raw)

	async def evaluate_text(self, text: str, kind: str = "writing") -> AssessmentResult:
		"""Score a writing sample or transcript with the model.

		Provider failures propagate. An unreadable reply, or one without all
		three numeric sub-scores, degrades to an "Unknown" result.
		"""
		text = (text or "").strip()
		if not text:
			raise BadRequest("text is required")
		outcome = await self._ask_model(text, kind)
		if not outcome.ok:
			logger.warning("Unparsable %s evaluation: %s", kind, outcome.error)
			return degraded_result(outcome.degrade())
		data = outcome.data or {}
		scores = _model_scores(data)
		if set(scores) != set(SCORE_KEYS):
			logger.warning("Incomplete %s scores from model: %s", kind, sorted(scores))
			return degraded_result(outcome.degrade())
		level, overall = map_to_level(scores)
		details: Dict[str, Any] = {"overall": overall}
		if data.get("level") is not None:
			details["model_level"] = data.get("level")
		return AssessmentResult(
			level=level,
			confidence=_confidence(data.get("confidence"), 0.0),
			scores={k: clamp_score(scores[k]) for k in SCORE_KEYS},
			explanation=_text_or_none(data.get("explanation")) or _text_or_none(data.get("analysis")) or "",
			improvements=_text_or_none(data.get("improvements")),
			details=details,
		)

	async def evaluate_speaking(self, audio: bytes) -> AssessmentResult:
		if not audio:
			raise BadRequest("audio file is required")
		if self.transcriber is None:
			raise ProviderUnavailable("Transcription provider is not configured")
		transcript = await self.transcriber.transcribe(audio)
		if not transcript.strip():
			raise BadRequest("No speech was recognised in the recording")
		result = await self.evaluate_text(transcript, "speaking")
		details = dict(result.details or {})
		details["transcript"] = transcript
		return result.model_copy(update={"details": details})

	async def evaluate_placement(self, answers: Sequence[PlacementAnswer]) -> AssessmentResult:
		grading = grade_mcqs(self.questions, answers)
		mcq_percent = grading.percent

		model_data: Optional[Dict[str, Any]] = None
		sample = find_writing_sample(self.questions, answers)
		if sample is not None:
			try:
				outcome = await self._ask_model(sample, "writing")
			except AssessmentError as err:
				logger.warning("Placement writing evaluation failed, using MCQ only: %s", err)
			else:
				if outcome.ok:
					model_data = outcome.data
				else:
					logger.warning("Unparsable placement writing evaluation: %s", outcome.error)

		supplied = _model_scores(model_data) if model_data else {}
		scores = {k: clamp_score(supplied.get(k, mcq_percent)) for k in SCORE_KEYS}
		level, overall = map_to_level(scores)
		confidence = _confidence((model_data or {}).get("confidence"), mcq_percent / 100)
		explanation = None
		if model_data:
			explanation = _text_or_none(model_data.get("explanation")) or _text_or_none(model_data.get("analysis"))
		return AssessmentResult(
			level=level,
			confidence=confidence,
			scores=scores,
			explanation=explanation or f"MCQ accuracy {grading.correct}/{grading.total}",
			improvements=_text_or_none((model_data or {}).get("improvements")),
			details={
				"mcq": grading.details,
				"mcq_percent": mcq_percent,
				"overall": overall,
				"model": model_data,
			},
		)
