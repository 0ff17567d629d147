from __future__ import annotations
import math
from typing import Any, List, Mapping, Tuple


LEVELS: List[str] = ["A1", "A2", "B1", "B2", "C1", "C2"]
UNKNOWN_LEVEL = "Unknown"

SCORE_KEYS: Tuple[str, ...] = ("vocabulary", "grammar", "cohesion")
# Model replies sometimes use the short key
SCORE_ALIASES = {"vocab": "vocabulary"}

# Inclusive upper bounds on the overall score, checked in ascending order
THRESHOLDS: List[Tuple[float, str]] = [
	(20, "A1"),
	(35, "A2"),
	(55, "B1"),
	(75, "B2"),
	(90, "C1"),
]


def clamp(value: Any, low: float, high: float) -> float:
	"""Coerce ``value`` into [low, high]; junk counts as ``low``."""
	if isinstance(value, bool):
		return low
	try:
		number = float(value)
	except OverflowError:
		# Integers beyond float range are still finite, just far out of bounds
		return high if value > 0 else low
	except (TypeError, ValueError):
		return low
	if not math.isfinite(number):
		return low
	return max(low, min(number, high))


def clamp_score(value: Any) -> float:
	"""Coerce a sub-score to a finite number in [0, 100]; junk counts as 0."""
	return clamp(value, 0.0, 100.0)


def canonical_scores(scores: Mapping[str, Any]) -> dict:
	"""Rename aliased keys (``vocab``) and keep only the three sub-scores that are present."""
	out: dict = {}
	for key, value in (scores or {}).items():
		name = SCORE_ALIASES.get(key, key)
		if name in SCORE_KEYS and name not in out:
			out[name] = value
	return out


def overall_score(scores: Mapping[str, Any]) -> float:
	named = canonical_scores(scores)
	vocabulary = clamp_score(named.get("vocabulary"))
	grammar = clamp_score(named.get("grammar"))
	cohesion = clamp_score(named.get("cohesion"))
	# 0.4/0.4/0.2 weights, kept in integers so round inputs hit thresholds exactly
	return (4 * vocabulary + 4 * grammar + 2 * cohesion) / 10


def level_for_overall(overall: float) -> str:
	for bound, level in THRESHOLDS:
		if overall <= bound:
			return level
	return "C2"


def map_to_level(scores: Mapping[str, Any]) -> Tuple[str, float]:
	"""Map vocabulary/grammar/cohesion sub-scores to a CEFR level.

	Total over any input: missing or non-numeric scores count as 0 and values
	outside [0, 100] are clamped, so a level is always returned.
	"""
	overall = overall_score(scores)
	return level_for_overall(overall), overall
