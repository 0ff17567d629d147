"""Daily streak and badge rules.

Streaks count consecutive UTC calendar days with at least one assessment.
Everything here is pure; ``today`` is always passed in by the caller.
"""

from __future__ import annotations
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from typing import Iterable, List, Optional, Tuple


# (minimum streak, badge id), ascending
BADGE_TIERS: List[Tuple[int, str]] = [
	(3, "starter"),
	(7, "bronze"),
	(14, "silver"),
	(30, "gold"),
]


@dataclass(frozen=True)
class StreakOutcome:
	streak: int
	today_iso: str
	changed: bool


def utc_today() -> date:
	return datetime.now(timezone.utc).date()


def _parse_day(value: Optional[str]) -> Optional[date]:
	if not value:
		return None
	try:
		# Accept full ISO timestamps too; only the calendar date matters
		return date.fromisoformat(str(value).strip()[:10])
	except ValueError:
		return None


def advance(prev_date_iso: Optional[str], prev_streak: Optional[int], today: Optional[date] = None) -> StreakOutcome:
	"""Compute the streak after an assessment made on ``today``.

	Args:
		prev_date_iso: Calendar date (YYYY-MM-DD) of the previous assessment, or None
		prev_streak: Stored streak count, or None for a new user
		today: Current calendar date; defaults to the UTC date

	Returns:
		StreakOutcome with the new count, today's ISO date and whether the
		count changed. A same-day call never changes the count.
	"""
	today = today or utc_today()
	today_iso = today.isoformat()
	previous = _parse_day(prev_date_iso)
	streak = prev_streak or 0

	if previous is None:
		return StreakOutcome(1, today_iso, True)
	if previous == today:
		return StreakOutcome(streak if streak > 0 else 1, today_iso, False)
	if previous == today - timedelta(days=1):
		return StreakOutcome(max(streak, 0) + 1, today_iso, True)
	# Gap of two or more days, or a date in the future
	return StreakOutcome(1, today_iso, True)


def award_badges(streak: int, existing: Optional[Iterable[str]] = None) -> Tuple[List[str], List[str]]:
	"""Add every badge tier ``streak`` has reached.

	Returns the full badge list (existing order kept, no duplicates, nothing
	removed) and the badges newly added by this call.
	"""
	badges: List[str] = []
	for badge in existing or []:
		if badge not in badges:
			badges.append(badge)
	added: List[str] = []
	for minimum, badge in BADGE_TIERS:
		if streak >= minimum and badge not in badges:
			badges.append(badge)
			added.append(badge)
	return badges, added
