"""
Progress Reconciliation
=======================

Applies an AssessmentResult to the user's progress record and appends one
history entry, in a single transaction.

The record is written with compare-and-swap on its ``version`` column: the
UPDATE only matches the version that was read. When another request wins the
race, the record is re-read, the streak recomputed from the fresh values and
the write retried. Columns this module does not own are never written, so an
update behaves as a merge.
"""

from __future__ import annotations

import json
import logging
import uuid
from datetime import date, datetime, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from .errors import PersistenceFailure
from .models import AssessmentRecord, UserProgress
from .schemas import AssessmentResult, HistoryEntry, ProgressSnapshot
from .settings import settings
from .streaks import StreakOutcome, advance, award_badges

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
	return datetime.now(timezone.utc).replace(tzinfo=None)


def reconcile(
	prior: Optional[ProgressSnapshot],
	result: AssessmentResult,
	streak: StreakOutcome,
	badges: List[str],
	now: datetime,
) -> Dict[str, Any]:
	"""Compute the owned fields of the new progress snapshot.

	A degraded result (level "Unknown") keeps the prior level and confidence;
	the streak still counts the assessment.
	"""
	if result.graded:
		level, confidence = result.level, result.confidence
	else:
		level = prior.level if prior else None
		confidence = prior.level_confidence if prior else None
	return {
		"level": level,
		"level_confidence": confidence,
		"last_assessment_at": now,
		"last_assessment_date_iso": streak.today_iso,
		"streak": streak.streak,
		"avatars": list(badges),
	}


def _snapshot(row: UserProgress) -> ProgressSnapshot:
	return ProgressSnapshot(
		uid=row.uid,
		level=row.level,
		level_confidence=row.level_confidence,
		last_assessment_at=row.last_assessment_at,
		last_assessment_date_iso=row.last_assessment_date_iso,
		streak=row.streak or 0,
		avatars=json.loads(row.avatars_json or "[]"),
	)


def _columns(fields: Dict[str, Any]) -> Dict[str, Any]:
	values = {k: v for k, v in fields.items() if k != "avatars"}
	values["avatars_json"] = json.dumps(fields["avatars"])
	return values


class ProgressStore:
	def __init__(self, db: Session, *, max_attempts: Optional[int] = None) -> None:
		self.db = db
		self.max_attempts = max_attempts or settings.progress_write_attempts

	def _load(self, uid: str) -> Optional[UserProgress]:
		stmt = select(UserProgress).where(UserProgress.uid == uid).execution_options(populate_existing=True)
		return self.db.execute(stmt).scalar_one_or_none()

	def get(self, uid: str) -> Optional[ProgressSnapshot]:
		row = self._load(uid)
		return _snapshot(row) if row else None

	def history(self, uid: str, limit: int = 20) -> List[HistoryEntry]:
		stmt = (
			select(AssessmentRecord)
			.where(AssessmentRecord.uid == uid)
			.order_by(AssessmentRecord.created_at.desc())
			.limit(limit)
		)
		return [
			HistoryEntry(
				id=rec.id,
				type=rec.type,
				payload=json.loads(rec.payload_json),
				result=json.loads(rec.result_json),
				created_at=rec.created_at,
			)
			for rec in self.db.execute(stmt).scalars()
		]

	def record_assessment(
		self,
		uid: str,
		kind: str,
		payload: Dict[str, Any],
		result: AssessmentResult,
		*,
		today: Optional[date] = None,
	) -> ProgressSnapshot:
		"""Merge ``result`` into the user's progress and append a history entry.

		Raises:
			PersistenceFailure: The database failed, or the record kept changing
				underneath us for every attempt
		"""
		for attempt in range(1, self.max_attempts + 1):
			now = _utcnow()
			try:
				row = self._load(uid)
				prior = _snapshot(row) if row else None
				outcome = advance(
					prior.last_assessment_date_iso if prior else None,
					prior.streak if prior else 0,
					today or now.date(),
				)
				badges, added = award_badges(outcome.streak, prior.avatars if prior else [])
				fields = reconcile(prior, result, outcome, badges, now)

				if row is None:
					self.db.add(UserProgress(uid=uid, version=1, created_at=now, updated_at=now, **_columns(fields)))
					self.db.flush()
				else:
					res = self.db.execute(
						update(UserProgress)
						.where(UserProgress.uid == uid, UserProgress.version == row.version)
						.values(version=row.version + 1, updated_at=now, **_columns(fields))
						.execution_options(synchronize_session=False)
					)
					if res.rowcount != 1:
						self.db.rollback()
						logger.info("progress for %s changed concurrently (attempt %d)", uid, attempt)
						continue

				self.db.add(
					AssessmentRecord(
						id=uuid.uuid4().hex,
						uid=uid,
						type=kind,
						payload_json=json.dumps(payload, default=str),
						result_json=json.dumps(result.to_dict(), default=str),
						created_at=now,
					)
				)
				self.db.commit()
			except IntegrityError:
				# Another request created the record first
				self.db.rollback()
				logger.info("progress for %s was created concurrently (attempt %d)", uid, attempt)
				continue
			except SQLAlchemyError as err:
				self.db.rollback()
				raise PersistenceFailure(f"Failed to save progress: {err}", result=result.to_dict()) from err

			snapshot = ProgressSnapshot(uid=uid, new_badges=added, **fields)
			if added:
				logger.info("user %s earned %s", uid, ", ".join(added))
			return snapshot

		raise PersistenceFailure(
			f"Progress for {uid} kept changing; gave up after {self.max_attempts} attempts",
			result=result.to_dict(),
		)
