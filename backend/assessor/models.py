from __future__ import annotations
from datetime import datetime
from sqlalchemy import Column, String, DateTime, Integer, Float, Text, ForeignKey, Index
from .db import Base


class UserProgress(Base):
	__tablename__ = "user_progress"
	# One document per user, keyed by the client's uid
	uid = Column(String(128), primary_key=True, index=True)
	level = Column(String(8), nullable=True)
	level_confidence = Column(Float, nullable=True)
	last_assessment_at = Column(DateTime, nullable=True)
	last_assessment_date_iso = Column(String(10), nullable=True)
	streak = Column(Integer, default=0, nullable=False)
	avatars_json = Column(Text, default="[]", nullable=False)  # JSON list of badge ids
	# Optimistic concurrency token; every write bumps it
	version = Column(Integer, default=1, nullable=False)
	created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
	updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)


class AssessmentRecord(Base):
	__tablename__ = "assessment_history"
	id = Column(String(32), primary_key=True)
	uid = Column(String(128), ForeignKey("user_progress.uid"), nullable=False)
	type = Column(String(16), nullable=False)
	payload_json = Column(Text, nullable=False)
	result_json = Column(Text, nullable=False)
	created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

	__table_args__ = (Index("ix_assessment_history_uid_created", "uid", "created_at"),)
