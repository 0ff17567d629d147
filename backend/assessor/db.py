from __future__ import annotations
from sqlalchemy import create_engine, inspect
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, declarative_base
from .settings import settings


DATABASE_URL = settings.database_url or "sqlite:///./assessor.db"


def make_engine(url: str) -> Engine:
	connect_args = {"check_same_thread": False} if url.startswith("sqlite") else {}
	return create_engine(url, connect_args=connect_args, future=True)


engine = make_engine(DATABASE_URL)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine, future=True)
Base = declarative_base()


def get_db():
	db = SessionLocal()
	try:
		yield db
	finally:
		db.close()


# Best-effort lightweight migrations for development (SQLite-friendly)
def ensure_schema(bind: Engine = engine) -> None:
	inspector = inspect(bind)
	tables = set(inspector.get_table_names())
	if "user_progress" in tables:
		cols = {c["name"] for c in inspector.get_columns("user_progress")}
		with bind.begin() as conn:
			if "version" not in cols:
				conn.exec_driver_sql("ALTER TABLE user_progress ADD COLUMN version INTEGER DEFAULT 1 NOT NULL")
			if "avatars_json" not in cols:
				conn.exec_driver_sql("ALTER TABLE user_progress ADD COLUMN avatars_json TEXT DEFAULT '[]' NOT NULL")
