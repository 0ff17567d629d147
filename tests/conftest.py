"""Shared fixtures: a throwaway SQLite database and fake providers."""

from __future__ import annotations

import json

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from assessor import models  # noqa: F401  (registers tables on Base)
from assessor.db import Base, get_db, make_engine
from assessor.evaluation import Evaluator
from assessor.main import app
from assessor.questions import MCQ, PLACEMENT_QUESTIONS
from assessor.routers.assess import get_evaluator
from assessor.schemas import PlacementAnswer


def model_reply(vocab=72, grammar=68, cohesion=70, confidence=0.76, fenced=True, **extra):
	body = {
		"level": "B1",
		"confidence": confidence,
		"scores": {"vocab": vocab, "grammar": grammar, "cohesion": cohesion},
		"explanation": "Good overall understanding with some grammar errors.",
		"improvements": "Review past tenses.",
	}
	body.update(extra)
	text = json.dumps(body)
	return f"```json\n{text}\n```" if fenced else text


class FakeGenerator:
	"""Returns queued replies in order; the last one repeats. Exceptions are raised."""

	def __init__(self, *replies):
		self.replies = list(replies) or [model_reply()]
		self.prompts = []

	async def generate(self, prompt):
		self.prompts.append(prompt)
		reply = self.replies.pop(0) if len(self.replies) > 1 else self.replies[0]
		if isinstance(reply, Exception):
			raise reply
		return reply


class FakeTranscriber:
	def __init__(self, result="I went to the market yesterday and bought some fresh vegetables."):
		self.result = result
		self.calls = []

	async def transcribe(self, audio):
		self.calls.append(audio)
		if isinstance(self.result, Exception):
			raise self.result
		return self.result


def placement_answers(correct=None, writing_sample=None):
	"""Answers in question order; the first ``correct`` MCQs are right, the rest wrong."""
	answers = []
	seen = 0
	for question in PLACEMENT_QUESTIONS:
		if question.type == MCQ:
			seen += 1
			right = correct is None or seen <= correct
			answers.append(PlacementAnswer(selected=question.answer if right else "wrong"))
		else:
			answers.append(PlacementAnswer(type="writing", writing_sample=writing_sample))
	return answers


@pytest.fixture
def engine(tmp_path):
	eng = make_engine(f"sqlite:///{tmp_path / 'assessor-test.db'}")
	Base.metadata.create_all(bind=eng)
	yield eng
	eng.dispose()


@pytest.fixture
def session_factory(engine):
	return sessionmaker(bind=engine, autoflush=False, future=True)


@pytest.fixture
def db(session_factory):
	session = session_factory()
	yield session
	session.close()


@pytest.fixture
def generator():
	return FakeGenerator()


@pytest.fixture
def transcriber():
	return FakeTranscriber()


@pytest.fixture
def client(session_factory, generator, transcriber):
	def _get_db():
		session = session_factory()
		try:
			yield session
		finally:
			session.close()

	app.dependency_overrides[get_db] = _get_db
	app.dependency_overrides[get_evaluator] = lambda: Evaluator(generator, transcriber)
	yield TestClient(app)
	app.dependency_overrides.clear()
