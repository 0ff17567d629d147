"""Tests for MCQ grading and the evaluation paths."""

import asyncio

import pytest

from assessor.errors import BadRequest, ProviderUnavailable, TranscriptionFailed
from assessor.evaluation import Evaluator, grade_mcqs
from assessor.questions import MCQ, WRITING, Question
from assessor.schemas import PlacementAnswer

from conftest import FakeGenerator, FakeTranscriber, model_reply, placement_answers

SAMPLE = "Last summer I travelled to Lisbon with my friends and we visited many museums."


def run(coro):
	return asyncio.run(coro)


# ---------------------------------------------------------------------------
# grading
# ---------------------------------------------------------------------------

FIVE_MCQS = [Question(f"q{i}", MCQ, f"answer-{i}") for i in range(1, 6)]


def test_grade_counts_missing_and_wrong_as_incorrect():
	answers = [
		PlacementAnswer(selected="answer-1"),
		PlacementAnswer(selected="answer-2"),
		PlacementAnswer(selected="nope"),
		PlacementAnswer(selected="answer-4"),
	]
	grading = grade_mcqs(FIVE_MCQS, answers)
	assert (grading.correct, grading.total, grading.percent) == (3, 5, 60)
	assert [d["is_correct"] for d in grading.details] == [True, True, False, True, False]
	assert grading.details[4]["selected"] is None


def test_grade_uses_strict_equality():
	questions = [Question("q1", MCQ, "1")]
	assert grade_mcqs(questions, [PlacementAnswer(selected=1)]).correct == 0
	assert grade_mcqs(questions, [PlacementAnswer(selected="1")]).correct == 1


def test_grade_skips_writing_questions():
	questions = [Question("q1", MCQ, "a"), Question("q2", WRITING), Question("q3", MCQ, "c")]
	answers = [PlacementAnswer(selected="a"), PlacementAnswer(selected="anything"), PlacementAnswer(selected="c")]
	grading = grade_mcqs(questions, answers)
	assert (grading.correct, grading.total, grading.percent) == (2, 2, 100)


def test_grade_without_mcqs_does_not_divide_by_zero():
	grading = grade_mcqs([Question("q1", WRITING)], [])
	assert (grading.correct, grading.total, grading.percent) == (0, 0, 0)


# ---------------------------------------------------------------------------
# writing / speaking
# ---------------------------------------------------------------------------

def test_writing_result_uses_level_mapper():
	generator = FakeGenerator(model_reply())
	result = run(Evaluator(generator).evaluate_text(SAMPLE))
	assert result.level == "B2"
	assert result.confidence == 0.76
	assert result.scores == {"vocabulary": 72, "grammar": 68, "cohesion": 70}
	assert result.improvements == "Review past tenses."
	assert result.details["model_level"] == "B1"
	assert result.details["overall"] == 70.0
	assert SAMPLE in generator.prompts[0]


def test_writing_scores_are_clamped_and_confidence_bounded():
	generator = FakeGenerator(model_reply(vocab=130, grammar=-5, cohesion=50, confidence=3))
	result = run(Evaluator(generator).evaluate_text(SAMPLE))
	assert result.scores == {"vocabulary": 100, "grammar": 0, "cohesion": 50}
	assert result.confidence == 1.0


def test_integers_beyond_float_range_are_clamped():
	huge = "9" * 401
	reply = '{"scores": {"vocabulary": ' + huge + ', "grammar": 50, "cohesion": -' + huge + '}, "confidence": ' + huge + '}'
	result = run(Evaluator(FakeGenerator(reply)).evaluate_text(SAMPLE))
	assert result.scores == {"vocabulary": 100.0, "grammar": 50.0, "cohesion": 0.0}
	assert result.level == "B2"
	assert result.confidence == 1.0


def test_writing_without_confidence_defaults_to_zero():
	reply = '{"scores": {"vocabulary": 50, "grammar": 50, "cohesion": 50}, "analysis": "Fine."}'
	result = run(Evaluator(FakeGenerator(reply)).evaluate_text(SAMPLE))
	assert result.level == "B1"
	assert result.confidence == 0.0
	assert result.explanation == "Fine."


def test_unparsable_writing_reply_degrades():
	reply = "The student writes at an intermediate level."
	result = run(Evaluator(FakeGenerator(reply)).evaluate_text(SAMPLE))
	assert result.level == "Unknown"
	assert result.confidence == 0
	assert result.scores == {}
	assert result.raw == reply
	assert not result.graded


def test_incomplete_scores_degrade():
	reply = '{"level": "B1", "scores": {"vocabulary": 60}}'
	result = run(Evaluator(FakeGenerator(reply)).evaluate_text(SAMPLE))
	assert result.level == "Unknown"
	assert result.raw == reply


def test_writing_provider_failure_propagates():
	generator = FakeGenerator(ProviderUnavailable("Gemini error 503"))
	with pytest.raises(ProviderUnavailable):
		run(Evaluator(generator).evaluate_text(SAMPLE))


def test_writing_requires_text_and_provider():
	with pytest.raises(BadRequest):
		run(Evaluator(FakeGenerator()).evaluate_text("   "))
	with pytest.raises(ProviderUnavailable):
		run(Evaluator(None).evaluate_text(SAMPLE))


def test_speaking_transcribes_then_scores():
	transcriber = FakeTranscriber("Well, I think travelling is important because it opens the mind.")
	generator = FakeGenerator(model_reply())
	result = run(Evaluator(generator, transcriber).evaluate_speaking(b"audio-bytes"))
	assert transcriber.calls == [b"audio-bytes"]
	assert result.level == "B2"
	assert result.details["transcript"].startswith("Well, I think")
	assert "transcript of a spoken answer" in generator.prompts[0]


def test_speaking_failures():
	with pytest.raises(BadRequest):
		run(Evaluator(FakeGenerator(), FakeTranscriber("  ")).evaluate_speaking(b"x"))
	with pytest.raises(ProviderUnavailable):
		run(Evaluator(FakeGenerator(), None).evaluate_speaking(b"x"))
	with pytest.raises(TranscriptionFailed):
		run(Evaluator(FakeGenerator(), FakeTranscriber(TranscriptionFailed("bad audio"))).evaluate_speaking(b"x"))


# ---------------------------------------------------------------------------
# placement
# ---------------------------------------------------------------------------

def test_placement_mcq_only():
	generator = FakeGenerator()
	result = run(Evaluator(generator).evaluate_placement(placement_answers(correct=10)))
	assert result.scores == {"vocabulary": 100, "grammar": 100, "cohesion": 100}
	assert result.level == "C2"
	assert result.confidence == 1.0
	assert result.explanation == "MCQ accuracy 10/10"
	assert result.details["model"] is None
	assert generator.prompts == []


def test_placement_short_writing_is_not_sent_to_model():
	generator = FakeGenerator()
	run(Evaluator(generator).evaluate_placement(placement_answers(correct=5, writing_sample="  too short text  ")))
	assert generator.prompts == []


def test_placement_model_scores_override_mcq_percent():
	reply = '{"scores": {"vocab": 40}, "confidence": 0.9, "explanation": "Limited range."}'
	generator = FakeGenerator(reply)
	result = run(Evaluator(generator).evaluate_placement(placement_answers(correct=10, writing_sample=SAMPLE)))
	assert result.scores == {"vocabulary": 40, "grammar": 100, "cohesion": 100}
	assert result.details["overall"] == 76.0
	assert result.level == "C1"
	assert result.confidence == 0.9
	assert result.explanation == "Limited range."
	assert len(generator.prompts) == 1


@pytest.mark.parametrize("reply", [ProviderUnavailable("Gemini request failed"), "no json at all"])
def test_placement_falls_back_to_mcq_when_model_fails(reply):
	answers = placement_answers(correct=6, writing_sample=SAMPLE)
	result = run(Evaluator(FakeGenerator(reply)).evaluate_placement(answers))
	assert result.details["mcq_percent"] == 60
	assert result.scores == {"vocabulary": 60, "grammar": 60, "cohesion": 60}
	assert result.level == "B2"
	assert result.confidence == 0.6
	assert result.explanation == "MCQ accuracy 6/10"


def test_placement_without_provider_still_scores():
	result = run(Evaluator(None).evaluate_placement(placement_answers(correct=3, writing_sample=SAMPLE)))
	assert result.details["mcq_percent"] == 30
	assert result.level == "A2"
