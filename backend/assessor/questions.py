from __future__ import annotations
from dataclasses import dataclass
from typing import List, Optional


MCQ = "mcq"
WRITING = "writing"


@dataclass(frozen=True)
class Question:
	id: str
	type: str
	answer: Optional[str] = None


# Server-side answer key for the placement test; must match the client's question order
PLACEMENT_QUESTIONS: List[Question] = [
	Question("q1", MCQ, "went"),
	Question("q2", MCQ, "study"),
	Question("q3", MCQ, "In a restaurant"),
	Question("q4", MCQ, "He doesn't like pizza"),
	Question("q5", MCQ, "Verb is incorrect"),
	Question("q6", WRITING),
	Question("q7", MCQ, "had arrived"),
	Question("q8", MCQ, "The project will be finished next week"),
	Question("q9", MCQ, "should have"),
	Question("q10", MCQ, "He said he was busy"),
	Question("q11", MCQ, "turn off"),
]
