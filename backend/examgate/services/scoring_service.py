from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Sequence

from ..errors import AnswerMismatch

UNANSWERED = -1
MAX_SCORE = 10


@dataclass(frozen=True)
class ScoreSummary:
    score: float
    correct_count: int
    total_questions: int


def round_score(value: float) -> float:
    """Round to 2 decimals, halves away from zero (0.625 -> 0.63)."""
    return float(Decimal(str(value)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def score_answers(answers: Sequence[int], question_keys: Sequence[Any]) -> ScoreSummary:
    """
    Grade ``answers`` against ``question_keys`` position by position.
    - answers: one option index per question, UNANSWERED (-1) for a skipped question
    - question_keys: objects with a ``correct_option`` attribute (ORM questions), in exam order

    Returns ScoreSummary with score on a 0-10 scale, 2 decimals.
    Raises AnswerMismatch when the two sequences differ in length.
    """
    total = len(question_keys)
    if total == 0:
        raise ValueError("cannot score an exam without questions")
    if len(answers) != total:
        raise AnswerMismatch(
            f"Received {len(answers)} answers for an exam with {total} questions"
        )

    correct = 0
    for ans, q in zip(answers, question_keys):
        if ans != UNANSWERED and ans == q.correct_option:
            correct += 1

    return ScoreSummary(
        score=round_score(correct / total * MAX_SCORE),
        correct_count=correct,
        total_questions=total,
    )


def has_any_answer(answers: Sequence[int]) -> bool:
    return any(a != UNANSWERED for a in answers)
