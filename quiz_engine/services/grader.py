"""Auto-grader for multiple-choice quizzes.

`grade` is a pure function of the quiz definition and the raw answers: the
same inputs always produce the same graded record, and nothing is read from
or written to the database.
"""

from dataclasses import dataclass
from typing import Any, List, Sequence

from quiz_engine.errors import ValidationError
from quiz_engine.models import Quiz
from quiz_engine.utils import round1, round2


@dataclass(frozen=True)
class GradeResult:
    answers: List[dict]
    score: float
    percentage: float
    total_marks: int

    @property
    def correct_count(self) -> int:
        return sum(1 for a in self.answers if a["is_correct"])


def _is_valid_choice(value: Any, option_count: int) -> bool:
    # bool is an int subclass; JSON true/false is not an option index
    if isinstance(value, bool) or not isinstance(value, int):
        return False
    return 0 <= value < option_count


def marks_for_question(question: dict, total_marks: int, num_questions: int) -> float:
    """Authored marks when positive, otherwise an even 2-decimal split of the total.

    The split is computed per question, not normalised across questions, so
    the implicit marks may sum to slightly more or less than `total_marks`.
    """
    marks = question.get("marks")
    if marks is not None and marks > 0:
        return marks
    return round2(total_marks / num_questions)


def grade(quiz: Quiz, raw_answers: Sequence[Any]) -> GradeResult:
    questions = quiz.questions or []
    num_questions = len(questions)
    if num_questions == 0:
        raise ValidationError("Quiz has no questions")

    if len(raw_answers) != num_questions:
        raise ValidationError(
            f"Expected {num_questions} answers, got {len(raw_answers)}"
        )

    raw_score = 0.0
    detailed = []
    for i, question in enumerate(questions):
        selected = raw_answers[i]
        if not _is_valid_choice(selected, len(question["options"])):
            raise ValidationError(
                f"Invalid answer for question {i + 1}", question_index=i
            )

        correct = question["correct_option_index"]
        is_correct = selected == correct
        question_marks = marks_for_question(question, quiz.total_marks, num_questions)
        awarded = question_marks if is_correct else 0
        raw_score += awarded

        detailed.append(
            {
                "question_index": i,
                "selected_option": selected,
                "correct_answer": correct,
                "is_correct": is_correct,
                "marks_awarded": awarded,
                "question_text": question["text"],
                "options": list(question["options"]),
                "question_marks": question_marks,
            }
        )

    # Clamp guards against the per-question rounding pushing past the ceiling.
    score = float(max(0.0, min(round2(raw_score), quiz.total_marks)))
    percentage = round1(100 * score / quiz.total_marks)
    return GradeResult(
        answers=detailed,
        score=score,
        percentage=percentage,
        total_marks=quiz.total_marks,
    )
