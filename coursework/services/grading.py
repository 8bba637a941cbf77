"""Quiz auto-grading.

Pure functions only: given an assignment's questions and a student's answers,
compute per-question correctness/points and the totals. Answers are matched to
questions by ``question_id``, never by position, so reordering questions after
a submission does not shift grades.
"""

from typing import Dict, Iterable, List, Optional, Sequence

from coursework.models.enums import Correctness, QuestionKind
from coursework.schemas.assignment import AnswerIn, GradedAnswer, GradingResult, Question


def _normalize(value: Optional[str]) -> str:
    return (value or "").strip().lower()


def _index_answers(answers: Iterable[AnswerIn]) -> Dict[str, AnswerIn]:
    # First answer wins when a client repeats a question_id
    indexed: Dict[str, AnswerIn] = {}
    for answer in answers:
        if answer.question_id and answer.question_id not in indexed:
            indexed[answer.question_id] = answer
    return indexed


def score_exact_match(question: Question, answer: Optional[AnswerIn]) -> tuple[Correctness, float]:
    """Multiple-choice and identification: trimmed, case-insensitive equality."""
    student_answer = _normalize(answer.answer if answer else None)
    is_correct = student_answer == _normalize(question.correct_answer)
    return Correctness.from_bool(is_correct), question.points if is_correct else 0.0


def score_enumeration(question: Question, answer: Optional[AnswerIn]) -> tuple[Correctness, float]:
    """
    Partial credit: each student item found in the expected set earns
    ``points / len(correct_answers)``. Repeated items are not collapsed, so a
    duplicate that matches counts again; full marks additionally require the
    student to list exactly as many items as expected.
    """
    correct = [_normalize(item) for item in question.correct_answers]
    supplied = [_normalize(item) for item in (answer.answers if answer else [])]

    if not correct:
        return Correctness.INCORRECT, 0.0

    correct_count = sum(1 for item in supplied if item in correct)
    points = (correct_count / len(correct)) * question.points
    is_correct = correct_count == len(correct) and len(supplied) == len(correct)
    return Correctness.from_bool(is_correct), points


def grade_question(question: Question, answer: Optional[AnswerIn]) -> GradedAnswer:
    if not question.kind.is_auto_gradable:
        # Essays and file uploads always need a teacher
        correctness, points = Correctness.UNKNOWN, 0.0
    elif question.kind == QuestionKind.ENUMERATION:
        correctness, points = score_enumeration(question, answer)
    else:
        correctness, points = score_exact_match(question, answer)

    return GradedAnswer(
        question_id=question.id,
        question=question.text,
        kind=question.kind,
        answer=(answer.answer or "") if answer else "",
        answers=list(answer.answers) if answer else [],
        correctness=correctness,
        points=points,
        max_points=question.points,
    )


def grade_quiz(questions: Sequence[Question], answers: Sequence[AnswerIn]) -> GradingResult:
    """
    Grade every question of a quiz against the submitted answers.

    Scores accumulate as floats; nothing is rounded here. Callers must only
    pass questions of a quiz assignment.

    Args:
        questions: The assignment's questions
        answers: The student's answers, in any order

    Returns:
        GradingResult with total score, points available and one
        GradedAnswer per question
    """
    if not questions:
        return GradingResult(total_score=0, total_points=0, graded_answers=[])

    by_question = _index_answers(answers)
    total_score = 0.0
    total_points = 0.0
    graded: List[GradedAnswer] = []

    for question in questions:
        result = grade_question(question, by_question.get(question.id))
        total_points += question.points
        total_score += result.points
        graded.append(result)

    return GradingResult(total_score=total_score, total_points=total_points, graded_answers=graded)
