"""Unit tests for quiz auto-grading."""

import pytest

from coursework.models.enums import Correctness, QuestionKind
from coursework.schemas.assignment import AnswerIn, Question
from coursework.services.grading import grade_question, grade_quiz, score_enumeration


def _mc(qid="q1", correct="Paris", points=2):
    return Question(id=qid, text="Capital of France?", kind=QuestionKind.MULTIPLE_CHOICE,
                    options=["Paris", "Lyon"], correct_answer=correct, points=points)


def _enum(qid="q3", correct=("a", "b", "c"), points=3):
    return Question(id=qid, text="List them", kind=QuestionKind.ENUMERATION,
                    correct_answers=list(correct), points=points)


def test_multiple_choice_ignores_case_and_whitespace():
    result = grade_question(_mc(correct="paris"), AnswerIn(question_id="q1", answer="Paris "))
    assert result.correctness == Correctness.CORRECT
    assert result.points == 2
    assert result.max_points == 2


def test_multiple_choice_wrong_answer_scores_zero():
    result = grade_question(_mc(), AnswerIn(question_id="q1", answer="Lyon"))
    assert result.correctness == Correctness.INCORRECT
    assert result.points == 0


def test_multiple_choice_accepts_numeric_option():
    question = _mc(correct=2)
    result = grade_question(question, AnswerIn(question_id="q1", answer=2))
    assert question.correct_answer == "2"
    assert result.correctness == Correctness.CORRECT


def test_identification_exact_match():
    question = Question(id="q2", text="Symbol for gold?", kind=QuestionKind.IDENTIFICATION,
                        correct_answer="Au", points=1)
    assert grade_question(question, AnswerIn(question_id="q2", answer="  au")).points == 1
    assert grade_question(question, AnswerIn(question_id="q2", answer="Ag")).points == 0


def test_enumeration_partial_credit():
    result = grade_question(_enum(points=1), AnswerIn(question_id="q3", answers=["a", "b"]))
    assert result.points == pytest.approx(2 / 3)
    assert result.correctness == Correctness.INCORRECT


def test_enumeration_full_credit_in_any_order():
    result = grade_question(_enum(), AnswerIn(question_id="q3", answers=[" C", "a", "B"]))
    assert result.points == 3
    assert result.correctness == Correctness.CORRECT


def test_enumeration_counts_repeated_matches():
    correctness, points = score_enumeration(_enum(), AnswerIn(question_id="q3", answers=["a", "a", "a"]))
    assert points == 3
    assert correctness == Correctness.CORRECT


def test_enumeration_extra_items_are_not_fully_correct():
    correctness, points = score_enumeration(
        _enum(), AnswerIn(question_id="q3", answers=["a", "b", "c", "d"])
    )
    assert points == 3
    assert correctness == Correctness.INCORRECT


def test_enumeration_without_expected_items_scores_zero():
    correctness, points = score_enumeration(_enum(correct=()), AnswerIn(question_id="q3", answers=["a"]))
    assert points == 0
    assert correctness == Correctness.INCORRECT


@pytest.mark.parametrize("kind", [QuestionKind.ESSAY, QuestionKind.FILE_UPLOAD])
def test_manual_kinds_are_left_for_the_teacher(kind):
    question = Question(id="q4", text="Explain", kind=kind, points=4)
    result = grade_question(question, AnswerIn(question_id="q4", answer="A long answer"))
    assert result.correctness == Correctness.UNKNOWN
    assert result.points == 0
    assert result.max_points == 4


def test_missing_answer_is_treated_as_empty():
    result = grade_quiz([_mc()], [])
    assert result.total_score == 0
    assert result.total_points == 2
    assert result.graded_answers[0].correctness == Correctness.INCORRECT
    assert result.graded_answers[0].answer == ""


def test_answers_are_matched_by_question_id_not_position():
    questions = [_mc(qid="first"), _mc(qid="second", correct="Berlin")]
    answers = [
        AnswerIn(question_id="second", answer="Berlin"),
        AnswerIn(question_id="first", answer="Paris"),
    ]
    result = grade_quiz(questions, answers)
    assert result.total_score == 4
    assert [g.question_id for g in result.graded_answers] == ["first", "second"]


def test_repeated_question_id_uses_first_answer():
    answers = [AnswerIn(question_id="q1", answer="Lyon"), AnswerIn(question_id="q1", answer="Paris")]
    assert grade_quiz([_mc()], answers).total_score == 0


def test_total_score_is_sum_of_question_points():
    questions = [
        _mc(),
        Question(id="q2", text="Symbol for gold?", kind="identification", correct_answer="Au", points=1),
        _enum(),
    ]
    answers = [
        AnswerIn(question_id="q1", answer="paris"),
        AnswerIn(question_id="q2", answer="au"),
        AnswerIn(question_id="q3", answers=["a", "b"]),
    ]
    result = grade_quiz(questions, answers)
    assert result.total_score == pytest.approx(sum(g.points for g in result.graded_answers))
    assert result.total_score == pytest.approx(5.0)
    assert result.total_points == 6


def test_essay_points_count_toward_total_but_not_score():
    questions = [_mc(), Question(id="q4", text="Explain", kind="essay", points=5)]
    result = grade_quiz(questions, [AnswerIn(question_id="q1", answer="Paris")])
    assert result.total_score == 2
    assert result.total_points == 7


def test_empty_quiz():
    result = grade_quiz([], [AnswerIn(question_id="q1", answer="x")])
    assert result.total_score == 0
    assert result.total_points == 0
    assert result.graded_answers == []


def test_float_option_index_matches_integer_answer_key():
    result = grade_question(_mc(correct="1"), AnswerIn(question_id="q1", answer=1.0))
    assert result.correctness == Correctness.CORRECT
