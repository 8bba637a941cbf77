"""Submission Service - submit/resubmit, manual grading, listings and statistics"""

import logging
from typing import Any, Dict, List, Optional, Sequence
from uuid import UUID

from pydantic import ValidationError
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from coursework.config import settings
from coursework.core.exceptions import InvalidRequestError, NotFoundError, StorageError
from coursework.models.assessment import Assignment, Submission
from coursework.models.enums import Correctness, QuestionKind
from coursework.schemas.assignment import (
    Answer,
    AnswerIn,
    AssignmentStatistics,
    FileRef,
    GradeDistribution,
    GradeSubmissionRequest,
    GradingResult,
    Question,
    SubmissionSummary,
)
from coursework.schemas.auth import CurrentUser
from coursework.services import storage_service as storage
from coursework.services.assignment_service import AssignmentService
from coursework.services.grading import grade_quiz
from coursework.services.payloads import decode_json_list, describe_validation_error
from coursework.utils.time import get_utc_now

logger = logging.getLogger(__name__)

# Raw-score cutoffs for the grade distribution, highest first
GRADE_BUCKETS = (
    ("excellent", 90),
    ("good", 80),
    ("satisfactory", 70),
)


class SubmissionService:
    """Service layer for student submissions"""

    @staticmethod
    def parse_answers(raw: Any) -> List[AnswerIn]:
        """Validate a raw answers payload; malformed payloads follow decode_json_list."""
        answers: List[AnswerIn] = []
        for index, item in enumerate(decode_json_list(raw, "answers")):
            try:
                answers.append(AnswerIn.model_validate(item))
            except ValidationError as e:
                raise InvalidRequestError(describe_validation_error("answers", index, e))
        return answers

    @staticmethod
    def _answer_kind(answer: AnswerIn, questions: Dict[str, Question]) -> Optional[QuestionKind]:
        question = questions.get(answer.question_id)
        return question.kind if question else answer.kind

    @staticmethod
    def check_file_indexes(
        answers: Sequence[AnswerIn], questions: Dict[str, Question], upload_count: int
    ) -> None:
        for index, answer in enumerate(answers):
            if SubmissionService._answer_kind(answer, questions) != QuestionKind.FILE_UPLOAD:
                continue
            if answer.file_index is not None and answer.file_index >= upload_count:
                raise InvalidRequestError(
                    f"answers[{index}].file_index: {answer.file_index} is out of range "
                    f"({upload_count} file(s) uploaded)"
                )

    @staticmethod
    def build_answers(
        answers: Sequence[AnswerIn], questions: Dict[str, Question], files: Sequence[FileRef]
    ) -> List[Answer]:
        """Stored answers; file-upload answers pick their file by position."""
        built = []
        for answer in answers:
            answer_files: List[FileRef] = []
            is_upload = SubmissionService._answer_kind(answer, questions) == QuestionKind.FILE_UPLOAD
            if is_upload and answer.file_index is not None:
                answer_files = [files[answer.file_index]]
            built.append(
                Answer(
                    question_id=answer.question_id,
                    answer=answer.answer,
                    answers=list(answer.answers),
                    files=answer_files,
                )
            )
        return built

    @staticmethod
    def apply_grading(answers: Sequence[Answer], grading: GradingResult) -> List[Answer]:
        """Copy grader output onto the submitted answers; unmatched answers earn nothing."""
        graded = {g.question_id: g for g in grading.graded_answers}
        merged = []
        for answer in answers:
            result = graded.get(answer.question_id)
            merged.append(
                answer.model_copy(
                    update={
                        "correctness": result.correctness if result else Correctness.UNKNOWN,
                        "points": result.points if result else 0.0,
                    }
                )
            )
        return merged

    @staticmethod
    async def get_student_submission(
        db: AsyncSession, assignment_id: UUID, student_id: UUID
    ) -> Optional[Submission]:
        result = await db.execute(
            select(Submission).where(
                Submission.assignment_id == assignment_id,
                Submission.student_id == student_id,
            )
        )
        return result.scalar_one_or_none()

    @staticmethod
    async def get_submission(db: AsyncSession, submission_id: UUID) -> Optional[Submission]:
        result = await db.execute(
            select(Submission)
            .options(selectinload(Submission.assignment))
            .where(Submission.id == submission_id)
        )
        return result.scalar_one_or_none()

    @staticmethod
    async def submit(
        db: AsyncSession,
        assignment_id: UUID,
        student: CurrentUser,
        content: Optional[str] = None,
        raw_answers: Any = None,
        uploads: Sequence[storage.Upload] = (),
    ) -> Submission:
        """
        Create the student's submission, or replace it in place on resubmission.

        Quiz answers are auto-graded when the assignment allows it. On
        resubmission the current content/answers/files move into the
        previous_* snapshot, overwriting any older snapshot. Files are stored
        before the submission row is written; a storage failure aborts the
        call without saving anything.
        """
        context = {"assignment_id": assignment_id, "student_id": student.id}
        assignment = await AssignmentService.get_assignment(db, assignment_id)

        existing = await SubmissionService.get_student_submission(db, assignment_id, student.id)
        if existing and not assignment.allow_resubmission:
            raise InvalidRequestError("Resubmission is not allowed for this assignment", context=context)

        answers_in = SubmissionService.parse_answers(raw_answers)
        questions = {q.id: q for q in AssignmentService.load_questions(assignment)}
        SubmissionService.check_file_indexes(answers_in, questions, len(uploads))

        try:
            files = await storage.store_uploads(
                uploads, key_prefix=f"{settings.SUBMISSIONS_KEY_PREFIX}/{assignment_id}"
            )
        except StorageError as e:
            e.context.update(context)
            raise

        answers = SubmissionService.build_answers(answers_in, questions, files)

        grading: Optional[GradingResult] = None
        if assignment.is_quiz and assignment.allow_automatic_grading and answers_in:
            grading = grade_quiz(list(questions.values()), answers_in)
            answers = SubmissionService.apply_grading(answers, grading)

        now = get_utc_now()
        answer_docs = [a.model_dump(mode="json") for a in answers]
        file_docs = [f.model_dump(mode="json") for f in files]

        if existing:
            submission = existing
            submission.previous_content = submission.content
            submission.previous_answers = submission.answers
            submission.previous_files = submission.files
            submission.content = content
            submission.answers = answer_docs
            submission.files = file_docs
            submission.submitted_at = now
            submission.resubmitted = True
            submission.resubmitted_at = now
        else:
            submission = Submission(
                assignment_id=assignment.id,
                student_id=student.id,
                content=content,
                answers=answer_docs,
                files=file_docs,
                total_points=assignment.total_points or settings.DEFAULT_TOTAL_POINTS,
                is_graded=False,
                auto_graded=False,
                submitted_at=now,
            )
            db.add(submission)

        if grading is not None:
            submission.grade = grading.total_score
            submission.total_points = grading.total_points
            submission.auto_graded = True
            submission.is_graded = True
            submission.graded_at = now

        try:
            await db.commit()
        except IntegrityError:
            # A concurrent first submission won the unique (assignment, student) slot
            await db.rollback()
            raise InvalidRequestError(
                "A submission already exists for this assignment; retry as a resubmission",
                context=context,
            )
        await db.refresh(submission)

        logger.info(
            "Submission resubmitted" if existing else "Submission created",
            extra={
                **context,
                "submission_id": submission.id,
                "auto_graded": grading is not None,
                "grade": submission.grade,
            },
        )
        return submission

    @staticmethod
    async def grade_submission(
        db: AsyncSession,
        assignment_id: UUID,
        submission_id: UUID,
        actor: CurrentUser,
        grade_in: GradeSubmissionRequest,
    ) -> Submission:
        """
        Manual grading by the assignment's owner or an admin.

        Per-answer overrides apply to quiz submissions, matched by
        question_id. Unless an explicit grade is given, the grade becomes the
        sum of the answers' points.
        """
        context = {"assignment_id": assignment_id, "submission_id": submission_id}
        submission = await SubmissionService.get_submission(db, submission_id)
        if not submission or submission.assignment_id != assignment_id:
            raise NotFoundError("Submission not found", context=context)

        assignment = submission.assignment
        AssignmentService.ensure_can_manage(assignment, actor)

        answers: Optional[List[Answer]] = None
        if grade_in.answers and assignment.is_quiz:
            answers = SubmissionService.apply_overrides(
                [Answer.model_validate(a) for a in (submission.answers or [])],
                grade_in,
                {q.id: q for q in AssignmentService.load_questions(assignment)},
            )

        if grade_in.grade is not None:
            submission.grade = grade_in.grade
        if grade_in.feedback is not None:
            submission.feedback = grade_in.feedback
        if answers is not None:
            submission.answers = [a.model_dump(mode="json") for a in answers]
            if grade_in.grade is None:
                submission.grade = float(sum(a.points for a in answers))

        submission.is_graded = True
        submission.graded_at = get_utc_now()

        await db.commit()
        await db.refresh(submission)

        logger.info(
            "Submission graded",
            extra={**context, "student_id": submission.student_id, "grade": submission.grade},
        )
        return submission

    @staticmethod
    def apply_overrides(
        answers: List[Answer], grade_in: GradeSubmissionRequest, questions: Dict[str, Question]
    ) -> List[Answer]:
        """
        Apply per-answer teacher overrides; points may not exceed the question's worth.
        Overrides for questions no longer on the assignment are ignored.
        """
        overrides = {}
        for index, override in enumerate(grade_in.answers or []):
            question = questions.get(override.question_id)
            if question is None:
                continue
            if override.points is not None and override.points > question.points:
                raise InvalidRequestError(
                    f"answers[{index}].points: {override.points} exceeds the question's "
                    f"{question.points} points"
                )
            overrides.setdefault(override.question_id, override)

        updated = []
        for answer in answers:
            override = overrides.get(answer.question_id)
            if override is None:
                updated.append(answer)
                continue
            changes: Dict[str, Any] = {}
            if override.points is not None:
                changes["points"] = override.points
            if override.feedback is not None:
                changes["feedback"] = override.feedback
            if override.is_correct is not None:
                changes["correctness"] = Correctness.from_bool(override.is_correct)
            updated.append(answer.model_copy(update=changes))
        return updated

    @staticmethod
    async def list_for_assignment(db: AsyncSession, assignment_id: UUID) -> List[Submission]:
        """All submissions for an assignment, latest first."""
        await AssignmentService.get_assignment(db, assignment_id)
        result = await db.execute(
            select(Submission)
            .where(Submission.assignment_id == assignment_id)
            .order_by(Submission.submitted_at.desc())
        )
        return list(result.scalars().all())

    @staticmethod
    async def list_for_student(
        db: AsyncSession, student_id: UUID, lesson_id: Optional[UUID] = None
    ) -> List[Submission]:
        """A student's own submissions with their assignment, optionally for one lesson."""
        query = (
            select(Submission)
            .options(selectinload(Submission.assignment))
            .where(Submission.student_id == student_id)
        )
        if lesson_id:
            query = query.join(Assignment, Submission.assignment_id == Assignment.id).where(
                Assignment.lesson_id == lesson_id
            )
        result = await db.execute(query.order_by(Submission.submitted_at.desc()))
        return list(result.scalars().all())

    @staticmethod
    def summarize(submissions: Sequence[Submission]) -> AssignmentStatistics:
        """
        Grade statistics. A submission counts as graded when it has a grade.

        The distribution uses raw grades against fixed 90/80/70 cutoffs,
        regardless of the assignment's point scale.
        """
        grades = [s.grade for s in submissions if s.grade is not None]
        average = round(sum(grades) / len(grades), 2) if grades else 0.0

        counts = {name: 0 for name, _ in GRADE_BUCKETS}
        needs_improvement = 0
        for grade in grades:
            for name, cutoff in GRADE_BUCKETS:
                if grade >= cutoff:
                    counts[name] += 1
                    break
            else:
                needs_improvement += 1

        return AssignmentStatistics(
            total=len(submissions),
            graded=len(grades),
            ungraded=len(submissions) - len(grades),
            average=average,
            distribution=GradeDistribution(
                **counts,
                needs_improvement=needs_improvement,
                ungraded=len(submissions) - len(grades),
            ),
            submissions=[SubmissionSummary.model_validate(s) for s in submissions],
        )

    @staticmethod
    async def get_statistics(db: AsyncSession, assignment_id: UUID) -> AssignmentStatistics:
        submissions = await SubmissionService.list_for_assignment(db, assignment_id)
        return SubmissionService.summarize(submissions)
