"""Assignment Service - creation, updates and reads of assignments"""

import logging
from typing import Any, List, Optional, Sequence
from uuid import UUID

from pydantic import ValidationError
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from coursework.config import settings
from coursework.core.exceptions import ForbiddenError, InvalidRequestError, NotFoundError, StorageError
from coursework.models.assessment import Assignment
from coursework.models.enums import AssignmentKind
from coursework.schemas.assignment import AssignmentCreate, AssignmentUpdate, FileRef, Question
from coursework.schemas.auth import CurrentUser
from coursework.services import storage_service as storage
from coursework.services.payloads import decode_json_list, describe_validation_error

logger = logging.getLogger(__name__)

# Plain attributes copied from an update payload
_UPDATABLE_FIELDS = (
    "title",
    "description",
    "instructions",
    "kind",
    "due_date",
    "lesson_id",
    "allow_automatic_grading",
    "allow_resubmission",
)


class AssignmentService:
    """Service layer for assignment definitions"""

    @staticmethod
    def parse_questions(raw: Any) -> List[Question]:
        """
        Normalize a raw questions payload into Question objects.

        Missing kind defaults to multiple choice, missing/zero points to 1 and
        missing order to the question's position. A malformed payload becomes
        an empty list (see decode_json_list); an individual question that
        breaks a field constraint is rejected.
        """
        questions: List[Question] = []
        seen_ids = set()
        for index, item in enumerate(decode_json_list(raw, "questions")):
            try:
                question = Question.model_validate(item)
            except ValidationError as e:
                raise InvalidRequestError(describe_validation_error("questions", index, e))
            if question.order is None:
                question.order = index
            if question.id in seen_ids:
                raise InvalidRequestError(f"questions[{index}].id: duplicate question id {question.id}")
            seen_ids.add(question.id)
            questions.append(question)
        return questions

    @staticmethod
    def total_points(questions: Sequence[Question]) -> float:
        return float(sum(q.points for q in questions))

    @staticmethod
    def load_questions(assignment: Assignment) -> List[Question]:
        """Stored question documents as Question objects."""
        return [Question.model_validate(q) for q in (assignment.questions or [])]

    @staticmethod
    def ensure_can_manage(assignment: Assignment, actor: CurrentUser) -> None:
        """Only the creating teacher or an admin may change or grade an assignment."""
        if not actor.is_admin and not assignment.is_owned_by(actor.id):
            raise ForbiddenError(
                "Not authorized to manage this assignment",
                context={"assignment_id": assignment.id},
            )

    @staticmethod
    async def get_assignment(db: AsyncSession, assignment_id: UUID) -> Assignment:
        result = await db.execute(select(Assignment).where(Assignment.id == assignment_id))
        assignment = result.scalar_one_or_none()
        if not assignment:
            raise NotFoundError("Assignment not found", context={"assignment_id": assignment_id})
        return assignment

    @staticmethod
    async def list_assignments(db: AsyncSession, lesson_id: Optional[UUID] = None) -> List[Assignment]:
        """All assignments, newest first, optionally limited to one lesson."""
        query = select(Assignment)
        if lesson_id:
            query = query.where(Assignment.lesson_id == lesson_id)
        result = await db.execute(query.order_by(Assignment.created_at.desc()))
        return list(result.scalars().all())

    @staticmethod
    async def create_assignment(
        db: AsyncSession,
        actor: CurrentUser,
        assignment_in: AssignmentCreate,
        uploads: Sequence[storage.Upload] = (),
    ) -> Assignment:
        """Create an assignment. Attachments are stored before anything is written."""
        questions: List[Question] = []
        if assignment_in.kind == AssignmentKind.QUIZ and assignment_in.questions is not None:
            questions = AssignmentService.parse_questions(assignment_in.questions)

        allow_automatic_grading = assignment_in.allow_automatic_grading
        if allow_automatic_grading is None:
            allow_automatic_grading = assignment_in.kind == AssignmentKind.QUIZ

        attachments = await storage.store_uploads(uploads, key_prefix=settings.ATTACHMENTS_KEY_PREFIX)

        assignment = Assignment(
            created_by=actor.id,
            lesson_id=assignment_in.lesson_id,
            title=assignment_in.title,
            description=assignment_in.description,
            instructions=assignment_in.instructions,
            kind=assignment_in.kind,
            due_date=assignment_in.due_date,
            questions=[q.model_dump(mode="json") for q in questions],
            total_points=AssignmentService.total_points(questions),
            allow_automatic_grading=allow_automatic_grading,
            allow_resubmission=bool(assignment_in.allow_resubmission),
            attachments=[a.model_dump(mode="json") for a in attachments],
        )
        db.add(assignment)
        await db.commit()
        await db.refresh(assignment)

        logger.info(
            "Assignment created",
            extra={"assignment_id": assignment.id, "kind": assignment.kind.value, "questions": len(questions)},
        )
        return assignment

    @staticmethod
    async def update_assignment(
        db: AsyncSession,
        assignment_id: UUID,
        actor: CurrentUser,
        assignment_update: AssignmentUpdate,
        uploads: Sequence[storage.Upload] = (),
    ) -> Assignment:
        """
        Apply a partial update.

        Questions are replaced (and total points recomputed) only when a
        questions payload is supplied and the assignment is, or becomes, a
        quiz. New uploads are appended to the attachments; attachments listed
        in remove_attachment_ids are dropped from the row, and deleted from
        storage only after the commit. Delete failures are logged, not raised.
        """
        assignment = await AssignmentService.get_assignment(db, assignment_id)
        AssignmentService.ensure_can_manage(assignment, actor)

        update_data = assignment_update.model_dump(include=set(_UPDATABLE_FIELDS), exclude_unset=True)
        update_data = {field: value for field, value in update_data.items() if value is not None}
        resulting_kind = update_data.get("kind", assignment.kind)

        questions: Optional[List[Question]] = None
        if assignment_update.questions is not None and resulting_kind == AssignmentKind.QUIZ:
            questions = AssignmentService.parse_questions(assignment_update.questions)

        current = [FileRef.model_validate(a) for a in (assignment.attachments or [])]
        remove_ids = set(assignment_update.remove_attachment_ids)
        unknown = remove_ids - {a.storage_id for a in current if a.storage_id}
        if unknown:
            raise InvalidRequestError(
                f"remove_attachment_ids: unknown attachment ids {sorted(unknown)}",
                context={"assignment_id": assignment_id},
            )

        added = await storage.store_uploads(uploads, key_prefix=settings.ATTACHMENTS_KEY_PREFIX)

        for field, value in update_data.items():
            setattr(assignment, field, value)
        if questions is not None:
            assignment.questions = [q.model_dump(mode="json") for q in questions]
            assignment.total_points = AssignmentService.total_points(questions)
        if added or remove_ids:
            kept = [a for a in current if a.storage_id not in remove_ids]
            assignment.attachments = [a.model_dump(mode="json") for a in kept + added]

        await db.commit()
        await db.refresh(assignment)

        # The row no longer references removed files; a failed delete only orphans the object
        orphaned = []
        for storage_id in sorted(remove_ids):
            try:
                await storage.delete(storage_id)
            except StorageError:
                orphaned.append(storage_id)
        if orphaned:
            logger.error(
                "Removed attachments could not be deleted from storage",
                extra={"assignment_id": assignment.id, "orphaned_storage_ids": orphaned},
            )

        logger.info("Assignment updated", extra={"assignment_id": assignment.id})
        return assignment
