import json
from typing import Any, List, Optional, Type, TypeVar
from uuid import UUID

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile, status
from pydantic import BaseModel, ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from coursework.api import deps
from coursework.config import settings
from coursework.core.exceptions import InvalidRequestError
from coursework.schemas.assignment import (
    AssignmentCreate,
    AssignmentResponse,
    AssignmentStatistics,
    AssignmentUpdate,
    GradeSubmissionRequest,
    StudentSubmissionResponse,
    SubmissionResponse,
)
from coursework.schemas.auth import CurrentUser
from coursework.schemas.responses import SuccessResponse
from coursework.services import storage_service as storage
from coursework.services.assignment_service import AssignmentService
from coursework.services.submission_service import SubmissionService

router = APIRouter()

ModelT = TypeVar("ModelT", bound=BaseModel)


def _build(model: Type[ModelT], **fields: Any) -> ModelT:
    """Validate form fields into a schema, reporting the first bad field."""
    try:
        return model(**fields)
    except ValidationError as e:
        first = e.errors()[0]
        location = ".".join(str(part) for part in first.get("loc", ()))
        raise InvalidRequestError(f"{location}: {first.get('msg', 'invalid value')}")


async def _read_uploads(files: Optional[List[UploadFile]]) -> List[storage.Upload]:
    files = files or []
    if len(files) > settings.MAX_UPLOAD_FILES:
        raise InvalidRequestError(f"At most {settings.MAX_UPLOAD_FILES} files may be uploaded at once")
    return [
        storage.Upload(
            filename=f.filename or "upload",
            content=await f.read(),
            content_type=f.content_type,
        )
        for f in files
    ]


def _provided(**fields: Any) -> dict:
    return {name: value for name, value in fields.items() if value is not None}


@router.post("", response_model=SuccessResponse[AssignmentResponse], status_code=status.HTTP_201_CREATED)
async def create_assignment(
    title: str = Form(...),
    kind: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    instructions: Optional[str] = Form(None),
    due_date: Optional[str] = Form(None),
    lesson_id: Optional[str] = Form(None),
    questions: Optional[str] = Form(None),  # JSON list of questions (quizzes)
    allow_automatic_grading: Optional[bool] = Form(None),
    allow_resubmission: Optional[bool] = Form(None),
    attachments: Optional[List[UploadFile]] = File(None),
    current_user: CurrentUser = Depends(deps.require_teacher),
    db: AsyncSession = Depends(deps.get_db)
) -> Any:
    """
    Create an assignment, optionally a quiz with questions and attachments.
    """
    assignment_in = _build(
        AssignmentCreate,
        **_provided(
            title=title,
            kind=kind,
            description=description,
            instructions=instructions,
            due_date=due_date or None,
            lesson_id=lesson_id or None,
            questions=questions,
            allow_automatic_grading=allow_automatic_grading,
            allow_resubmission=allow_resubmission,
        ),
    )
    uploads = await _read_uploads(attachments)
    assignment = await AssignmentService.create_assignment(db, current_user, assignment_in, uploads)
    return SuccessResponse(data=AssignmentResponse.model_validate(assignment), message="Assignment created")


@router.get("", response_model=SuccessResponse[List[AssignmentResponse]])
async def list_assignments(
    lesson_id: Optional[UUID] = Query(None),
    current_user: CurrentUser = Depends(deps.get_current_user),
    db: AsyncSession = Depends(deps.get_db)
) -> Any:
    """
    List assignments, newest first.
    """
    assignments = await AssignmentService.list_assignments(db, lesson_id=lesson_id)
    return SuccessResponse(data=[AssignmentResponse.model_validate(a) for a in assignments])


@router.get("/submissions/student", response_model=SuccessResponse[List[StudentSubmissionResponse]])
async def list_my_submissions(
    lesson_id: Optional[UUID] = Query(None),
    current_user: CurrentUser = Depends(deps.require_student),
    db: AsyncSession = Depends(deps.get_db)
) -> Any:
    """
    The current student's submissions.
    """
    submissions = await SubmissionService.list_for_student(db, current_user.id, lesson_id=lesson_id)
    return SuccessResponse(data=[StudentSubmissionResponse.model_validate(s) for s in submissions])


@router.get("/{assignment_id}", response_model=SuccessResponse[AssignmentResponse])
async def get_assignment(
    assignment_id: UUID,
    current_user: CurrentUser = Depends(deps.get_current_user),
    db: AsyncSession = Depends(deps.get_db)
) -> Any:
    assignment = await AssignmentService.get_assignment(db, assignment_id)
    return SuccessResponse(data=AssignmentResponse.model_validate(assignment))


@router.put("/{assignment_id}", response_model=SuccessResponse[AssignmentResponse])
async def update_assignment(
    assignment_id: UUID,
    title: Optional[str] = Form(None),
    kind: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    instructions: Optional[str] = Form(None),
    due_date: Optional[str] = Form(None),
    lesson_id: Optional[str] = Form(None),
    questions: Optional[str] = Form(None),
    allow_automatic_grading: Optional[bool] = Form(None),
    allow_resubmission: Optional[bool] = Form(None),
    remove_attachment_ids: Optional[str] = Form(None),  # JSON list of storage ids
    attachments: Optional[List[UploadFile]] = File(None),
    current_user: CurrentUser = Depends(deps.require_teacher),
    db: AsyncSession = Depends(deps.get_db)
) -> Any:
    """
    Update an assignment. Only the creating teacher or an admin may edit it.
    """
    remove_ids: List[str] = []
    if remove_attachment_ids:
        try:
            remove_ids = json.loads(remove_attachment_ids)
        except json.JSONDecodeError:
            raise InvalidRequestError("remove_attachment_ids: must be a JSON list of ids")

    assignment_update = _build(
        AssignmentUpdate,
        remove_attachment_ids=remove_ids,
        **_provided(
            title=title or None,
            kind=kind or None,
            description=description,
            instructions=instructions,
            due_date=due_date or None,
            lesson_id=lesson_id or None,
            questions=questions,
            allow_automatic_grading=allow_automatic_grading,
            allow_resubmission=allow_resubmission,
        ),
    )
    uploads = await _read_uploads(attachments)
    assignment = await AssignmentService.update_assignment(
        db, assignment_id, current_user, assignment_update, uploads
    )
    return SuccessResponse(data=AssignmentResponse.model_validate(assignment), message="Assignment updated")


@router.post(
    "/{assignment_id}/submit",
    response_model=SuccessResponse[SubmissionResponse],
    status_code=status.HTTP_201_CREATED,
)
async def submit_assignment(
    assignment_id: UUID,
    content: Optional[str] = Form(None),
    answers: Optional[str] = Form(None),  # JSON list of {question_id, answer|answers, file_index?}
    files: Optional[List[UploadFile]] = File(None),
    current_user: CurrentUser = Depends(deps.get_current_user),
    db: AsyncSession = Depends(deps.get_db)
) -> Any:
    """
    Submit (or resubmit, when allowed) work for an assignment.
    Quizzes are auto-graded when automatic grading is enabled.
    """
    uploads = await _read_uploads(files)
    submission = await SubmissionService.submit(
        db, assignment_id, current_user, content=content, raw_answers=answers, uploads=uploads
    )
    return SuccessResponse(data=SubmissionResponse.model_validate(submission), message="Submission saved")


@router.get("/{assignment_id}/submissions", response_model=SuccessResponse[List[SubmissionResponse]])
async def list_submissions(
    assignment_id: UUID,
    current_user: CurrentUser = Depends(deps.require_teacher),
    db: AsyncSession = Depends(deps.get_db)
) -> Any:
    submissions = await SubmissionService.list_for_assignment(db, assignment_id)
    return SuccessResponse(data=[SubmissionResponse.model_validate(s) for s in submissions])


@router.put(
    "/{assignment_id}/submissions/{submission_id}/grade",
    response_model=SuccessResponse[SubmissionResponse],
)
async def grade_submission(
    assignment_id: UUID,
    submission_id: UUID,
    grade_in: GradeSubmissionRequest,
    current_user: CurrentUser = Depends(deps.require_teacher),
    db: AsyncSession = Depends(deps.get_db)
) -> Any:
    """
    Grade a submission, optionally overriding individual quiz answers.
    """
    submission = await SubmissionService.grade_submission(
        db, assignment_id, submission_id, current_user, grade_in
    )
    return SuccessResponse(data=SubmissionResponse.model_validate(submission), message="Submission graded")


@router.get("/{assignment_id}/statistics", response_model=SuccessResponse[AssignmentStatistics])
async def get_statistics(
    assignment_id: UUID,
    current_user: CurrentUser = Depends(deps.require_teacher),
    db: AsyncSession = Depends(deps.get_db)
) -> Any:
    statistics = await SubmissionService.get_statistics(db, assignment_id)
    return SuccessResponse(data=statistics)
