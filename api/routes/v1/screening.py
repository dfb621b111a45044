"""
Screening question endpoints.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import CallerContext, Permission, get_db, require_permission
from api.schemas.common import ERROR_RESPONSES
from api.services import screening as screening_service

router = APIRouter(prefix="/screening", tags=["screening"], responses=ERROR_RESPONSES)


class CreateQuestionRequest(BaseModel):
    """Request model for a screening question."""
    job_id: int = Field(..., description="Job the question belongs to")
    question: str = Field(..., min_length=1)
    is_knockout: bool = Field(False, description="A wrong answer rejects the application")
    knockout_answer: Optional[str] = Field(None, max_length=255, description="Expected answer")
    required: bool = Field(True)
    order: Optional[int] = Field(None, description="Position (default: last)")


class AnswerItem(BaseModel):
    question_id: int
    answer: str = Field("", description="Applicant's answer")


class SubmitAnswersRequest(BaseModel):
    application_id: int = Field(..., description="Application answering")
    answers: list[AnswerItem] = Field(default_factory=list)


@router.post(
    "/questions",
    status_code=status.HTTP_201_CREATED,
    summary="Create Question",
    description="Requires screening:manage permission.",
)
async def create_question(
    request: CreateQuestionRequest,
    db: AsyncSession = Depends(get_db),
    caller: CallerContext = Depends(require_permission(Permission.SCREENING_MANAGE)),
):
    return await screening_service.create_question(db, **request.model_dump())


@router.get(
    "/questions",
    summary="List Questions",
    description="Questions of a job in order. Requires job:read permission.",
)
async def list_questions(
    job_id: int = Query(..., description="Job ID"),
    db: AsyncSession = Depends(get_db),
    caller: CallerContext = Depends(require_permission(Permission.JOB_READ)),
):
    return await screening_service.list_questions(db, job_id)


@router.post(
    "/answers",
    summary="Submit Answers",
    description=(
        "Store answers and apply knockout rules; a failed knockout rejects "
        "the application. Requires application:reject permission."
    ),
)
async def submit_answers(
    request: SubmitAnswersRequest,
    db: AsyncSession = Depends(get_db),
    caller: CallerContext = Depends(require_permission(Permission.APPLICATION_REJECT)),
):
    return await screening_service.submit_answers(
        db,
        request.application_id,
        [answer.model_dump() for answer in request.answers],
        caller,
    )
