"""
Interview scheduling endpoints.
"""

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Path, Query, status
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import CallerContext, Permission, get_db, require_permission
from api.schemas.common import ERROR_RESPONSES
from api.services import interviews as interview_service
from database.models.interviews import InterviewMode, InterviewStatus

router = APIRouter(prefix="/interviews", tags=["interviews"], responses=ERROR_RESPONSES)


class ScheduleInterviewRequest(BaseModel):
    """Request model for scheduling an interview."""
    application_id: int = Field(..., description="Application to interview")
    starts_at: datetime = Field(..., description="Start time (ISO 8601)")
    ends_at: datetime = Field(..., description="End time (ISO 8601)")
    panel: str = Field("", description="Interviewer names")
    mode: InterviewMode = Field(InterviewMode.ONLINE)
    location: Optional[str] = Field(None, max_length=500, description="Room or meeting link")
    notes: Optional[str] = Field(None)


class InterviewStatusRequest(BaseModel):
    """Request model for recording an interview outcome."""
    status: InterviewStatus
    expected_status: InterviewStatus = Field(InterviewStatus.SCHEDULED)
    feedback: Optional[str] = Field(None)


class ScorecardRequest(BaseModel):
    """Request model for an interview scorecard."""
    application_id: int = Field(..., description="Application evaluated")
    interview_id: Optional[int] = Field(None, description="Interview the scorecard is for")
    overall_rating: int = Field(..., description="Overall rating from 1 to 5")
    recommend_hire: bool = Field(False)
    criteria_scores: dict[str, int] = Field(
        default_factory=dict, description="Criterion name to 1-5 rating"
    )
    evaluator_name: Optional[str] = Field(None, max_length=255)
    strengths: Optional[str] = Field(None)
    weaknesses: Optional[str] = Field(None)
    comments: Optional[str] = Field(None)


@router.post(
    "",
    status_code=status.HTTP_201_CREATED,
    summary="Schedule Interview",
    description="Schedule an interview. Requires interview:schedule permission.",
)
async def schedule_interview(
    request: ScheduleInterviewRequest,
    db: AsyncSession = Depends(get_db),
    caller: CallerContext = Depends(require_permission(Permission.INTERVIEW_SCHEDULE)),
):
    """Create the interview and return it with the invitation to deliver."""
    return await interview_service.schedule_interview(
        db, caller=caller, **request.model_dump()
    )


@router.get(
    "",
    summary="List Interviews",
    description="Interviews of an application by start time. Requires application:read permission.",
)
async def list_interviews(
    application_id: int = Query(..., description="Application ID"),
    db: AsyncSession = Depends(get_db),
    caller: CallerContext = Depends(require_permission(Permission.APPLICATION_READ)),
):
    return await interview_service.list_interviews(db, application_id)


@router.post(
    "/scorecards",
    status_code=status.HTTP_201_CREATED,
    summary="Submit Scorecard",
    description=(
        "Record the caller's evaluation of a candidate. "
        "Requires interview:evaluate permission."
    ),
)
async def submit_scorecard(
    request: ScorecardRequest,
    db: AsyncSession = Depends(get_db),
    caller: CallerContext = Depends(require_permission(Permission.INTERVIEW_EVALUATE)),
):
    return await interview_service.submit_scorecard(db, caller=caller, **request.model_dump())


@router.get(
    "/scorecards",
    summary="List Scorecards",
    description="Requires application:read permission.",
)
async def list_scorecards(
    application_id: int = Query(..., description="Application ID"),
    db: AsyncSession = Depends(get_db),
    caller: CallerContext = Depends(require_permission(Permission.APPLICATION_READ)),
):
    return await interview_service.list_scorecards(db, application_id)


@router.get(
    "/scorecards/summary",
    summary="Scorecard Summary",
    description=(
        "Average ratings and hire recommendations for an application. "
        "Requires application:read permission."
    ),
)
async def scorecard_summary(
    application_id: int = Query(..., description="Application ID"),
    db: AsyncSession = Depends(get_db),
    caller: CallerContext = Depends(require_permission(Permission.APPLICATION_READ)),
):
    return await interview_service.scorecard_summary(db, application_id)


@router.get(
    "/{interview_id}",
    summary="Get Interview",
    description="Requires application:read permission.",
)
async def get_interview(
    interview_id: int = Path(..., description="Interview ID"),
    db: AsyncSession = Depends(get_db),
    caller: CallerContext = Depends(require_permission(Permission.APPLICATION_READ)),
):
    return await interview_service.get_interview(db, interview_id)


@router.post(
    "/{interview_id}/status",
    summary="Update Interview Status",
    description="Complete, cancel or mark no-show. Requires interview:update permission.",
)
async def update_interview_status(
    request: InterviewStatusRequest,
    interview_id: int = Path(..., description="Interview ID"),
    db: AsyncSession = Depends(get_db),
    caller: CallerContext = Depends(require_permission(Permission.INTERVIEW_UPDATE)),
):
    return await interview_service.update_interview_status(
        db,
        interview_id,
        request.status,
        request.expected_status,
        request.feedback,
        caller,
    )
