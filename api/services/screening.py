"""Screening question service functions."""

from typing import Any, Optional, Sequence
import logging

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from core.exceptions import ValidationError
from core.middleware.authorization import CallerContext
from core.utils.datetime import isoformat
from database.models.applications import ApplicationActivityType, ApplicationStatus
from database.models.jobs import JobPosting
from database.models.screening import ScreeningAnswer, ScreeningQuestion
from database.repository import get_or_404
from recruitment import lifecycle
from recruitment.screening import KNOCKOUT_REJECTION_REASON, passes_knockout

from api.services.applications import (
    change_status,
    load_application,
    record_activity,
    serialize_application,
)

logger = logging.getLogger(__name__)


def serialize_question(question: ScreeningQuestion) -> dict[str, Any]:
    return {
        "id": question.id,
        "job_id": question.job_id,
        "question": question.question,
        "is_knockout": question.is_knockout,
        "knockout_answer": question.knockout_answer,
        "required": question.required,
        "order": question.question_order,
    }


def serialize_answer(answer: ScreeningAnswer) -> dict[str, Any]:
    return {
        "id": answer.id,
        "question_id": answer.question_id,
        "application_id": answer.application_id,
        "answer": answer.answer,
        "is_knockout": answer.is_knockout,
        "passed_knockout": answer.passed_knockout,
        "created_at": isoformat(answer.created_at),
    }


async def create_question(
    session: AsyncSession,
    job_id: int,
    question: str,
    is_knockout: bool = False,
    knockout_answer: Optional[str] = None,
    required: bool = True,
    order: Optional[int] = None,
) -> dict[str, Any]:
    """
    Add a screening question to a job.

    Raises:
        NotFoundError: If the job does not exist
        ValidationError: On a blank question, or a knockout without an expected answer
    """
    await get_or_404(session, JobPosting, job_id, "Job")
    if not question or not question.strip():
        raise ValidationError("Question text is required", {"field": "question"})
    if is_knockout and not (knockout_answer or "").strip():
        raise ValidationError(
            "A knockout question needs the expected answer", {"field": "knockout_answer"}
        )

    if order is None:
        last = await session.scalar(
            select(func.max(ScreeningQuestion.question_order)).where(
                ScreeningQuestion.job_id == job_id
            )
        )
        order = (last or 0) + 1

    record = ScreeningQuestion(
        job_id=job_id,
        question=question.strip(),
        is_knockout=is_knockout,
        knockout_answer=knockout_answer.strip() if knockout_answer else None,
        required=required,
        question_order=order,
    )
    session.add(record)
    await session.commit()
    return serialize_question(record)


async def list_questions(session: AsyncSession, job_id: int) -> list[dict[str, Any]]:
    await get_or_404(session, JobPosting, job_id, "Job")
    result = await session.execute(
        select(ScreeningQuestion)
        .where(ScreeningQuestion.job_id == job_id)
        .order_by(ScreeningQuestion.question_order, ScreeningQuestion.id)
    )
    return [serialize_question(q) for q in result.scalars().all()]


async def submit_answers(
    session: AsyncSession,
    application_id: int,
    answers: Sequence[dict[str, Any]],
    caller: Optional[CallerContext] = None,
) -> dict[str, Any]:
    """
    Store an applicant's screening answers and apply knockout rules.

    Each question keeps one answer per application; answering again
    replaces it. A failed knockout rejects the application in the same transaction,
    whatever its score, unless it is already accepted or rejected.

    Args:
        session: Database session
        application_id: Application answering
        answers: Items with ``question_id`` and ``answer``
        caller: Acting user

    Returns:
        Dictionary with stored answers, the failed knockout question ids
        and the application after evaluation

    Raises:
        NotFoundError: If the application does not exist
        ValidationError: On a question from another job or a missing
            required answer
    """
    application = await load_application(session, application_id)
    result = await session.execute(
        select(ScreeningQuestion).where(ScreeningQuestion.job_id == application.job_id)
    )
    questions = {q.id: q for q in result.scalars().all()}

    given: dict[int, str] = {}
    for entry in answers:
        question_id = entry.get("question_id")
        if question_id not in questions:
            raise ValidationError(
                f"Question {question_id} does not belong to job {application.job_id}",
                {"question_id": question_id},
            )
        given[question_id] = (entry.get("answer") or "").strip()

    missing = [q.id for q in questions.values() if q.required and not given.get(q.id)]
    if missing:
        raise ValidationError("Required screening questions unanswered", {"question_ids": missing})

    previous = await session.execute(
        select(ScreeningAnswer).where(ScreeningAnswer.application_id == application_id)
    )
    existing = {a.question_id: a for a in previous.scalars().all()}

    stored = []
    failed = []
    for question_id, text in given.items():
        question = questions[question_id]
        passed = passes_knockout(question.is_knockout, question.knockout_answer, text)
        if not passed:
            failed.append(question_id)
        # A resubmission replaces the earlier answer
        record = existing.get(question_id)
        if record is None:
            record = ScreeningAnswer(question_id=question_id, application_id=application_id)
            session.add(record)
        record.answer = text
        record.is_knockout = question.is_knockout
        record.passed_knockout = passed
        stored.append(record)
    await session.flush()

    if failed and not lifecycle.is_terminal(application.status):
        record_activity(
            session,
            application_id,
            ApplicationActivityType.KNOCKOUT_FAILED,
            "Failed knockout screening",
            {"question_ids": failed},
            caller,
        )
        await change_status(
            session,
            application,
            ApplicationStatus.REJECTED,
            application.status,
            reason=KNOCKOUT_REJECTION_REASON,
            caller=caller,
            details={"question_ids": failed},
        )
        logger.info(
            f"Application {application_id} rejected on knockout questions {failed}",
            extra={"application_id": application_id},
        )

    await session.commit()
    return {
        "answers": [serialize_answer(a) for a in stored],
        "knockout_failed": failed,
        "application": serialize_application(application),
    }
