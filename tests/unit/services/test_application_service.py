"""
Tests for job, intake and application transition services.
"""

from datetime import date, timedelta

import pytest
from sqlalchemy import func, select

from api.services import applications as application_service
from api.services import jobs as job_service
from api.services import pipelines as pipeline_service
from api.services import screening as screening_service
from core.exceptions import ConflictError, NotFoundError, ValidationError
from database.models.applications import ApplicantType, ApplicationStatus
from database.models.screening import ScreeningQuestion


class TestJobs:
    """Test job postings and rule sets."""

    async def test_create_job_is_active(self, session, make_job):
        job = await make_job()

        assert job["status"] == "ACTIVE"
        assert job["accepting_applications"] is True

    async def test_blank_title_rejected(self, session):
        with pytest.raises(ValidationError):
            await job_service.create_job(session, "   ")

    async def test_unknown_pipeline(self, session):
        with pytest.raises(NotFoundError):
            await job_service.create_job(session, "Teller", pipeline_id=999)

    async def test_rule_set_normalized_on_save(self, session, make_job):
        job = await make_job(rules=None)
        rules = await job_service.upsert_rule_set(
            session, job["id"], must_have=["Loan", "loan ", "microfinance"], preferred=["credit"]
        )

        assert rules["must_have"] == ["Loan", "microfinance"]
        assert rules["shortlist_threshold"] == 35

    async def test_rule_set_upsert_replaces(self, session, make_job):
        job = await make_job()
        await job_service.upsert_rule_set(
            session, job["id"], must_have=["teller"], shortlist_threshold=60, reject_threshold=10
        )

        rules = await job_service.get_rule_set(session, job["id"])
        assert rules["must_have"] == ["teller"]
        assert rules["shortlist_threshold"] == 60

    async def test_invalid_thresholds(self, session, make_job):
        job = await make_job(rules=None)
        with pytest.raises(ValidationError):
            await job_service.upsert_rule_set(
                session, job["id"], shortlist_threshold=20, reject_threshold=30
            )

    async def test_close_job(self, session, make_job):
        job = await make_job()
        closed = await job_service.close_job(session, job["id"])

        assert closed["status"] == "CLOSED"
        assert closed["accepting_applications"] is False

    async def test_delete_job_drops_rules_and_questions(self, session, make_job):
        job = await make_job()
        await screening_service.create_question(session, job["id"], "Do you hold a CPA?")

        assert await job_service.delete_job(session, job["id"]) == {"id": job["id"], "deleted": True}

        assert await job_service.load_rule_set(session, job["id"]) is None
        remaining = await session.scalar(
            select(func.count(ScreeningQuestion.id)).where(ScreeningQuestion.job_id == job["id"])
        )
        assert remaining == 0
        with pytest.raises(NotFoundError):
            await job_service.get_job(session, job["id"])

    async def test_delete_job_with_applications_refused(self, session, make_job, make_application):
        job = await make_job()
        await make_application(job["id"])

        with pytest.raises(ConflictError) as exc_info:
            await job_service.delete_job(session, job["id"])
        assert exc_info.value.details["applications"] == 1
        assert (await job_service.get_rule_set(session, job["id"])) is not None


class TestApply:
    """Test intake scoring and classification."""

    async def test_strong_profile_is_shortlisted(self, session, make_job):
        job = await make_job()
        result = await application_service.apply(
            session,
            job["id"],
            "Jane",
            "Doe",
            "Jane@Example.com",
            resume_text="loan officer with microfinance credit experience",
        )

        assert result["decision"] == "SHORTLIST"
        assert result["application"]["status"] == "SHORTLISTED"
        assert result["application"]["email"] == "jane@example.com"
        assert "matched must-have: loan" in result["reasons"]

    async def test_empty_profile_is_auto_rejected(self, session, make_job):
        job = await make_job(rules=None)
        result = await application_service.apply(session, job["id"], "Sam", "Otieno", "sam@example.com")

        assert result["score"] == 0
        assert result["decision"] == "AUTO-REJECT"
        assert result["application"]["status"] == "REJECTED"
        assert result["application"]["rejection_reason"]
        assert result["auto_regret"] is False

    async def test_auto_regret_flag(self, session, make_job, loan_rules):
        job = await make_job(rules={**loan_rules, "auto_regret": True})
        result = await application_service.apply(session, job["id"], "Sam", "Otieno", "sam@example.com")

        assert result["auto_regret"] is True

    async def test_middle_score_is_received(self, session, make_job, make_application):
        job = await make_job()
        application = await make_application(job["id"], resume_text="loan processing")

        assert application["status"] == "RECEIVED"
        assert application["decision"] == "RECEIVED"

    async def test_internal_applicant_bonus_applies(self, session, make_job, make_application):
        job = await make_job()
        external = await make_application(job["id"], email="a@example.com", resume_text="loan")
        internal = await make_application(
            job["id"],
            email="b@example.com",
            resume_text="loan",
            applicant_type=ApplicantType.INTERNAL,
        )

        assert internal["score"] == external["score"] + 10

    async def test_duplicate_email_conflicts(self, session, make_job, make_application):
        job = await make_job()
        await make_application(job["id"], email="jane@example.com")

        with pytest.raises(ConflictError):
            await make_application(job["id"], email="JANE@example.com")

    async def test_local_phone_normalized(self, session, make_job, make_application):
        job = await make_job()
        application = await make_application(job["id"], phone="0712 345-678")

        assert application["phone"] == "+254712345678"

    async def test_invalid_phone(self, session, make_job, make_application):
        job = await make_job()

        with pytest.raises(ValidationError):
            await make_application(job["id"], phone="call me")

    async def test_closed_job_refuses(self, session, make_job, make_application):
        job = await make_job()
        await job_service.close_job(session, job["id"])

        with pytest.raises(ConflictError):
            await make_application(job["id"])

    async def test_past_deadline_refuses(self, session, make_job, make_application):
        job = await make_job(deadline=date.today() - timedelta(days=1))

        with pytest.raises(ConflictError):
            await make_application(job["id"])

    async def test_unknown_job(self, session, make_application):
        with pytest.raises(NotFoundError):
            await make_application(404)

    async def test_placed_on_first_stage(self, session, make_job, make_application):
        pipeline = await pipeline_service.create_pipeline(
            session, "Branch hiring", stages=[{"name": "Applied"}, {"name": "Interview"}]
        )
        job = await make_job(pipeline_id=pipeline["id"])
        application = await make_application(job["id"])

        assert application["current_stage_id"] == pipeline["stages"][0]["id"]


class TestTransitions:
    """Test guarded status changes."""

    async def test_advance_one_step(self, session, make_job, make_application, hr_caller):
        job = await make_job()
        application = await make_application(job["id"], resume_text="loan processing")

        advanced = await application_service.advance(
            session, application["id"], "RECEIVED", hr_caller
        )

        assert advanced["status"] == "REVIEWED"
        assert advanced["version"] == application["version"] + 1

    async def test_submitted_alias_accepted(self, session, make_job, make_application):
        job = await make_job()
        application = await make_application(job["id"], resume_text="loan processing")

        advanced = await application_service.advance(session, application["id"], "SUBMITTED")
        assert advanced["status"] == "REVIEWED"

    async def test_stale_expected_status(self, session, make_job, make_application):
        job = await make_job()
        application = await make_application(job["id"])

        with pytest.raises(ConflictError):
            await application_service.advance(session, application["id"], "REVIEWED")

    async def test_illegal_jump(self, session, make_job, make_application):
        job = await make_job()
        application = await make_application(job["id"], resume_text="loan processing")

        with pytest.raises(ConflictError):
            await application_service.transition(
                session, application["id"], "OFFERED", "RECEIVED"
            )

    @pytest.mark.parametrize("action,args", [
        ("advance", ("REVIEWED",)),
        ("transition", ("OFFERED", "SHORTLISTED")),
        ("reject", ("RECEIVED", "late")),
    ])
    async def test_refused_change_leaves_application_untouched(
        self, session, session_factory, make_job, make_application, action, args
    ):
        job = await make_job()
        before = await make_application(job["id"])
        assert before["status"] == "SHORTLISTED"

        with pytest.raises(ConflictError):
            await getattr(application_service, action)(session, before["id"], *args)

        async with session_factory() as fresh:
            after = await application_service.get_application(fresh, before["id"])
            activity = await application_service.list_activity(fresh, before["id"])

        for field in ("status", "score", "decision", "decision_reasons", "rejection_reason", "version"):
            assert after[field] == before[field]
        assert [a["activity_type"] for a in activity] == ["applied"]

    async def test_reject_requires_reason(self, session, make_job, make_application):
        job = await make_job()
        application = await make_application(job["id"])

        with pytest.raises(ValidationError):
            await application_service.reject(session, application["id"], "SHORTLISTED", "  ")

    async def test_reject_is_terminal(self, session, make_job, make_application, hr_caller):
        job = await make_job()
        application = await make_application(job["id"])

        rejected = await application_service.reject(
            session, application["id"], "SHORTLISTED", "position filled", hr_caller
        )
        assert rejected["status"] == "REJECTED"
        assert rejected["rejection_reason"] == "position filled"

        with pytest.raises(ConflictError):
            await application_service.advance(session, application["id"], "REJECTED")

    async def test_activity_trail(self, session, make_job, make_application, hr_caller):
        job = await make_job()
        application = await make_application(job["id"], resume_text="loan processing")
        await application_service.advance(session, application["id"], "RECEIVED", hr_caller)

        activity = await application_service.list_activity(session, application["id"])

        assert [a["activity_type"] for a in activity] == ["applied", "status_changed"]
        assert activity[1]["performed_by"] == "hr-1"
        assert activity[1]["details"]["from"] == "RECEIVED"
        assert activity[1]["details"]["to"] == "REVIEWED"

    async def test_list_filters(self, session, make_job, make_application):
        job = await make_job()
        await make_application(job["id"], email="a@example.com")
        await make_application(job["id"], email="b@example.com", resume_text="")

        rejected = await application_service.list_applications(
            session, job_id=job["id"], status=ApplicationStatus.REJECTED
        )
        assert [a["email"] for a in rejected] == ["b@example.com"]


class TestMoveStage:
    """Test kanban stage moves."""

    @pytest.fixture
    async def placed(self, session, make_job, make_application):
        pipeline = await pipeline_service.create_pipeline(
            session, "Branch hiring", stages=[{"name": "Applied"}, {"name": "Interview"}]
        )
        job = await make_job(pipeline_id=pipeline["id"])
        application = await make_application(job["id"])
        return pipeline, application

    async def test_move_keeps_status(self, session, placed, hr_caller):
        pipeline, application = placed
        first, second = (stage["id"] for stage in pipeline["stages"])

        moved = await application_service.move_stage(
            session, application["id"], second, first, hr_caller
        )

        assert moved["current_stage_id"] == second
        assert moved["status"] == application["status"]

    async def test_stale_stage(self, session, placed):
        pipeline, application = placed
        second = pipeline["stages"][1]["id"]

        with pytest.raises(ConflictError):
            await application_service.move_stage(session, application["id"], second, second)

    async def test_stage_from_other_pipeline(self, session, placed):
        _, application = placed
        other = await pipeline_service.create_pipeline(
            session, "Head office", stages=[{"name": "New"}]
        )

        with pytest.raises(ValidationError):
            await application_service.move_stage(
                session, application["id"], other["stages"][0]["id"], application["current_stage_id"]
            )
