"""Database models. Importing this package registers every table."""

from database.models.pipelines import Pipeline, PipelineStage
from database.models.jobs import JobPosting, JobStatus, EmploymentType, RuleSet
from database.models.applications import (
    Application,
    ApplicationActivity,
    ApplicationActivityType,
    ApplicationStatus,
    ApplicantType,
    Decision,
)
from database.models.interviews import (
    Interview,
    InterviewMode,
    InterviewScorecard,
    InterviewStatus,
)
from database.models.notes import ApplicationNote, ApplicationTag
from database.models.offers import Offer, OfferStatus, ContractTemplate
from database.models.onboarding import OnboardingTask, OnboardingItem
from database.models.screening import ScreeningQuestion, ScreeningAnswer
from database.models.communications import RegretTemplate

__all__ = [
    "Pipeline",
    "PipelineStage",
    "JobPosting",
    "JobStatus",
    "EmploymentType",
    "RuleSet",
    "Application",
    "ApplicationActivity",
    "ApplicationActivityType",
    "ApplicationStatus",
    "ApplicantType",
    "Decision",
    "Interview",
    "InterviewMode",
    "InterviewStatus",
    "InterviewScorecard",
    "ApplicationNote",
    "ApplicationTag",
    "Offer",
    "OfferStatus",
    "ContractTemplate",
    "OnboardingTask",
    "OnboardingItem",
    "ScreeningQuestion",
    "ScreeningAnswer",
    "RegretTemplate",
]
