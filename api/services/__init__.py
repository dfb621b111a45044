"""
API Services Layer.

Database operations behind the HTTP routes. Every function takes the
request's AsyncSession first, commits its own unit of work and returns
plain dictionaries.
"""

from api.services.jobs import (
    create_job,
    get_job,
    list_jobs,
    close_job,
    delete_job,
    attach_pipeline,
    upsert_rule_set,
    get_rule_set,
)

from api.services.applications import (
    apply,
    get_application,
    list_applications,
    list_activity,
    transition,
    advance,
    reject,
    move_stage,
)

from api.services.pipelines import (
    create_pipeline,
    get_pipeline,
    list_pipelines,
    add_stage,
    reorder_stages,
    delete_stage,
    get_board,
)

from api.services.interviews import (
    schedule_interview,
    update_interview_status,
    get_interview,
    list_interviews,
    submit_scorecard,
    list_scorecards,
    scorecard_summary,
)

from api.services.notes import (
    add_note,
    list_notes,
    update_note,
    delete_note,
    add_tag,
    list_tags,
    remove_tag,
)

from api.services.offers import (
    create_offer,
    send_offer,
    accept_offer,
    decline_offer,
    generate_contract,
    set_contract_text,
    get_offer,
    list_offers,
    create_contract_template,
    list_contract_templates,
    deliver_offer_letter,
)

from api.services.onboarding import (
    seed_default_tasks,
    create_task,
    list_tasks,
    init_checklist,
    complete_item,
    list_items,
)

from api.services.screening import (
    create_question,
    list_questions,
    submit_answers,
)

from api.services.regrets import (
    create_template,
    list_templates,
    send_regret,
    send_regret_batch,
    deliver_auto_regret,
)

__all__ = [
    # Jobs
    "create_job",
    "get_job",
    "list_jobs",
    "close_job",
    "delete_job",
    "attach_pipeline",
    "upsert_rule_set",
    "get_rule_set",
    # Applications
    "apply",
    "get_application",
    "list_applications",
    "list_activity",
    "transition",
    "advance",
    "reject",
    "move_stage",
    # Pipelines
    "create_pipeline",
    "get_pipeline",
    "list_pipelines",
    "add_stage",
    "reorder_stages",
    "delete_stage",
    "get_board",
    # Interviews
    "schedule_interview",
    "update_interview_status",
    "get_interview",
    "list_interviews",
    "submit_scorecard",
    "list_scorecards",
    "scorecard_summary",
    # Notes & tags
    "add_note",
    "list_notes",
    "update_note",
    "delete_note",
    "add_tag",
    "list_tags",
    "remove_tag",
    # Offers
    "create_offer",
    "send_offer",
    "accept_offer",
    "decline_offer",
    "generate_contract",
    "set_contract_text",
    "get_offer",
    "list_offers",
    "create_contract_template",
    "list_contract_templates",
    "deliver_offer_letter",
    # Onboarding
    "seed_default_tasks",
    "create_task",
    "list_tasks",
    "init_checklist",
    "complete_item",
    "list_items",
    # Screening
    "create_question",
    "list_questions",
    "submit_answers",
    # Regrets
    "create_template",
    "list_templates",
    "send_regret",
    "send_regret_batch",
    "deliver_auto_regret",
]
