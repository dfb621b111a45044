"""
Tests for pipelines, stage ordering and the kanban board.
"""

import pytest

from api.services import applications as application_service
from api.services import pipelines as pipeline_service
from core.exceptions import ConflictError, NotFoundError, ValidationError

STAGES = [{"name": "Applied"}, {"name": "Screen", "color": "#FF0000"}, {"name": "Interview"}]


@pytest.fixture
async def pipeline(session):
    return await pipeline_service.create_pipeline(session, "Branch hiring", stages=STAGES)


class TestPipelines:
    """Test pipeline creation."""

    async def test_stages_numbered_in_order(self, pipeline):
        assert [s["name"] for s in pipeline["stages"]] == ["Applied", "Screen", "Interview"]
        assert [s["order"] for s in pipeline["stages"]] == [1, 2, 3]
        assert pipeline["stages"][1]["color"] == "#FF0000"

    async def test_single_default(self, session, pipeline):
        first = await pipeline_service.create_pipeline(session, "A", is_default=True)
        second = await pipeline_service.create_pipeline(session, "B", is_default=True)

        pipelines = await pipeline_service.list_pipelines(session)
        defaults = [p["id"] for p in pipelines if p["is_default"]]

        assert defaults == [second["id"]]
        assert first["id"] != second["id"]
        assert pipelines[0]["id"] == second["id"]

    async def test_blank_stage_name(self, session):
        with pytest.raises(ValidationError):
            await pipeline_service.create_pipeline(session, "Bad", stages=[{"name": " "}])

    async def test_add_stage_appends(self, session, pipeline):
        stage = await pipeline_service.add_stage(session, pipeline["id"], "Offer")

        assert stage["order"] == 4
        assert stage["color"].startswith("#")

    async def test_unknown_pipeline(self, session):
        with pytest.raises(NotFoundError):
            await pipeline_service.get_pipeline(session, 999)


class TestReorder:
    """Test stage reordering."""

    async def test_reorder(self, session, pipeline):
        ids = [s["id"] for s in pipeline["stages"]]
        reordered = await pipeline_service.reorder_stages(session, pipeline["id"], ids[::-1])

        assert [s["id"] for s in reordered["stages"]] == ids[::-1]
        assert [s["order"] for s in reordered["stages"]] == [1, 2, 3]

        stored = await pipeline_service.get_pipeline(session, pipeline["id"])
        assert [s["id"] for s in stored["stages"]] == ids[::-1]

    @pytest.mark.parametrize("pick", [
        lambda ids: ids[:2],
        lambda ids: ids + [ids[0]],
        lambda ids: ids[:2] + [9999],
    ])
    async def test_not_a_permutation(self, session, pipeline, pick):
        ids = [s["id"] for s in pipeline["stages"]]

        with pytest.raises(ValidationError):
            await pipeline_service.reorder_stages(session, pipeline["id"], pick(ids))


class TestDeleteStage:
    """Test stage deletion."""

    async def test_delete_closes_gap(self, session, pipeline):
        middle = pipeline["stages"][1]["id"]
        updated = await pipeline_service.delete_stage(session, middle)

        assert [s["name"] for s in updated["stages"]] == ["Applied", "Interview"]
        assert [s["order"] for s in updated["stages"]] == [1, 2]

    async def test_occupied_stage_refused(self, session, pipeline, make_job, make_application):
        job = await make_job(pipeline_id=pipeline["id"])
        await make_application(job["id"])

        with pytest.raises(ConflictError) as exc_info:
            await pipeline_service.delete_stage(session, pipeline["stages"][0]["id"])
        assert "1 active applications" in exc_info.value.message

    async def test_unknown_stage(self, session):
        with pytest.raises(NotFoundError):
            await pipeline_service.delete_stage(session, 999)


class TestBoard:
    """Test the kanban board."""

    async def test_columns_hold_applications(self, session, pipeline, make_job, make_application):
        job = await make_job(pipeline_id=pipeline["id"])
        first = await make_application(job["id"], email="a@example.com")
        second = await make_application(job["id"], email="b@example.com")
        interview_stage = pipeline["stages"][2]["id"]
        await application_service.move_stage(
            session, second["id"], interview_stage, second["current_stage_id"]
        )

        board = await pipeline_service.get_board(session, pipeline["id"], job_id=job["id"])
        columns = {c["name"]: [a["id"] for a in c["applications"]] for c in board["columns"]}

        assert columns == {"Applied": [first["id"]], "Screen": [], "Interview": [second["id"]]}

    async def test_job_filter(self, session, pipeline, make_job, make_application):
        job = await make_job(pipeline_id=pipeline["id"])
        other = await make_job(title="Teller", pipeline_id=pipeline["id"])
        await make_application(job["id"])
        await make_application(other["id"])

        board = await pipeline_service.get_board(session, pipeline["id"], job_id=other["id"])
        applied = board["columns"][0]["applications"]

        assert [a["job_id"] for a in applied] == [other["id"]]
