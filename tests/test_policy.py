import pytest

from ugc_missions.db.enums import PartyRoleEnum, PipelineEnum, ScriptStatusEnum, StepTypeEnum
from ugc_missions.workflow.policy import (
    EXPANDED_PIPELINE,
    SHORT_PIPELINE,
    StepDefinition,
    WorkflowCatalogue,
    allowed_roles,
    catalogue_for,
    implied_steps,
    is_authorized,
    promoted_script_status,
)


def test_catalogues_have_fixed_order():
    assert [step.value for step in SHORT_PIPELINE.step_ids] == [
        "brief_received",
        "creators_proposed",
        "creator_validated",
        "script_sent",
        "video_delivered",
        "video_validated",
        "video_sent_to_brand",
    ]
    assert len(EXPANDED_PIPELINE) == 15
    assert EXPANDED_PIPELINE.step_ids[0] == StepTypeEnum.brief_received
    assert EXPANDED_PIPELINE.last_step.id == StepTypeEnum.brand_final_approved
    assert EXPANDED_PIPELINE.index_of(StepTypeEnum.mission_sent_to_creator) == 7
    assert catalogue_for("short") is SHORT_PIPELINE
    assert catalogue_for(PipelineEnum.expanded) is EXPANDED_PIPELINE


def test_duplicate_steps_are_rejected():
    step = StepDefinition(StepTypeEnum.brief_received, "Brief", PartyRoleEnum.operator)
    with pytest.raises(ValueError):
        WorkflowCatalogue(pipeline=PipelineEnum.short, steps=(step, step))


def test_highest_completed_index_ignores_gaps():
    completed = {
        SHORT_PIPELINE.step_ids[0],
        SHORT_PIPELINE.step_ids[1],
        SHORT_PIPELINE.step_ids[4],
    }
    assert SHORT_PIPELINE.highest_completed_index(completed) == 4
    assert SHORT_PIPELINE.highest_completed_index(set()) == -1
    assert SHORT_PIPELINE.next_step(completed).id == StepTypeEnum.video_validated
    assert SHORT_PIPELINE.next_step(set(SHORT_PIPELINE.step_ids)) is None


def test_predecessors_follow_canonical_order():
    assert EXPANDED_PIPELINE.predecessors(StepTypeEnum.creator_validated) == (
        StepTypeEnum.brief_received,
        StepTypeEnum.creators_proposed,
        StepTypeEnum.brand_reviewing_profiles,
    )
    assert EXPANDED_PIPELINE.predecessors(StepTypeEnum.brief_received) == ()


@pytest.mark.parametrize(
    "role,step,allowed",
    [
        (PartyRoleEnum.operator, StepTypeEnum.brief_received, True),
        (PartyRoleEnum.brand, StepTypeEnum.brief_received, False),
        (PartyRoleEnum.creator, StepTypeEnum.video_uploaded, True),
        (PartyRoleEnum.operator, StepTypeEnum.video_uploaded, False),
        (PartyRoleEnum.brand, StepTypeEnum.brand_final_approved, True),
        (PartyRoleEnum.creator, StepTypeEnum.video_validated, False),
        (PartyRoleEnum.admin, StepTypeEnum.brand_final_approved, True),
        (PartyRoleEnum.admin, StepTypeEnum.video_delivered, True),
    ],
)
def test_authorization_table(role, step, allowed):
    assert is_authorized(role, step) is allowed


def test_allowed_roles_is_owner_plus_admin():
    assert allowed_roles(StepTypeEnum.script_brand_approved) == frozenset(
        {PartyRoleEnum.brand, PartyRoleEnum.admin}
    )


def test_cascades_only_follow_steps_in_the_catalogue():
    assert implied_steps(EXPANDED_PIPELINE, StepTypeEnum.video_sent_to_brand) == (
        StepTypeEnum.brand_final_review,
    )
    assert implied_steps(EXPANDED_PIPELINE, StepTypeEnum.creators_proposed) == (
        StepTypeEnum.brand_reviewing_profiles,
    )
    assert implied_steps(SHORT_PIPELINE, StepTypeEnum.video_sent_to_brand) == ()
    assert implied_steps(SHORT_PIPELINE, StepTypeEnum.creators_proposed) == ()
    assert implied_steps(EXPANDED_PIPELINE, StepTypeEnum.brief_received) == ()


def test_script_status_is_never_demoted():
    assert promoted_script_status(ScriptStatusEnum.draft, StepTypeEnum.script_sent) == ScriptStatusEnum.validated
    assert (
        promoted_script_status(ScriptStatusEnum.brand_approved, StepTypeEnum.script_sent)
        == ScriptStatusEnum.brand_approved
    )
    assert promoted_script_status(ScriptStatusEnum.validated, StepTypeEnum.brief_received) == ScriptStatusEnum.validated
