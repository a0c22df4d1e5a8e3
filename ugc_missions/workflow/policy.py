"""
Workflow policy: the fixed, ordered step catalogues of a mission.

The policy is data only. It answers ordering questions (index, predecessors,
next step), who may complete a step, and which steps a completion implies.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, FrozenSet, Mapping, Optional, Tuple

from ugc_missions.db.enums import (
    MissionStatusEnum,
    PartyRoleEnum,
    PipelineEnum,
    ScriptStatusEnum,
    StepTypeEnum,
)


@dataclass(frozen=True)
class StepDefinition:
    id: StepTypeEnum
    label: str
    owner: PartyRoleEnum


@dataclass(frozen=True)
class WorkflowCatalogue:
    pipeline: PipelineEnum
    steps: Tuple[StepDefinition, ...]

    def __post_init__(self) -> None:
        ids = [step.id for step in self.steps]
        if len(set(ids)) != len(ids):
            raise ValueError(f"duplicate step in {self.pipeline.value} catalogue")

    def __len__(self) -> int:
        return len(self.steps)

    def __contains__(self, step: StepTypeEnum) -> bool:
        return any(definition.id == step for definition in self.steps)

    @property
    def step_ids(self) -> Tuple[StepTypeEnum, ...]:
        return tuple(step.id for step in self.steps)

    @property
    def last_step(self) -> StepDefinition:
        return self.steps[-1]

    def definition(self, step: StepTypeEnum) -> StepDefinition:
        for definition in self.steps:
            if definition.id == step:
                return definition
        raise KeyError(step)

    def index_of(self, step: StepTypeEnum) -> int:
        return self.step_ids.index(step)

    def predecessors(self, step: StepTypeEnum) -> Tuple[StepTypeEnum, ...]:
        return self.step_ids[: self.index_of(step)]

    def highest_completed_index(self, completed: set[StepTypeEnum] | frozenset[StepTypeEnum]) -> int:
        """Highest canonical index present in ``completed``; -1 when none is."""
        highest = -1
        for index, step_id in enumerate(self.step_ids):
            if step_id in completed:
                highest = index
        return highest

    def next_step(self, completed: set[StepTypeEnum] | frozenset[StepTypeEnum]) -> Optional[StepDefinition]:
        index = self.highest_completed_index(completed) + 1
        if index >= len(self.steps):
            return None
        return self.steps[index]


_OPS = PartyRoleEnum.operator
_BRAND = PartyRoleEnum.brand
_CREATOR = PartyRoleEnum.creator

SHORT_PIPELINE = WorkflowCatalogue(
    pipeline=PipelineEnum.short,
    steps=(
        StepDefinition(StepTypeEnum.brief_received, "Brief reçu", _OPS),
        StepDefinition(StepTypeEnum.creators_proposed, "Profils proposés", _OPS),
        StepDefinition(StepTypeEnum.creator_validated, "Créateur validé", _BRAND),
        StepDefinition(StepTypeEnum.script_sent, "Script envoyé", _OPS),
        StepDefinition(StepTypeEnum.video_delivered, "Vidéo livrée", _CREATOR),
        StepDefinition(StepTypeEnum.video_validated, "Vidéo validée", _OPS),
        StepDefinition(StepTypeEnum.video_sent_to_brand, "Envoyée à la marque", _OPS),
    ),
)

EXPANDED_PIPELINE = WorkflowCatalogue(
    pipeline=PipelineEnum.expanded,
    steps=(
        StepDefinition(StepTypeEnum.brief_received, "Brief analysé", _OPS),
        StepDefinition(StepTypeEnum.creators_proposed, "Profils proposés", _OPS),
        StepDefinition(StepTypeEnum.brand_reviewing_profiles, "Profils en revue par la marque", _BRAND),
        StepDefinition(StepTypeEnum.creator_validated, "Créateur choisi", _BRAND),
        StepDefinition(StepTypeEnum.script_sent, "Script rédigé", _OPS),
        StepDefinition(StepTypeEnum.script_brand_review, "Script envoyé", _OPS),
        StepDefinition(StepTypeEnum.script_brand_approved, "Script validé", _BRAND),
        StepDefinition(StepTypeEnum.mission_sent_to_creator, "Mission envoyée au créateur", _OPS),
        StepDefinition(StepTypeEnum.creator_accepted, "Mission acceptée", _CREATOR),
        StepDefinition(StepTypeEnum.creator_shooting, "En tournage", _CREATOR),
        StepDefinition(StepTypeEnum.video_uploaded, "Vidéo livrée", _CREATOR),
        StepDefinition(StepTypeEnum.video_validated, "Vidéo validée MOSH", _OPS),
        StepDefinition(StepTypeEnum.video_sent_to_brand, "Vidéo envoyée à la marque", _OPS),
        StepDefinition(StepTypeEnum.brand_final_review, "Revue finale de la marque", _BRAND),
        StepDefinition(StepTypeEnum.brand_final_approved, "Validation finale", _BRAND),
    ),
)

CATALOGUES: Mapping[PipelineEnum, WorkflowCatalogue] = {
    PipelineEnum.short: SHORT_PIPELINE,
    PipelineEnum.expanded: EXPANDED_PIPELINE,
}

# Completing the key implies the value, as one unit of work, when the value is in the catalogue.
CASCADES: Mapping[StepTypeEnum, StepTypeEnum] = {
    StepTypeEnum.creators_proposed: StepTypeEnum.brand_reviewing_profiles,
    StepTypeEnum.video_sent_to_brand: StepTypeEnum.brand_final_review,
}

# The step whose completion makes a mission billable.
INVOICE_TRIGGER_STEP = StepTypeEnum.video_sent_to_brand

# Script sub-state implied by a completed script step. Completions only ever promote.
SCRIPT_STATUS_BY_STEP: Mapping[StepTypeEnum, ScriptStatusEnum] = {
    StepTypeEnum.script_sent: ScriptStatusEnum.validated,
    StepTypeEnum.script_brand_review: ScriptStatusEnum.brand_review,
    StepTypeEnum.script_brand_approved: ScriptStatusEnum.brand_approved,
}

SCRIPT_STATUS_RANK: Mapping[ScriptStatusEnum, int] = {
    ScriptStatusEnum.draft: 0,
    ScriptStatusEnum.validated: 1,
    ScriptStatusEnum.brand_review: 2,
    ScriptStatusEnum.brand_approved: 3,
}

TERMINAL_STATUSES: FrozenSet[MissionStatusEnum] = frozenset(
    {MissionStatusEnum.completed, MissionStatusEnum.cancelled}
)


def _build_authorization_table() -> Dict[Tuple[PartyRoleEnum, StepTypeEnum], bool]:
    table: Dict[Tuple[PartyRoleEnum, StepTypeEnum], bool] = {}
    owners: Dict[StepTypeEnum, PartyRoleEnum] = {}
    for catalogue in CATALOGUES.values():
        for step in catalogue.steps:
            known = owners.setdefault(step.id, step.owner)
            if known != step.owner:
                raise ValueError(f"step {step.id.value} has conflicting owners")
    for role in PartyRoleEnum:
        for step_id, owner in owners.items():
            table[(role, step_id)] = role == PartyRoleEnum.admin or role == owner
    return table


AUTHORIZATION_TABLE: Mapping[Tuple[PartyRoleEnum, StepTypeEnum], bool] = _build_authorization_table()


def catalogue_for(pipeline: PipelineEnum | str) -> WorkflowCatalogue:
    return CATALOGUES[PipelineEnum(pipeline)]


def is_authorized(role: PartyRoleEnum, step: StepTypeEnum) -> bool:
    return AUTHORIZATION_TABLE.get((role, step), False)


def allowed_roles(step: StepTypeEnum) -> FrozenSet[PartyRoleEnum]:
    return frozenset(role for role in PartyRoleEnum if is_authorized(role, step))


def promoted_script_status(current: ScriptStatusEnum, step: StepTypeEnum) -> ScriptStatusEnum:
    target = SCRIPT_STATUS_BY_STEP.get(step)
    if target is None or SCRIPT_STATUS_RANK[target] <= SCRIPT_STATUS_RANK[current]:
        return current
    return target


def implied_steps(catalogue: WorkflowCatalogue, step: StepTypeEnum) -> Tuple[StepTypeEnum, ...]:
    """Steps that completing ``step`` also completes, in order."""
    implied = []
    current = step
    while current in CASCADES:
        current = CASCADES[current]
        if current not in catalogue:
            break
        implied.append(current)
    return tuple(implied)
