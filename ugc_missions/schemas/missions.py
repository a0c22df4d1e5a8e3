from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field

from ugc_missions.db.enums import (
    ApplicationStatusEnum,
    DeliverableStatusEnum,
    PipelineEnum,
    PricingPackEnum,
    RightsUsageEnum,
    ScriptStatusEnum,
    ScriptTypeEnum,
    StepTypeEnum,
    VideoFormatEnum,
)


class MissionCreate(BaseModel):
    title: str = Field(min_length=1)
    product_name: str = Field(min_length=1)
    format: VideoFormatEnum
    script_type: ScriptTypeEnum
    rights_usage: RightsUsageEnum
    budget: Decimal
    description: Optional[str] = None
    product_description: Optional[str] = None
    script_notes: Optional[str] = None
    pricing_pack: PricingPackEnum = PricingPackEnum.single_video
    deadline: Optional[datetime] = None
    pipeline: PipelineEnum = PipelineEnum.expanded
    # Admins create missions on behalf of a brand.
    brand_id: Optional[str] = None


class StepCompleteRequest(BaseModel):
    step: StepTypeEnum


class TextRequest(BaseModel):
    text: str


class FeedbackRequest(BaseModel):
    feedback: str


class ScriptSaveRequest(BaseModel):
    content: Optional[str] = None
    status: ScriptStatusEnum = ScriptStatusEnum.draft


class ProposeCreatorsRequest(BaseModel):
    creator_ids: List[str]


class AssignCreatorRequest(BaseModel):
    creator_id: str


class SendToCreatorRequest(BaseModel):
    amount: Decimal


class VideoSubmitRequest(BaseModel):
    video_reference: str


class CancelRequest(BaseModel):
    reason: Optional[str] = None


class ApplicationCreateRequest(BaseModel):
    pitch_message: Optional[str] = None
    proposed_rate: Optional[Decimal] = None


class ApplicationStatusRequest(BaseModel):
    status: ApplicationStatusEnum


class DeliverableReviewRequest(BaseModel):
    status: DeliverableStatusEnum
    notes: Optional[str] = None
