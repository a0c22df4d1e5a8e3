from enum import Enum


class PartyRoleEnum(str, Enum):
    admin = "admin"
    operator = "operator"
    brand = "brand"
    creator = "creator"


class MissionStatusEnum(str, Enum):
    draft = "draft"
    open = "open"
    in_progress = "in_progress"
    completed = "completed"
    cancelled = "cancelled"


class PipelineEnum(str, Enum):
    short = "short"
    expanded = "expanded"


class ScriptStatusEnum(str, Enum):
    draft = "draft"
    validated = "validated"
    brand_review = "brand_review"
    brand_approved = "brand_approved"


class StepTypeEnum(str, Enum):
    brief_received = "brief_received"
    creators_proposed = "creators_proposed"
    brand_reviewing_profiles = "brand_reviewing_profiles"
    creator_validated = "creator_validated"
    script_sent = "script_sent"
    script_brand_review = "script_brand_review"
    script_brand_approved = "script_brand_approved"
    mission_sent_to_creator = "mission_sent_to_creator"
    creator_accepted = "creator_accepted"
    creator_shooting = "creator_shooting"
    video_uploaded = "video_uploaded"
    video_delivered = "video_delivered"
    video_validated = "video_validated"
    video_sent_to_brand = "video_sent_to_brand"
    brand_final_review = "brand_final_review"
    brand_final_approved = "brand_final_approved"


class AnnotationKindEnum(str, Enum):
    brief_feedback = "brief_feedback"
    script_brand_feedback = "script_brand_feedback"
    qc_feedback = "qc_feedback"
    brand_final_feedback = "brand_final_feedback"
    cancellation = "cancellation"


class ApplicationStatusEnum(str, Enum):
    pending = "pending"
    accepted = "accepted"
    rejected = "rejected"
    withdrawn = "withdrawn"


class DeliverableStatusEnum(str, Enum):
    review = "review"
    revision_requested = "revision_requested"
    approved = "approved"


class ContractStatusEnum(str, Enum):
    none = "none"
    pending_counterparty_signature = "pending_counterparty_signature"
    active = "active"


class VideoFormatEnum(str, Enum):
    vertical = "9_16"
    horizontal = "16_9"
    square = "1_1"
    portrait = "4_5"


class ScriptTypeEnum(str, Enum):
    testimonial = "testimonial"
    unboxing = "unboxing"
    asmr = "asmr"
    tutorial = "tutorial"
    lifestyle = "lifestyle"
    review = "review"


class RightsUsageEnum(str, Enum):
    organic = "organic"
    paid_3m = "paid_3m"
    paid_6m = "paid_6m"
    paid_12m = "paid_12m"
    perpetual = "perpetual"


class PricingPackEnum(str, Enum):
    single_video = "1_video"
    three_videos = "3_videos"
    custom = "custom"
