from datetime import datetime

from pydantic import BaseModel, ConfigDict, EmailStr, Field


class ReportCreateRequest(BaseModel):
    image_type: str = Field(min_length=1, description="Imaging modality, e.g. X-Ray or MRI")
    body_part: str = Field(min_length=1, description="Anatomical region shown in the image")
    original_image_url: str = Field(min_length=1, description="Reference to the uploaded image")


class ReportEmailRequest(BaseModel):
    email: EmailStr


class ReportResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    original_image_url: str | None
    enhanced_image_url: str | None
    image_type: str | None
    body_part: str | None
    status: str
    analysis_results: dict | None
    confidence_score: int | None
    created_at: datetime
    analyzed_at: datetime | None


class ReportStatusResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    status: str
    enhancement_progress: int
    analysis_progress: int
    enhanced_image_url: str | None
    analysis_results: dict | None
