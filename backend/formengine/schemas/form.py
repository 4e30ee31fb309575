"""Form generation and submission Pydantic schemas."""

from datetime import datetime
from typing import Optional, Dict, Any, List

from pydantic import BaseModel, Field

from formengine.models.submission import SubmissionStatus


class GenerateFormRequest(BaseModel):
    """Schema for a form generation request."""
    template_id: int
    case_id: str = Field(..., min_length=1)
    form_data: Dict[str, Any] = {}
    target_portal_id: Optional[str] = None


class FormSubmissionResponse(BaseModel):
    """Schema for form submission responses."""
    id: int
    case_id: str
    template_id: int
    template_version: int
    data: Dict[str, Any]
    status: SubmissionStatus
    missing_fields: List[str]
    target_portal_id: Optional[str]
    mapping_id: Optional[int]
    portal_payload: Optional[Dict[str, Any]]
    status_reason: Optional[str]
    created_by: str
    created_at: datetime
    updated_at: Optional[datetime]
    submitted_at: Optional[datetime]
    
    class Config:
        from_attributes = True


class GenerationResponse(BaseModel):
    """Outcome of a generation request."""
    success: bool
    message: Optional[str] = None
    missing_fields: List[str] = []
    invalid_fields: Dict[str, List[str]] = {}
    submission: Optional[FormSubmissionResponse] = None


class PreviewResponse(BaseModel):
    """What a generation request would produce; nothing is stored."""
    success: bool
    message: Optional[str] = None
    template_id: int
    template_version: int
    data: Dict[str, Any] = {}
    portal_payload: Optional[Dict[str, Any]] = None
    missing_fields: List[str] = []
    invalid_fields: Dict[str, List[str]] = {}


class SubmissionStatusUpdate(BaseModel):
    """Status report from a portal-submission collaborator."""
    status: SubmissionStatus
    reason: Optional[str] = Field(None, max_length=5000)
