"""Form generation and submission router."""

from typing import List

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session

from formengine.collaborators import AuditSink
from formengine.database import get_db
from formengine.dependencies import get_audit_sink, get_data_resolver
from formengine.schemas.form import (
    GenerateFormRequest,
    GenerationResponse,
    PreviewResponse,
    FormSubmissionResponse,
    SubmissionStatusUpdate,
)
from formengine.services.auth import CurrentUser, UserRole, get_current_user, require_role
from formengine.services.generation import GenerationService
from formengine.services.resolver import DataResolver
from formengine.services.submission import SubmissionService

router = APIRouter()


@router.post("/generate", response_model=GenerationResponse)
async def generate_form(
    request: GenerateFormRequest,
    response: Response,
    db: Session = Depends(get_db),
    resolver: DataResolver = Depends(get_data_resolver),
    audit: AuditSink = Depends(get_audit_sink),
    current_user: CurrentUser = Depends(get_current_user)
):
    """
    Generate a submission from a published template version.
    
    Missing required fields and values that fail their field's type or
    rules are a normal negative result (422) listing exactly which fields
    need attention.
    """
    result = GenerationService.generate_form(
        db,
        request.template_id,
        request.form_data,
        request.case_id,
        current_user.id,
        resolver,
        target_portal_id=request.target_portal_id,
        audit=audit,
    )
    
    if not result.success:
        response.status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    
    return GenerationResponse(
        success=result.success,
        message=result.message,
        missing_fields=result.missing_fields,
        invalid_fields=result.invalid_fields,
        submission=FormSubmissionResponse.model_validate(result.submission) if result.submission else None,
    )


@router.post("/preview", response_model=PreviewResponse)
async def preview_form(
    request: GenerateFormRequest,
    response: Response,
    db: Session = Depends(get_db),
    resolver: DataResolver = Depends(get_data_resolver),
    current_user: CurrentUser = Depends(get_current_user)
):
    """
    Show what generation would produce without storing a submission.
    
    Draft templates can be previewed. Failures use the same 422 shape as
    generation.
    """
    result = GenerationService.preview_form(
        db,
        request.template_id,
        request.form_data,
        request.case_id,
        resolver,
        target_portal_id=request.target_portal_id,
    )
    
    if not result.success:
        response.status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    
    return PreviewResponse(
        success=result.success,
        message=result.message,
        template_id=result.template.id,
        template_version=result.template.version,
        data=result.data,
        portal_payload=result.portal_payload,
        missing_fields=result.missing_fields,
        invalid_fields=result.invalid_fields,
    )


@router.get("/submissions/{submission_id}", response_model=FormSubmissionResponse)
async def get_submission(
    submission_id: int,
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user)
):
    """Get a submission by ID."""
    return SubmissionService.require_submission(db, submission_id)


@router.post("/submissions/{submission_id}/submit", response_model=FormSubmissionResponse)
async def submit_submission(
    submission_id: int,
    db: Session = Depends(get_db),
    audit: AuditSink = Depends(get_audit_sink),
    current_user: CurrentUser = Depends(require_role(UserRole.ADMIN, UserRole.AGENT))
):
    """Mark a generated submission as submitted."""
    return SubmissionService.submit(db, submission_id, current_user.id, audit)


@router.patch("/submissions/{submission_id}/status", response_model=FormSubmissionResponse)
async def update_submission_status(
    submission_id: int,
    status_update: SubmissionStatusUpdate,
    db: Session = Depends(get_db),
    audit: AuditSink = Depends(get_audit_sink),
    current_user: CurrentUser = Depends(require_role(UserRole.ADMIN, UserRole.AGENT))
):
    """Record the outcome reported by the portal submission process."""
    return SubmissionService.update_status(
        db,
        submission_id,
        status_update.status,
        user_id=current_user.id,
        reason=status_update.reason,
        audit=audit,
    )


@router.get("/cases/{case_id}/submissions", response_model=List[FormSubmissionResponse])
async def list_case_submissions(
    case_id: str,
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user)
):
    """List every generation attempt stored for a case, newest first."""
    return SubmissionService.list_by_case(db, case_id)
