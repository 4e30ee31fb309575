"""Template management router."""

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from formengine.collaborators import AuditSink
from formengine.database import get_db
from formengine.dependencies import get_audit_sink
from formengine.models.template import TemplateStatus
from formengine.schemas.template import (
    TemplateCreate,
    TemplateUpdate,
    TemplateResponse,
    TemplateListResponse,
    FieldValidationResponse,
)
from formengine.services.auth import CurrentUser, UserRole, get_current_user, require_role
from formengine.services.template import TemplateService

router = APIRouter()


@router.get("", response_model=List[TemplateListResponse])
async def list_templates(
    status_filter: Optional[TemplateStatus] = None,
    skip: int = 0,
    limit: int = 100,
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user)
):
    """List template versions."""
    return TemplateService.get_templates(db, status_filter, skip, limit)


@router.get("/families/{family_id}/versions", response_model=List[TemplateListResponse])
async def list_family_versions(
    family_id: str,
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user)
):
    """List every version of a template family."""
    versions = TemplateService.get_versions(db, family_id)
    if not versions:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Template family not found"
        )
    return versions


@router.get("/families/{family_id}/current", response_model=TemplateResponse)
async def get_current_version(
    family_id: str,
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user)
):
    """Get the latest published version of a template family."""
    template = TemplateService.get_current_version(db, family_id)
    if not template:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="No published version for this template family"
        )
    return template


@router.get("/{template_id}", response_model=TemplateResponse)
async def get_template(
    template_id: int,
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user)
):
    """Get a template version by ID."""
    return TemplateService.require_template(db, template_id)


@router.get("/{template_id}/validation-rules", response_model=List[FieldValidationResponse])
async def get_validation_rules(
    template_id: int,
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user)
):
    """Get the type, required flag and rules of every field, for client-side checks."""
    return TemplateService.get_validation_rules(db, template_id)


@router.post("", response_model=TemplateResponse)
async def create_template(
    template_data: TemplateCreate,
    db: Session = Depends(get_db),
    audit: AuditSink = Depends(get_audit_sink),
    current_user: CurrentUser = Depends(require_role(UserRole.ADMIN))
):
    """Create a new template family (admin only)."""
    return TemplateService.create_template(db, template_data, current_user.id, audit)


@router.put("/{template_id}", response_model=TemplateResponse)
async def update_template(
    template_id: int,
    template_data: TemplateUpdate,
    create_new_version: bool = False,
    db: Session = Depends(get_db),
    audit: AuditSink = Depends(get_audit_sink),
    current_user: CurrentUser = Depends(require_role(UserRole.ADMIN))
):
    """Update a draft in place, or append a new version (admin only)."""
    return TemplateService.update_template(
        db, template_id, template_data, current_user.id, create_new_version, audit
    )


@router.post("/{template_id}/publish", response_model=TemplateResponse)
async def publish_template(
    template_id: int,
    db: Session = Depends(get_db),
    audit: AuditSink = Depends(get_audit_sink),
    current_user: CurrentUser = Depends(require_role(UserRole.ADMIN))
):
    """Publish a draft template version (admin only)."""
    return TemplateService.publish_template(db, template_id, current_user.id, audit)


@router.post("/{template_id}/archive", response_model=TemplateResponse)
async def archive_template(
    template_id: int,
    db: Session = Depends(get_db),
    audit: AuditSink = Depends(get_audit_sink),
    current_user: CurrentUser = Depends(require_role(UserRole.ADMIN))
):
    """Archive a template version (admin only)."""
    return TemplateService.archive_template(db, template_id, current_user.id, audit)
