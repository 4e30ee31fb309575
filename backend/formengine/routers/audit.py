"""Audit trail router."""

from typing import List, Optional
from datetime import datetime

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from formengine.config import get_settings
from formengine.database import get_db
from formengine.models.audit_event import AuditEntityType
from formengine.schemas.audit import AuditEventResponse, AuditLogResponse
from formengine.services.audit import AuditService
from formengine.services.auth import CurrentUser, UserRole, require_role

settings = get_settings()
router = APIRouter()


@router.get("", response_model=AuditLogResponse)
async def get_audit_log(
    page: int = Query(1, ge=1),
    page_size: Optional[int] = Query(None, ge=1, le=100),
    entity_type: Optional[AuditEntityType] = None,
    user_id: Optional[str] = None,
    from_date: Optional[datetime] = None,
    to_date: Optional[datetime] = None,
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(require_role(UserRole.ADMIN))
):
    """Get the audit log with optional filters (admin only)."""
    result = AuditService.get_audit_log(
        db,
        page,
        page_size or settings.default_page_size,
        entity_type,
        user_id,
        from_date,
        to_date,
    )
    
    return AuditLogResponse(
        items=[AuditEventResponse.model_validate(event) for event in result["items"]],
        total=result["total"],
        page=result["page"],
        page_size=result["page_size"],
        total_pages=result["total_pages"],
    )


@router.get("/{entity_type}/{entity_id}", response_model=List[AuditEventResponse])
async def get_entity_history(
    entity_type: AuditEntityType,
    entity_id: str,
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(require_role(UserRole.ADMIN, UserRole.AGENT))
):
    """Get the complete event history of one template, mapping or submission."""
    return AuditService.get_entity_history(db, entity_type, entity_id)
