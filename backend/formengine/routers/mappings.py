"""Portal and field mapping router."""

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from formengine.collaborators import AuditSink, PortalRegistry
from formengine.database import get_db
from formengine.dependencies import get_audit_sink, get_portal_registry
from formengine.schemas.mapping import (
    PortalCreate,
    PortalResponse,
    PortalFieldTarget,
    FieldMappingCreate,
    FieldMappingUpdate,
    FieldMappingResponse,
)
from formengine.services.auth import CurrentUser, UserRole, get_current_user, require_role
from formengine.services.mapping import MappingService
from formengine.services.portal import PortalService

router = APIRouter()


@router.get("/portals", response_model=List[PortalResponse])
async def list_portals(
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user)
):
    """List registered government portals."""
    return PortalService.get_portals(db)


@router.post("/portals", response_model=PortalResponse)
async def create_portal(
    portal_data: PortalCreate,
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(require_role(UserRole.ADMIN))
):
    """Register a government portal (admin only)."""
    return PortalService.create_portal(db, portal_data)


@router.get("", response_model=List[FieldMappingResponse])
async def list_mappings(
    template_id: Optional[int] = None,
    portal_id: Optional[str] = None,
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(require_role(UserRole.ADMIN, UserRole.AGENT))
):
    """List field mappings (agents and admins)."""
    return MappingService.list_mappings(db, template_id, portal_id)


@router.get("/{mapping_id}", response_model=FieldMappingResponse)
async def get_mapping(
    mapping_id: int,
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(require_role(UserRole.ADMIN, UserRole.AGENT))
):
    """Get a field mapping by ID."""
    return MappingService.require_mapping(db, mapping_id)


@router.get("/{mapping_id}/fields/{field_id}", response_model=PortalFieldTarget)
async def resolve_portal_field(
    mapping_id: int,
    field_id: str,
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(require_role(UserRole.ADMIN, UserRole.AGENT))
):
    """Look up the portal field for one internal field."""
    target = MappingService.resolve_portal_field(db, mapping_id, field_id)
    if not target:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Field is not mapped"
        )
    return target


@router.post("", response_model=FieldMappingResponse)
async def create_mapping(
    mapping_data: FieldMappingCreate,
    db: Session = Depends(get_db),
    portals: PortalRegistry = Depends(get_portal_registry),
    audit: AuditSink = Depends(get_audit_sink),
    current_user: CurrentUser = Depends(require_role(UserRole.ADMIN))
):
    """Create a field mapping (admin only)."""
    return MappingService.create_mapping(
        db,
        mapping_data.template_id,
        mapping_data.portal_id,
        mapping_data.mappings,
        current_user.id,
        portals,
        audit,
    )


@router.patch("/{mapping_id}", response_model=FieldMappingResponse)
async def update_mapping(
    mapping_id: int,
    mapping_data: FieldMappingUpdate,
    db: Session = Depends(get_db),
    audit: AuditSink = Depends(get_audit_sink),
    current_user: CurrentUser = Depends(require_role(UserRole.ADMIN))
):
    """Update a field mapping's translation table (admin only)."""
    return MappingService.update_mapping(db, mapping_id, mapping_data, current_user.id, audit)


@router.delete("/{mapping_id}")
async def delete_mapping(
    mapping_id: int,
    db: Session = Depends(get_db),
    audit: AuditSink = Depends(get_audit_sink),
    current_user: CurrentUser = Depends(require_role(UserRole.ADMIN))
):
    """Delete a field mapping (admin only)."""
    MappingService.delete_mapping(db, mapping_id, current_user.id, audit)
    return {"message": "Field mapping deleted successfully"}
