"""Audit trail Pydantic schemas."""

from datetime import datetime
from typing import Optional, Any, Dict, List

from pydantic import BaseModel

from formengine.models.audit_event import AuditEntityType


class AuditEventResponse(BaseModel):
    """Schema for audit event responses."""
    id: int
    entity_type: AuditEntityType
    entity_id: str
    action: str
    user_id: str
    details: Optional[Dict[str, Any]]
    timestamp: datetime
    
    class Config:
        from_attributes = True


class AuditLogResponse(BaseModel):
    """Schema for paginated audit log responses."""
    items: List[AuditEventResponse]
    total: int
    page: int
    page_size: int
    total_pages: int
