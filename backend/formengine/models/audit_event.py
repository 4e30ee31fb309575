"""Audit event model for the reference audit sink."""

from datetime import datetime
from typing import Optional, Dict, Any
from enum import Enum as PyEnum

from sqlalchemy import String, DateTime, JSON, Enum
from sqlalchemy.orm import Mapped, mapped_column

from formengine.database import Base


class AuditEntityType(str, PyEnum):
    """Entity kinds that emit audit events."""
    FORM_TEMPLATE = "FORM_TEMPLATE"
    FIELD_MAPPING = "FIELD_MAPPING"
    FORM_SUBMISSION = "FORM_SUBMISSION"


class AuditEvent(Base):
    """
    AuditEvent is an append-only audit log entry.
    
    One record is written after every mutating operation on a template,
    mapping or submission.
    """
    
    __tablename__ = "audit_events"
    
    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    
    entity_type: Mapped[AuditEntityType] = mapped_column(
        Enum(AuditEntityType),
        nullable=False,
        index=True
    )
    entity_id: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    action: Mapped[str] = mapped_column(String(50), nullable=False)
    user_id: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    details: Mapped[Optional[Dict[str, Any]]] = mapped_column(JSON, nullable=True)
    
    # Timestamp (immutable)
    timestamp: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)
    
    def __repr__(self) -> str:
        return f"<AuditEvent(id={self.id}, {self.entity_type}:{self.entity_id}, action='{self.action}')>"
