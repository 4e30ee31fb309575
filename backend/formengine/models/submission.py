"""Form submission model."""

from datetime import datetime
from typing import Optional, List, Dict, Any
from enum import Enum as PyEnum

from sqlalchemy import String, Text, DateTime, ForeignKey, JSON, Enum, Integer
from sqlalchemy.orm import Mapped, mapped_column, relationship

from formengine.database import Base


class SubmissionStatus(str, PyEnum):
    """Submission lifecycle states."""
    GENERATED = "GENERATED"
    INCOMPLETE = "INCOMPLETE"
    SUBMITTED = "SUBMITTED"
    FAILED = "FAILED"


class FormSubmission(Base):
    """
    FormSubmission is the persisted result of one generation attempt.
    
    ``data`` always holds the untranslated internal values. When the
    submission was generated for a portal, ``portal_payload`` carries the
    translated view; it is derived and never read back as a source of truth.
    """
    
    __tablename__ = "form_submissions"
    
    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    
    case_id: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    
    # Template version actually used
    template_id: Mapped[int] = mapped_column(
        ForeignKey("form_templates.id"),
        nullable=False,
        index=True
    )
    template_version: Mapped[int] = mapped_column(Integer, nullable=False)
    
    data: Mapped[Dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    status: Mapped[SubmissionStatus] = mapped_column(
        Enum(SubmissionStatus),
        default=SubmissionStatus.GENERATED,
        nullable=False,
        index=True
    )
    missing_fields: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)
    
    # Portal translation, if requested
    target_portal_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    mapping_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("field_mappings.id"),
        nullable=True
    )
    portal_payload: Mapped[Optional[Dict[str, Any]]] = mapped_column(JSON, nullable=True)
    
    # Reason reported by the portal collaborator on status change
    status_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    
    created_by: Mapped[str] = mapped_column(String(255), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime,
        onupdate=datetime.utcnow,
        nullable=True
    )
    submitted_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    
    # Relationships
    template: Mapped["FormTemplate"] = relationship("FormTemplate")
    
    def __repr__(self) -> str:
        return f"<FormSubmission(id={self.id}, case='{self.case_id}', status='{self.status}')>"
