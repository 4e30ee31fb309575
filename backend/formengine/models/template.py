"""Form template model with per-family version history."""

import uuid
from datetime import datetime
from typing import Optional, List, Dict, Any
from enum import Enum as PyEnum

from sqlalchemy import String, Text, DateTime, Integer, JSON, Enum, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from formengine.database import Base


class TemplateStatus(str, PyEnum):
    """Template version lifecycle states."""
    DRAFT = "DRAFT"
    PUBLISHED = "PUBLISHED"
    ARCHIVED = "ARCHIVED"


class FormTemplate(Base):
    """
    FormTemplate is one version of a template family.
    
    Versions of the same family share ``family_id`` and are numbered from 1.
    A version record is never rewritten once it leaves DRAFT; edits to a
    published template always append a new version to the family.
    """
    
    __tablename__ = "form_templates"
    __table_args__ = (
        UniqueConstraint("family_id", "version", name="uq_form_templates_family_version"),
    )
    
    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    
    # Lineage identity
    family_id: Mapped[str] = mapped_column(
        String(36),
        nullable=False,
        index=True,
        default=lambda: str(uuid.uuid4())
    )
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    status: Mapped[TemplateStatus] = mapped_column(
        Enum(TemplateStatus),
        default=TemplateStatus.DRAFT,
        nullable=False,
        index=True
    )
    
    # Ordered sections, each with ordered fields
    sections: Mapped[List[Dict[str, Any]]] = mapped_column(JSON, nullable=False, default=list)
    
    # Authorship and timestamps
    created_by: Mapped[str] = mapped_column(String(255), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime, 
        onupdate=datetime.utcnow,
        nullable=True
    )
    published_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    archived_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    
    def __repr__(self) -> str:
        return f"<FormTemplate(id={self.id}, name='{self.name}', v{self.version}, status='{self.status}')>"
    
    @property
    def fields(self) -> List[Dict[str, Any]]:
        """All fields across sections, in declaration order."""
        return [field for section in self.sections or [] for field in section.get("fields", [])]
    
    @property
    def field_ids(self) -> List[str]:
        return [field["id"] for field in self.fields]
    
    @property
    def required_field_ids(self) -> List[str]:
        return [field["id"] for field in self.fields if field.get("required")]
