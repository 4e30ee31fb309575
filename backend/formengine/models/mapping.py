"""Government portal and field mapping models."""

from datetime import datetime
from typing import Optional, Dict, Any

from sqlalchemy import String, DateTime, Boolean, ForeignKey, JSON, Index, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from formengine.database import Base


class Portal(Base):
    """A government portal known to the reference portal registry."""
    
    __tablename__ = "portals"
    
    # Stable portal code, e.g. IRISH_VISA
    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    
    def __repr__(self) -> str:
        return f"<Portal(id='{self.id}', name='{self.name}')>"


class FieldMapping(Base):
    """
    FieldMapping translates one template version's field ids to a portal's.
    
    ``template_id`` and ``portal_id`` are fixed at creation. Only the
    ``mappings`` table itself can be edited afterwards. ``portal_id`` is a
    portal code vouched for by whichever ``PortalRegistry`` is configured,
    so it carries no foreign key to the local ``portals`` table.
    """
    
    __tablename__ = "field_mappings"
    __table_args__ = (
        # At most one active mapping per (template version, portal)
        Index(
            "uq_field_mappings_active_pair",
            "template_id",
            "portal_id",
            unique=True,
            sqlite_where=text("is_active"),
            postgresql_where=text("is_active"),
        ),
    )
    
    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    
    template_id: Mapped[int] = mapped_column(
        ForeignKey("form_templates.id"),
        nullable=False,
        index=True
    )
    portal_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    
    # internal field id -> {"portalField": str, "transform": {...}}
    mappings: Mapped[Dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    
    # Soft delete
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False, index=True)
    
    created_by: Mapped[str] = mapped_column(String(255), nullable=False)
    updated_by: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime,
        onupdate=datetime.utcnow,
        nullable=True
    )
    
    # Relationships
    template: Mapped["FormTemplate"] = relationship("FormTemplate")
    
    def __repr__(self) -> str:
        return f"<FieldMapping(id={self.id}, template_id={self.template_id}, portal='{self.portal_id}')>"
