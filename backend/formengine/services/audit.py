"""Audit service for event delivery and history."""

import logging
from typing import Optional, List, Dict, Any
from datetime import datetime

from sqlalchemy.orm import Session

from formengine.collaborators import AuditEventPayload, AuditSink
from formengine.models.audit_event import AuditEvent, AuditEntityType

logger = logging.getLogger(__name__)


class SqlAuditSink(AuditSink):
    """Audit sink that appends events to the ``audit_events`` table."""
    
    def __init__(self, db: Session):
        self.db = db
    
    def emit(self, event: AuditEventPayload) -> None:
        db_event = AuditEvent(
            entity_type=event.entity_type,
            entity_id=event.entity_id,
            action=event.action,
            user_id=event.user_id,
            details=event.details,
        )
        try:
            self.db.add(db_event)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise


class AuditService:
    """Service for audit trail operations."""
    
    @staticmethod
    def emit(
        sink: Optional[AuditSink],
        entity_type: AuditEntityType,
        entity_id: Any,
        action: str,
        user_id: str,
        details: Optional[Dict[str, Any]] = None
    ) -> None:
        """
        Deliver an audit event for an operation that has already committed.
        
        Delivery failures are logged and dropped: the audited operation
        stands regardless of whether its audit record could be written.
        """
        if sink is None:
            return
        
        event = AuditEventPayload(
            entity_type=entity_type,
            entity_id=str(entity_id),
            action=action,
            user_id=user_id,
            details=details or {},
        )
        try:
            sink.emit(event)
        except Exception:
            logger.exception(
                "Audit delivery failed for %s %s action=%s",
                entity_type.value, entity_id, action
            )
    
    @staticmethod
    def get_entity_history(
        db: Session,
        entity_type: AuditEntityType,
        entity_id: str
    ) -> List[AuditEvent]:
        """Get the complete event history of one entity, oldest first."""
        return db.query(AuditEvent).filter(
            AuditEvent.entity_type == entity_type,
            AuditEvent.entity_id == str(entity_id)
        ).order_by(AuditEvent.timestamp.asc(), AuditEvent.id.asc()).all()
    
    @staticmethod
    def get_audit_log(
        db: Session,
        page: int = 1,
        page_size: int = 50,
        entity_type: Optional[AuditEntityType] = None,
        user_id: Optional[str] = None,
        from_date: Optional[datetime] = None,
        to_date: Optional[datetime] = None
    ) -> Dict[str, Any]:
        """Get paginated audit log, newest first."""
        query = db.query(AuditEvent)
        
        # Apply filters
        if entity_type:
            query = query.filter(AuditEvent.entity_type == entity_type)
        if user_id:
            query = query.filter(AuditEvent.user_id == user_id)
        if from_date:
            query = query.filter(AuditEvent.timestamp >= from_date)
        if to_date:
            query = query.filter(AuditEvent.timestamp <= to_date)
        
        # Get total count
        total = query.count()
        
        # Get paginated results
        events = query.order_by(
            AuditEvent.timestamp.desc(), AuditEvent.id.desc()
        ).offset((page - 1) * page_size).limit(page_size).all()
        
        return {
            "items": events,
            "total": total,
            "page": page,
            "page_size": page_size,
            "total_pages": (total + page_size - 1) // page_size,
        }
