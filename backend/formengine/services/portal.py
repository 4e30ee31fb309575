"""Portal registry service."""

import logging
from typing import Optional, List

from sqlalchemy.orm import Session

from formengine.collaborators import PortalRegistry
from formengine.exceptions import ValidationError
from formengine.models.mapping import Portal
from formengine.schemas.mapping import PortalCreate

logger = logging.getLogger(__name__)


class SqlPortalRegistry(PortalRegistry):
    """Portal registry backed by the ``portals`` table."""
    
    def __init__(self, db: Session):
        self.db = db
    
    def portal_exists(self, portal_id: str) -> bool:
        return PortalService.get_portal(self.db, portal_id) is not None


class PortalService:
    """Service for the portal table behind ``SqlPortalRegistry``."""
    
    @staticmethod
    def get_portal(db: Session, portal_id: str) -> Optional[Portal]:
        """Get an active portal by code."""
        return db.query(Portal).filter(
            Portal.id == portal_id,
            Portal.is_active == True
        ).first()
    
    @staticmethod
    def get_portals(db: Session) -> List[Portal]:
        return db.query(Portal).filter(Portal.is_active == True).order_by(Portal.id).all()
    
    @staticmethod
    def create_portal(db: Session, portal_data: PortalCreate) -> Portal:
        """Register a portal."""
        if db.query(Portal).filter(Portal.id == portal_data.id).first():
            raise ValidationError(f"Portal {portal_data.id} already exists")
        
        db_portal = Portal(id=portal_data.id, name=portal_data.name)
        db.add(db_portal)
        db.commit()
        db.refresh(db_portal)
        
        logger.info("Registered portal %s", db_portal.id)
        return db_portal
