"""Field mapping service: template field ids to government portal field ids."""

import logging
from typing import Optional, List, Dict

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from formengine.collaborators import AuditSink, PortalRegistry
from formengine.exceptions import (
    NotFoundError,
    ValidationError,
    ImmutableFieldError,
)
from formengine.models.audit_event import AuditEntityType
from formengine.models.mapping import FieldMapping
from formengine.models.template import FormTemplate
from formengine.schemas.mapping import PortalFieldTarget, FieldMappingUpdate
from formengine.services.audit import AuditService
from formengine.services.template import TemplateService

logger = logging.getLogger(__name__)


class MappingService:
    """Service for field mapping records."""

    @staticmethod
    def get_mapping(db: Session, mapping_id: int) -> Optional[FieldMapping]:
        """Get an active mapping by ID."""
        return db.query(FieldMapping).filter(
            FieldMapping.id == mapping_id,
            FieldMapping.is_active == True
        ).first()

    @staticmethod
    def require_mapping(db: Session, mapping_id: int) -> FieldMapping:
        mapping = MappingService.get_mapping(db, mapping_id)
        if not mapping:
            raise NotFoundError(f"Field mapping {mapping_id} not found")
        return mapping

    @staticmethod
    def list_mappings(
        db: Session,
        template_id: Optional[int] = None,
        portal_id: Optional[str] = None
    ) -> List[FieldMapping]:
        """List active mappings, optionally filtered by template or portal."""
        query = db.query(FieldMapping).filter(FieldMapping.is_active == True)
        if template_id is not None:
            query = query.filter(FieldMapping.template_id == template_id)
        if portal_id:
            query = query.filter(FieldMapping.portal_id == portal_id)
        return query.order_by(FieldMapping.id.asc()).all()

    @staticmethod
    def find_mapping(db: Session, template_id: int, portal_id: str) -> Optional[FieldMapping]:
        """The active mapping for a (template version, portal) pair."""
        return db.query(FieldMapping).filter(
            FieldMapping.template_id == template_id,
            FieldMapping.portal_id == portal_id,
            FieldMapping.is_active == True
        ).first()

    @staticmethod
    def targets(mapping: FieldMapping) -> Dict[str, PortalFieldTarget]:
        """Parse a mapping's stored table into typed targets."""
        return {
            field_id: PortalFieldTarget.model_validate(target)
            for field_id, target in (mapping.mappings or {}).items()
        }

    @staticmethod
    def _validate_mappings(
        template: FormTemplate,
        mappings: Dict[str, PortalFieldTarget]
    ) -> None:
        """Every mapped field id must exist in the referenced template version."""
        if not mappings:
            raise ValidationError("Field mapping must map at least one field")

        known = set(template.field_ids)
        unknown = [field_id for field_id in mappings if field_id not in known]
        if unknown:
            raise ValidationError(
                f"Fields not in template {template.id} v{template.version}: {', '.join(unknown)}",
                details={"field_ids": unknown},
            )

        portal_fields = [target.portal_field for target in mappings.values()]
        collisions = sorted({name for name in portal_fields if portal_fields.count(name) > 1})
        if collisions:
            raise ValidationError(
                f"Portal fields targeted more than once: {', '.join(collisions)}",
                details={"portal_fields": collisions},
            )

    @staticmethod
    def _dump_mappings(mappings: Dict[str, PortalFieldTarget]) -> Dict[str, dict]:
        return {
            field_id: target.model_dump(by_alias=True, exclude_none=True, mode="json")
            for field_id, target in mappings.items()
        }

    @staticmethod
    def create_mapping(
        db: Session,
        template_id: int,
        portal_id: str,
        mappings: Dict[str, PortalFieldTarget],
        author_id: str,
        portals: PortalRegistry,
        audit: Optional[AuditSink] = None
    ) -> FieldMapping:
        """Create a mapping between one template version and one portal."""
        template = TemplateService.require_template(db, template_id)
        if not portals.portal_exists(portal_id):
            raise NotFoundError(f"Portal {portal_id} not found")

        MappingService._validate_mappings(template, mappings)

        duplicate = ValidationError(
            f"An active mapping already exists for template {template_id} and portal {portal_id}"
        )
        if MappingService.find_mapping(db, template_id, portal_id):
            raise duplicate

        db_mapping = FieldMapping(
            template_id=template_id,
            portal_id=portal_id,
            mappings=MappingService._dump_mappings(mappings),
            created_by=author_id,
        )
        db.add(db_mapping)
        try:
            db.commit()
        except IntegrityError as e:
            # A concurrent writer activated the same pair first
            db.rollback()
            raise duplicate from e
        db.refresh(db_mapping)

        logger.info(
            "Created field mapping %s: template %s -> portal %s (%d fields)",
            db_mapping.id, template_id, portal_id, len(mappings)
        )
        AuditService.emit(
            audit, AuditEntityType.FIELD_MAPPING, db_mapping.id, "create", author_id,
            {"template_id": template_id, "portal_id": portal_id, "fields": sorted(mappings)},
        )
        return db_mapping

    @staticmethod
    def update_mapping(
        db: Session,
        mapping_id: int,
        changes: FieldMappingUpdate,
        author_id: str,
        audit: Optional[AuditSink] = None
    ) -> FieldMapping:
        """
        Replace a mapping's translation table.

        The template and portal a mapping targets are fixed; re-targeting
        requires a new mapping.
        """
        db_mapping = MappingService.require_mapping(db, mapping_id)

        if changes.template_id is not None and changes.template_id != db_mapping.template_id:
            raise ImmutableFieldError(
                "template_id cannot be changed on an existing mapping; create a new mapping instead",
                details={"field": "template_id"},
            )
        if changes.portal_id is not None and changes.portal_id != db_mapping.portal_id:
            raise ImmutableFieldError(
                "portal_id cannot be changed on an existing mapping; create a new mapping instead",
                details={"field": "portal_id"},
            )

        if changes.mappings is not None:
            template = TemplateService.require_template(db, db_mapping.template_id)
            MappingService._validate_mappings(template, changes.mappings)
            db_mapping.mappings = MappingService._dump_mappings(changes.mappings)

        db_mapping.updated_by = author_id
        db.commit()
        db.refresh(db_mapping)

        logger.info("Updated field mapping %s", mapping_id)
        AuditService.emit(
            audit, AuditEntityType.FIELD_MAPPING, mapping_id, "update", author_id,
            {"fields": sorted(db_mapping.mappings)},
        )
        return db_mapping

    @staticmethod
    def delete_mapping(
        db: Session,
        mapping_id: int,
        author_id: str,
        audit: Optional[AuditSink] = None
    ) -> None:
        """Soft delete a mapping (mark as inactive)."""
        db_mapping = MappingService.require_mapping(db, mapping_id)

        db_mapping.is_active = False
        db_mapping.updated_by = author_id
        db.commit()

        logger.info("Deleted field mapping %s", mapping_id)
        AuditService.emit(
            audit, AuditEntityType.FIELD_MAPPING, mapping_id, "delete", author_id,
            {"template_id": db_mapping.template_id, "portal_id": db_mapping.portal_id},
        )

    @staticmethod
    def resolve_portal_field(
        db: Session,
        mapping_id: int,
        internal_field_id: str
    ) -> Optional[PortalFieldTarget]:
        """Look up where one internal field goes in the portal payload."""
        db_mapping = MappingService.require_mapping(db, mapping_id)
        target = (db_mapping.mappings or {}).get(internal_field_id)
        if target is None:
            return None
        return PortalFieldTarget.model_validate(target)
