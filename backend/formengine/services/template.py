"""Template service: template families and their version history."""

import copy
import logging
from typing import Optional, List, Dict, Any
from datetime import datetime

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from formengine.collaborators import AuditSink
from formengine.config import get_settings
from formengine.exceptions import NotFoundError, InvalidStateError, ValidationError
from formengine.models.audit_event import AuditEntityType
from formengine.models.mapping import FieldMapping
from formengine.models.template import FormTemplate, TemplateStatus
from formengine.schemas.template import TemplateCreate, TemplateUpdate, TemplateSection
from formengine.services.audit import AuditService
from formengine.services.validation import check_rules

logger = logging.getLogger(__name__)


class TemplateService:
    """Service for template management and versioning."""

    @staticmethod
    def get_template(db: Session, template_id: int) -> Optional[FormTemplate]:
        """Get a template version by ID."""
        return db.query(FormTemplate).filter(FormTemplate.id == template_id).first()

    @staticmethod
    def require_template(db: Session, template_id: int) -> FormTemplate:
        template = TemplateService.get_template(db, template_id)
        if not template:
            raise NotFoundError(f"Template {template_id} not found")
        return template

    @staticmethod
    def get_templates(
        db: Session,
        status: Optional[TemplateStatus] = None,
        skip: int = 0,
        limit: int = 100
    ) -> List[FormTemplate]:
        """Get template versions, newest first."""
        query = db.query(FormTemplate)
        if status:
            query = query.filter(FormTemplate.status == status)
        return query.order_by(
            FormTemplate.created_at.desc(), FormTemplate.id.desc()
        ).offset(skip).limit(limit).all()

    @staticmethod
    def get_versions(db: Session, family_id: str) -> List[FormTemplate]:
        """Get every version of a template family, oldest first."""
        return db.query(FormTemplate).filter(
            FormTemplate.family_id == family_id
        ).order_by(FormTemplate.version.asc()).all()

    @staticmethod
    def get_version(db: Session, family_id: str, version: int) -> Optional[FormTemplate]:
        return db.query(FormTemplate).filter(
            FormTemplate.family_id == family_id,
            FormTemplate.version == version
        ).first()

    @staticmethod
    def get_current_version(db: Session, family_id: str) -> Optional[FormTemplate]:
        """The family's current version: its highest-numbered published one."""
        return db.query(FormTemplate).filter(
            FormTemplate.family_id == family_id,
            FormTemplate.status == TemplateStatus.PUBLISHED
        ).order_by(FormTemplate.version.desc()).first()

    @staticmethod
    def _head_version(db: Session, family_id: str) -> int:
        """Highest version number allocated in a family."""
        head = db.query(func.max(FormTemplate.version)).filter(
            FormTemplate.family_id == family_id
        ).scalar()
        return head or 0

    @staticmethod
    def _dump_sections(sections: List[TemplateSection]) -> List[Dict[str, Any]]:
        return [
            section.model_dump(by_alias=True, exclude_none=True, mode="json")
            for section in sections
        ]

    @staticmethod
    def validate_definition(name: Optional[str], sections: List[Dict[str, Any]]) -> None:
        """
        Check a full template definition.

        Field ids must be unique across the whole template, not only within
        their section, and at least one section must carry a field.
        """
        if not name or not name.strip():
            raise ValidationError("Template name is required")

        section_ids = [section.get("id") for section in sections]
        duplicate_sections = sorted({sid for sid in section_ids if section_ids.count(sid) > 1})
        if duplicate_sections:
            raise ValidationError(
                f"Duplicate section ids: {', '.join(duplicate_sections)}",
                details={"section_ids": duplicate_sections},
            )

        field_ids = [field["id"] for section in sections for field in section.get("fields", [])]
        if not field_ids:
            raise ValidationError("Template must contain at least one field")

        seen = set()
        duplicates = []
        for field_id in field_ids:
            if field_id in seen and field_id not in duplicates:
                duplicates.append(field_id)
            seen.add(field_id)
        if duplicates:
            raise ValidationError(
                f"Duplicate field ids: {', '.join(duplicates)}",
                details={"field_ids": duplicates},
            )

        for section in sections:
            for field in section.get("fields", []):
                check_rules(field)

    @staticmethod
    def create_template(
        db: Session,
        template_data: TemplateCreate,
        author_id: str,
        audit: Optional[AuditSink] = None
    ) -> FormTemplate:
        """Create a new template family at version 1 (DRAFT)."""
        sections = TemplateService._dump_sections(template_data.sections)
        TemplateService.validate_definition(template_data.name, sections)

        db_template = FormTemplate(
            version=1,
            name=template_data.name.strip(),
            description=template_data.description,
            status=TemplateStatus.DRAFT,
            sections=sections,
            created_by=author_id,
        )
        db.add(db_template)
        db.commit()
        db.refresh(db_template)

        logger.info(
            "Created template %s (family=%s) with %d fields",
            db_template.id, db_template.family_id, len(db_template.field_ids)
        )
        AuditService.emit(
            audit, AuditEntityType.FORM_TEMPLATE, db_template.id, "create", author_id,
            {"name": db_template.name, "family_id": db_template.family_id, "version": 1},
        )
        return db_template

    @staticmethod
    def publish_template(
        db: Session,
        template_id: int,
        user_id: str,
        audit: Optional[AuditSink] = None
    ) -> FormTemplate:
        """Publish a draft version. Published versions are immutable."""
        db_template = TemplateService.require_template(db, template_id)
        if db_template.status != TemplateStatus.DRAFT:
            raise InvalidStateError(
                f"Only draft templates can be published; template {template_id} is {db_template.status.value}"
            )

        db_template.status = TemplateStatus.PUBLISHED
        db_template.published_at = datetime.utcnow()
        db.commit()
        db.refresh(db_template)

        logger.info("Published template %s (family=%s v%d)", template_id, db_template.family_id, db_template.version)
        AuditService.emit(
            audit, AuditEntityType.FORM_TEMPLATE, template_id, "publish", user_id,
            {"family_id": db_template.family_id, "version": db_template.version},
        )
        return db_template

    @staticmethod
    def archive_template(
        db: Session,
        template_id: int,
        user_id: str,
        audit: Optional[AuditSink] = None
    ) -> FormTemplate:
        """
        Archive a version so it can no longer originate submissions.

        Archived versions are kept for the submissions that reference them.
        """
        db_template = TemplateService.require_template(db, template_id)
        if db_template.status == TemplateStatus.ARCHIVED:
            return db_template

        db_template.status = TemplateStatus.ARCHIVED
        db_template.archived_at = datetime.utcnow()
        db.commit()
        db.refresh(db_template)

        logger.info("Archived template %s (family=%s v%d)", template_id, db_template.family_id, db_template.version)
        AuditService.emit(
            audit, AuditEntityType.FORM_TEMPLATE, template_id, "archive", user_id,
            {"family_id": db_template.family_id, "version": db_template.version},
        )
        return db_template

    @staticmethod
    def update_template(
        db: Session,
        template_id: int,
        patch: TemplateUpdate,
        author_id: str,
        create_new_version: bool = False,
        audit: Optional[AuditSink] = None
    ) -> FormTemplate:
        """
        Apply a patch to a template.

        With ``create_new_version`` the patch is applied over the full
        definition of ``template_id`` and stored as the family's next version
        (DRAFT). Without it, only a DRAFT version may be edited in place.
        """
        if create_new_version:
            return TemplateService._create_version(db, template_id, patch, author_id, audit)

        db_template = TemplateService.require_template(db, template_id)
        if db_template.status != TemplateStatus.DRAFT:
            raise InvalidStateError(
                f"Template {template_id} is {db_template.status.value}; "
                "request a new version to change it"
            )

        name, description, sections = TemplateService._merge(db_template, patch)
        TemplateService.validate_definition(name, sections)
        TemplateService._check_mapped_fields_kept(db, db_template, sections)

        db_template.name = name.strip()
        db_template.description = description
        db_template.sections = sections
        db.commit()
        db.refresh(db_template)

        logger.info("Updated draft template %s in place", template_id)
        AuditService.emit(
            audit, AuditEntityType.FORM_TEMPLATE, template_id, "update", author_id,
            {"changed": sorted(patch.model_dump(exclude_unset=True).keys())},
        )
        return db_template

    @staticmethod
    def _check_mapped_fields_kept(
        db: Session,
        db_template: FormTemplate,
        sections: List[Dict[str, Any]]
    ) -> None:
        """An in-place edit may not drop a field an active mapping translates."""
        kept = {field["id"] for section in sections for field in section.get("fields", [])}
        removed = set(db_template.field_ids) - kept
        if not removed:
            return

        mappings = db.query(FieldMapping).filter(
            FieldMapping.template_id == db_template.id,
            FieldMapping.is_active == True
        ).all()
        in_use = sorted({
            field_id for mapping in mappings for field_id in (mapping.mappings or {})
            if field_id in removed
        })
        if in_use:
            raise ValidationError(
                f"Fields still used by active mappings of template {db_template.id}: {', '.join(in_use)}",
                details={"field_ids": in_use},
            )

    @staticmethod
    def get_validation_rules(db: Session, template_id: int) -> List[Dict[str, Any]]:
        """Type, required flag, options and rules of every field, in declaration order."""
        template = TemplateService.require_template(db, template_id)
        return [
            {
                "field_id": field["id"],
                "type": field.get("type", "text"),
                "required": bool(field.get("required")),
                "options": field.get("options"),
                "rules": field.get("rules") or [],
            }
            for field in template.fields
        ]

    @staticmethod
    def _merge(source: FormTemplate, patch: TemplateUpdate):
        changes = patch.model_dump(exclude_unset=True)
        name = changes.get("name") or source.name
        description = changes["description"] if "description" in changes else source.description
        if patch.sections is not None:
            sections = TemplateService._dump_sections(patch.sections)
        else:
            sections = copy.deepcopy(source.sections)
        return name, description, sections

    @staticmethod
    def _create_version(
        db: Session,
        template_id: int,
        patch: TemplateUpdate,
        author_id: str,
        audit: Optional[AuditSink]
    ) -> FormTemplate:
        """
        Append version N+1 to the source template's family.

        The ``(family_id, version)`` unique constraint serializes allocation.
        A writer that loses the race rolls back, re-reads the head, and
        retries; it never overwrites the version that won.
        """
        attempts = get_settings().version_allocation_retries + 1

        for attempt in range(1, attempts + 1):
            source = TemplateService.require_template(db, template_id)
            name, description, sections = TemplateService._merge(source, patch)
            TemplateService.validate_definition(name, sections)

            family_id = source.family_id
            next_version = TemplateService._head_version(db, family_id) + 1

            db_template = FormTemplate(
                family_id=family_id,
                version=next_version,
                name=name.strip(),
                description=description,
                status=TemplateStatus.DRAFT,
                sections=sections,
                created_by=author_id,
            )
            db.add(db_template)
            try:
                db.commit()
            except IntegrityError:
                db.rollback()
                logger.warning(
                    "Version %d of family %s was allocated concurrently (attempt %d/%d); retrying",
                    next_version, family_id, attempt, attempts
                )
                continue

            db.refresh(db_template)
            logger.info(
                "Created template %s as version %d of family %s from template %s",
                db_template.id, next_version, family_id, template_id
            )
            AuditService.emit(
                audit, AuditEntityType.FORM_TEMPLATE, db_template.id, "create_version", author_id,
                {"family_id": family_id, "version": next_version, "source_template_id": template_id},
            )
            return db_template

        raise InvalidStateError(
            f"Could not allocate a new version for template {template_id} after {attempts} attempts"
        )
