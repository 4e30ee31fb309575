"""Form generation: resolve, validate and translate a template into a submission."""

import logging
from dataclasses import dataclass, field
from typing import Optional, List, Dict, Any, Tuple

from sqlalchemy.orm import Session

from formengine.collaborators import AuditSink, UNAVAILABLE
from formengine.exceptions import InvalidStateError, NotFoundError
from formengine.models.audit_event import AuditEntityType
from formengine.models.mapping import FieldMapping
from formengine.models.submission import FormSubmission, SubmissionStatus
from formengine.models.template import FormTemplate, TemplateStatus
from formengine.services.audit import AuditService
from formengine.services.mapping import MappingService
from formengine.services.resolver import DataResolver
from formengine.services.submission import SubmissionService
from formengine.services.template import TemplateService
from formengine.services.transforms import apply_transform
from formengine.services.validation import is_blank, validate_value

logger = logging.getLogger(__name__)


@dataclass
class GenerationResult:
    """Outcome of one generation attempt."""
    success: bool
    submission: Optional[FormSubmission] = None
    message: Optional[str] = None
    missing_fields: List[str] = field(default_factory=list)
    invalid_fields: Dict[str, List[str]] = field(default_factory=dict)


@dataclass
class PreviewResult:
    """What generation would produce, without persisting anything."""
    success: bool
    template: FormTemplate
    data: Dict[str, Any] = field(default_factory=dict)
    portal_payload: Optional[Dict[str, Any]] = None
    message: Optional[str] = None
    missing_fields: List[str] = field(default_factory=list)
    invalid_fields: Dict[str, List[str]] = field(default_factory=dict)


class GenerationService:
    """Orchestrates template, resolver, mapping and submission store."""

    @staticmethod
    def assemble(
        template: FormTemplate,
        form_data: Dict[str, Any],
        case_id: str,
        resolver: DataResolver
    ) -> Tuple[Dict[str, Any], List[str], Dict[str, List[str]]]:
        """
        Compute every field's value, the required fields left unfilled and
        the values that fail their field's type or rules.

        A key present in ``form_data`` always wins over the resolver, even
        when its value is blank; the blank value then fails the required
        check like any other. All results follow template declaration order.
        """
        data: Dict[str, Any] = {}
        missing: List[str] = []
        invalid: Dict[str, List[str]] = {}

        for template_field in template.fields:
            field_id = template_field["id"]
            source_path = template_field.get("sourcePath")

            if field_id in form_data:
                value = form_data[field_id]
            elif source_path:
                value = resolver.resolve(case_id, source_path)
            else:
                value = UNAVAILABLE

            if value is UNAVAILABLE:
                if template_field.get("required"):
                    missing.append(field_id)
                continue

            data[field_id] = value
            if template_field.get("required") and is_blank(value):
                missing.append(field_id)
            errors = validate_value(template_field, value)
            if errors:
                invalid[field_id] = errors

        return data, missing, invalid

    @staticmethod
    def translate(mapping: FieldMapping, data: Dict[str, Any]) -> Dict[str, Any]:
        """Build the portal-facing payload; unmapped fields are left out."""
        targets = MappingService.targets(mapping)
        payload: Dict[str, Any] = {}
        for field_id, value in data.items():
            target = targets.get(field_id)
            if target is None:
                continue
            if value is None:
                payload[target.portal_field] = None
            else:
                payload[target.portal_field] = apply_transform(target.transform, value, field_id)
        return payload

    @staticmethod
    def _failure_message(missing: List[str], invalid: Dict[str, List[str]]) -> Optional[str]:
        if missing:
            return "Missing required fields"
        if invalid:
            return "Invalid field values"
        return None

    @staticmethod
    def _portal_translation(
        db: Session,
        template: FormTemplate,
        data: Dict[str, Any],
        target_portal_id: Optional[str]
    ) -> Tuple[Optional[FieldMapping], Optional[Dict[str, Any]]]:
        if not target_portal_id:
            return None, None
        mapping = MappingService.find_mapping(db, template.id, target_portal_id)
        if not mapping:
            raise NotFoundError(
                f"No field mapping for template {template.id} and portal {target_portal_id}"
            )
        return mapping, GenerationService.translate(mapping, data)

    @staticmethod
    def _log_unknown_keys(template: FormTemplate, form_data: Dict[str, Any]) -> None:
        known = set(template.field_ids)
        unknown = [key for key in form_data if key not in known]
        if unknown:
            logger.debug("Ignoring form data keys not in template %s: %s", template.id, unknown)

    @staticmethod
    def preview_form(
        db: Session,
        template_id: int,
        form_data: Dict[str, Any],
        case_id: str,
        resolver: DataResolver,
        target_portal_id: Optional[str] = None
    ) -> PreviewResult:
        """
        Run generation up to translation and stop before persisting.

        Drafts can be previewed so authors can try a template before
        publishing it. Nothing is saved and no audit event is emitted.
        """
        template = TemplateService.require_template(db, template_id)
        if template.status == TemplateStatus.ARCHIVED:
            raise InvalidStateError(f"Template {template_id} is archived and cannot be previewed")

        form_data = form_data or {}
        GenerationService._log_unknown_keys(template, form_data)
        data, missing, invalid = GenerationService.assemble(template, form_data, case_id, resolver)

        failure = GenerationService._failure_message(missing, invalid)
        if failure:
            return PreviewResult(
                success=False,
                template=template,
                data=data,
                message=failure,
                missing_fields=missing,
                invalid_fields=invalid,
            )

        _, portal_payload = GenerationService._portal_translation(db, template, data, target_portal_id)
        return PreviewResult(success=True, template=template, data=data, portal_payload=portal_payload)

    @staticmethod
    def generate_form(
        db: Session,
        template_id: int,
        form_data: Dict[str, Any],
        case_id: str,
        user_id: str,
        resolver: DataResolver,
        target_portal_id: Optional[str] = None,
        audit: Optional[AuditSink] = None
    ) -> GenerationResult:
        """
        Generate a submission for a case from a published template version.

        All or nothing: a submission is persisted only when every required
        field has a valid value and, for a target portal, translation
        succeeded.
        """
        template = TemplateService.require_template(db, template_id)
        if template.status == TemplateStatus.ARCHIVED:
            raise InvalidStateError(f"Template {template_id} is archived and cannot originate submissions")
        if template.status != TemplateStatus.PUBLISHED:
            raise InvalidStateError(f"Template {template_id} is not published")

        form_data = form_data or {}
        GenerationService._log_unknown_keys(template, form_data)
        data, missing, invalid = GenerationService.assemble(template, form_data, case_id, resolver)

        failure = GenerationService._failure_message(missing, invalid)
        if failure:
            logger.info(
                "Generation for case %s from template %s failed: %d missing, %d invalid fields",
                case_id, template_id, len(missing), len(invalid)
            )
            return GenerationResult(
                success=False,
                message=failure,
                missing_fields=missing,
                invalid_fields=invalid,
            )

        mapping, portal_payload = GenerationService._portal_translation(
            db, template, data, target_portal_id
        )

        submission = FormSubmission(
            case_id=case_id,
            template_id=template.id,
            template_version=template.version,
            data=data,
            status=SubmissionStatus.GENERATED,
            missing_fields=[],
            target_portal_id=target_portal_id,
            mapping_id=mapping.id if mapping else None,
            portal_payload=portal_payload,
            created_by=user_id,
        )
        submission = SubmissionService.save(db, submission)

        logger.info(
            "Generated submission %s for case %s from template %s v%d%s",
            submission.id, case_id, template_id, template.version,
            f" for portal {target_portal_id}" if target_portal_id else ""
        )
        AuditService.emit(
            audit, AuditEntityType.FORM_SUBMISSION, submission.id, "generate", user_id,
            {
                "template_id": template.id,
                "template_name": template.name,
                "template_version": template.version,
                "case_id": case_id,
                "target_portal_id": target_portal_id,
            },
        )
        return GenerationResult(success=True, submission=submission)
