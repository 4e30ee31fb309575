"""SQLAlchemy models for the immigration form engine."""

from formengine.models.template import FormTemplate, TemplateStatus
from formengine.models.mapping import Portal, FieldMapping
from formengine.models.submission import FormSubmission, SubmissionStatus
from formengine.models.case_record import CaseRecord
from formengine.models.audit_event import AuditEvent, AuditEntityType

__all__ = [
    "FormTemplate",
    "TemplateStatus",
    "Portal",
    "FieldMapping",
    "FormSubmission",
    "SubmissionStatus",
    "CaseRecord",
    "AuditEvent",
    "AuditEntityType",
]
