"""Pydantic schemas for request/response validation."""

from formengine.schemas.template import (
    FieldType,
    ValidationRuleType,
    ValidationRule,
    TemplateField,
    TemplateSection,
    TemplateCreate,
    TemplateUpdate,
    TemplateResponse,
    TemplateListResponse,
    FieldValidationResponse,
)
from formengine.schemas.mapping import (
    TrimTransform,
    DateFormatTransform,
    EnumRelabelTransform,
    CaseTransform,
    TransformSpec,
    PortalFieldTarget,
    PortalCreate,
    PortalResponse,
    FieldMappingCreate,
    FieldMappingUpdate,
    FieldMappingResponse,
)
from formengine.schemas.form import (
    GenerateFormRequest,
    FormSubmissionResponse,
    GenerationResponse,
    PreviewResponse,
    SubmissionStatusUpdate,
)
from formengine.schemas.audit import (
    AuditEventResponse,
    AuditLogResponse,
)

__all__ = [
    # Template
    "FieldType",
    "ValidationRuleType",
    "ValidationRule",
    "TemplateField",
    "TemplateSection",
    "TemplateCreate",
    "TemplateUpdate",
    "TemplateResponse",
    "TemplateListResponse",
    "FieldValidationResponse",
    # Mapping
    "TrimTransform",
    "DateFormatTransform",
    "EnumRelabelTransform",
    "CaseTransform",
    "TransformSpec",
    "PortalFieldTarget",
    "PortalCreate",
    "PortalResponse",
    "FieldMappingCreate",
    "FieldMappingUpdate",
    "FieldMappingResponse",
    # Form
    "GenerateFormRequest",
    "FormSubmissionResponse",
    "GenerationResponse",
    "PreviewResponse",
    "SubmissionStatusUpdate",
    # Audit
    "AuditEventResponse",
    "AuditLogResponse",
]
