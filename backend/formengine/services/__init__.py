"""Service layer for business logic."""

from formengine.services.template import TemplateService
from formengine.services.mapping import MappingService
from formengine.services.portal import PortalService, SqlPortalRegistry
from formengine.services.case_data import CaseDataService, SqlCaseDataSource
from formengine.services.resolver import DataResolver
from formengine.services.submission import SubmissionService
from formengine.services.generation import GenerationService, GenerationResult, PreviewResult
from formengine.services.audit import AuditService, SqlAuditSink

__all__ = [
    "TemplateService",
    "MappingService",
    "PortalService",
    "SqlPortalRegistry",
    "CaseDataService",
    "SqlCaseDataSource",
    "DataResolver",
    "SubmissionService",
    "GenerationService",
    "GenerationResult",
    "PreviewResult",
    "AuditService",
    "SqlAuditSink",
]
