"""FastAPI dependencies wiring collaborators to the request session."""

from fastapi import Depends
from sqlalchemy.orm import Session

from formengine.collaborators import AuditSink, CaseDataSource, PortalRegistry
from formengine.database import get_db
from formengine.services.audit import SqlAuditSink
from formengine.services.case_data import SqlCaseDataSource
from formengine.services.portal import SqlPortalRegistry
from formengine.services.resolver import DataResolver


def get_audit_sink(db: Session = Depends(get_db)) -> AuditSink:
    return SqlAuditSink(db)


def get_portal_registry(db: Session = Depends(get_db)) -> PortalRegistry:
    return SqlPortalRegistry(db)


def get_case_data_source(db: Session = Depends(get_db)) -> CaseDataSource:
    return SqlCaseDataSource(db)


def get_data_resolver(source: CaseDataSource = Depends(get_case_data_source)) -> DataResolver:
    """A fresh resolver per request, so its lookup cache never outlives one generation."""
    return DataResolver(source)
