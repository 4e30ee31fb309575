"""Contracts for the services the engine calls but does not implement.

The engine talks to case data, the portal registry and the audit log only
through these interfaces. Reference SQL-backed implementations live in
``formengine.services``; deployments can inject their own.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict

from formengine.models.audit_event import AuditEntityType


class _Unavailable:
    """Marker for a value the case/document data does not hold."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "UNAVAILABLE"

    def __bool__(self) -> bool:
        return False


UNAVAILABLE = _Unavailable()


class CaseDataSource(ABC):
    """Case/document lookup."""

    @abstractmethod
    def resolve(self, case_id: str, source_path: str) -> Any:
        """
        Return the value at ``source_path`` for the case, or ``UNAVAILABLE``.
        
        Hard failures (connection loss, timeouts) must raise rather than
        return ``UNAVAILABLE``.
        """


class PortalRegistry(ABC):
    """Registry of known government portals."""

    @abstractmethod
    def portal_exists(self, portal_id: str) -> bool:
        ...


@dataclass
class AuditEventPayload:
    """Event handed to an audit sink after a mutating operation."""
    entity_type: AuditEntityType
    entity_id: str
    action: str
    user_id: str
    details: Dict[str, Any] = field(default_factory=dict)


class AuditSink(ABC):
    """Destination for audit events."""

    @abstractmethod
    def emit(self, event: AuditEventPayload) -> None:
        ...
