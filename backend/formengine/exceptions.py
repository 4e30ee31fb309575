"""Error taxonomy for the form engine.

Every error carries a machine-readable ``kind`` and a human message so the
HTTP layer (or any other caller) can act on it without parsing text.
"""

from typing import Any, Dict, Optional


class FormEngineError(Exception):
    """Base class for all form engine errors."""

    kind = "error"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        payload = {"error": self.kind, "detail": self.message}
        if self.details:
            payload["details"] = self.details
        return payload


class ValidationError(FormEngineError):
    """Malformed input: blank name, no fields, empty or dangling mappings."""

    kind = "validation_error"


class NotFoundError(FormEngineError):
    """Template, portal, mapping, case or submission does not exist."""

    kind = "not_found"


class InvalidStateError(FormEngineError):
    """Operation not legal for the entity's current lifecycle state."""

    kind = "invalid_state"


class ImmutableFieldError(FormEngineError):
    """Attempt to change a field that is fixed at creation."""

    kind = "immutable_field"


class DependencyError(FormEngineError):
    """A collaborator call failed or timed out."""

    kind = "dependency_error"
