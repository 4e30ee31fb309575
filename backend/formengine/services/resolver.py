"""Data resolver: fills template fields from case/document data."""

import logging
from typing import Any, Dict, Tuple

from formengine.collaborators import CaseDataSource, UNAVAILABLE
from formengine.exceptions import DependencyError, FormEngineError

logger = logging.getLogger(__name__)


class DataResolver:
    """
    Resolves field source paths through a case data collaborator.
    
    One resolver is meant to serve one generation request: lookups are
    memoized so that fields sharing a source path hit the collaborator once.
    """
    
    def __init__(self, source: CaseDataSource):
        self.source = source
        self._cache: Dict[Tuple[str, str], Any] = {}
    
    def resolve(self, case_id: str, source_path: str) -> Any:
        """Return the value for ``source_path`` or ``UNAVAILABLE``."""
        key = (case_id, source_path)
        if key in self._cache:
            return self._cache[key]
        
        try:
            value = self.source.resolve(case_id, source_path)
        except FormEngineError:
            raise
        except Exception as e:
            logger.warning(
                "Case data lookup failed for case=%s path=%s: %s",
                case_id, source_path, e
            )
            raise DependencyError(
                f"Case data lookup failed for '{source_path}': {e}",
                details={"case_id": case_id, "source_path": source_path},
            ) from e
        
        if value is None:
            value = UNAVAILABLE
        self._cache[key] = value
        return value
