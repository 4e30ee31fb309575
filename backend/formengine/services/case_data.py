"""Reference case/document lookup backed by the ``case_records`` table."""

from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from formengine.collaborators import CaseDataSource, UNAVAILABLE
from formengine.models.case_record import CaseRecord


def resolve_path(data: Any, source_path: str) -> Any:
    """
    Walk a dotted path through nested dicts and lists.
    
    Integer segments index into lists (``documents.0.number``). A missing
    segment or a ``None`` leaf yields ``UNAVAILABLE``.
    """
    current = data
    for segment in source_path.split("."):
        if isinstance(current, dict):
            if segment not in current:
                return UNAVAILABLE
            current = current[segment]
        elif isinstance(current, list):
            try:
                current = current[int(segment)]
            except (ValueError, IndexError):
                return UNAVAILABLE
        else:
            return UNAVAILABLE
    
    if current is None:
        return UNAVAILABLE
    return current


class SqlCaseDataSource(CaseDataSource):
    """Resolves source paths against the case's stored data snapshot."""
    
    def __init__(self, db: Session):
        self.db = db
    
    def resolve(self, case_id: str, source_path: str) -> Any:
        record = self.db.query(CaseRecord).filter(CaseRecord.case_id == case_id).first()
        if not record:
            return UNAVAILABLE
        return resolve_path(record.data or {}, source_path)


class CaseDataService:
    """Maintains case data snapshots for the SQL lookup adapter."""
    
    @staticmethod
    def get_case_record(db: Session, case_id: str) -> Optional[CaseRecord]:
        return db.query(CaseRecord).filter(CaseRecord.case_id == case_id).first()
    
    @staticmethod
    def upsert_case_record(db: Session, case_id: str, data: Dict[str, Any]) -> CaseRecord:
        """Replace the stored snapshot for a case."""
        record = CaseDataService.get_case_record(db, case_id)
        if record:
            record.data = data
        else:
            record = CaseRecord(case_id=case_id, data=data)
            db.add(record)
        db.commit()
        db.refresh(record)
        return record
