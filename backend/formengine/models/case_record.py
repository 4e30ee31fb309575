"""Case data snapshot used by the SQL case/document lookup adapter."""

from datetime import datetime
from typing import Dict, Any

from sqlalchemy import String, DateTime, JSON
from sqlalchemy.orm import Mapped, mapped_column

from formengine.database import Base


class CaseRecord(Base):
    """
    CaseRecord holds the case attributes and extracted document data
    that template fields point at through their ``sourcePath``.
    """
    
    __tablename__ = "case_records"
    
    case_id: Mapped[str] = mapped_column(String(255), primary_key=True)
    data: Mapped[Dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=datetime.utcnow,
        onupdate=datetime.utcnow
    )
    
    def __repr__(self) -> str:
        return f"<CaseRecord(case_id='{self.case_id}')>"
