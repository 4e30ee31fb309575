"""Case data router: snapshots that template source paths resolve against."""

from typing import Any, Dict

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from formengine.database import get_db
from formengine.services.auth import CurrentUser, UserRole, require_role
from formengine.services.case_data import CaseDataService

router = APIRouter()


@router.get("/{case_id}/data")
async def get_case_data(
    case_id: str,
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(require_role(UserRole.ADMIN, UserRole.AGENT))
):
    """Get the stored case data snapshot."""
    record = CaseDataService.get_case_record(db, case_id)
    if not record:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Case data not found"
        )
    return {"case_id": record.case_id, "data": record.data}


@router.put("/{case_id}/data")
async def put_case_data(
    case_id: str,
    data: Dict[str, Any],
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(require_role(UserRole.ADMIN, UserRole.AGENT))
):
    """Replace the case data snapshot used to resolve template source paths."""
    record = CaseDataService.upsert_case_record(db, case_id, data)
    return {"case_id": record.case_id, "data": record.data}
