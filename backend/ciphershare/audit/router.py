from fastapi import APIRouter, Depends
from sqlmodel import Session
from typing import List
from ..core.database import get_session
from ..auth.service import get_current_user_id
from ..models.Audit import AuditLogResponse
from .service import list_events_for_actor

router = APIRouter(prefix="/audit", tags=["audit"])

@router.get("/log", response_model=List[AuditLogResponse])
def get_my_audit_log(
    session: Session = Depends(get_session),
    current_user_id: int = Depends(get_current_user_id)
):
    """
    Audit entries recorded for the caller's own actions.
    """
    return list_events_for_actor(session, current_user_id)
