import logging
from datetime import datetime, timezone
from typing import Optional

from sqlmodel import Session, select

from ..core.locks import audit_chain_lock
from ..models.Audit import AuditLog, GENESIS_HASH

logger = logging.getLogger(__name__)

def log_event(db: Session, actor_id: int, action: str, details: Optional[str] = None, commit: bool = True) -> AuditLog:
    """
    Appends an event to the AuditLog chain.
    With commit=False the entry joins the caller's transaction, and the
    caller must hold audit_chain_lock() until it commits.
    """
    with audit_chain_lock():
        with db.no_autoflush:
            last_entry = db.exec(select(AuditLog).order_by(AuditLog.id.desc())).first()
        previous_hash = last_entry.current_hash if last_entry else GENESIS_HASH

        new_log = AuditLog(
            actor_id=actor_id,
            action=action,
            details=details or "",
            previous_hash=previous_hash,
            current_hash="",  # Placeholder, calculated below
            timestamp=datetime.now(timezone.utc).replace(microsecond=0)
        )
        new_log.current_hash = new_log.calculate_hash()

        db.add(new_log)
        if commit:
            db.commit()
            db.refresh(new_log)

    logger.info("audit actor=%s action=%s %s", actor_id, action, details or "")
    return new_log

def list_events_for_actor(db: Session, actor_id: int) -> list[AuditLog]:
    statement = select(AuditLog).where(AuditLog.actor_id == actor_id).order_by(AuditLog.id.asc())
    return list(db.exec(statement).all())

def verify_chain(db: Session) -> Optional[int]:
    """
    Walks the whole chain. Returns the id of the first broken entry, or None.
    """
    previous_hash = GENESIS_HASH
    for entry in db.exec(select(AuditLog).order_by(AuditLog.id.asc())):
        if entry.previous_hash != previous_hash or entry.calculate_hash() != entry.current_hash:
            logger.warning("Audit chain broken at entry %s", entry.id)
            return entry.id
        previous_hash = entry.current_hash
    return None
