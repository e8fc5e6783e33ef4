import logging

from sqlmodel import Session
from .database import engine
from ..models.Sharing import PERMISSIONS, Permission

logger = logging.getLogger(__name__)

def init_db(bind=None):
    """
    Seeds the fixed permission set (1 = Viewer, 2 = Editor).
    """
    with Session(bind or engine) as session:
        for permission_id, permission_name in PERMISSIONS.items():
            if not session.get(Permission, permission_id):
                logger.info("Seeding permission %s", permission_name)
                session.add(Permission(id=permission_id, permission_name=permission_name))
        session.commit()
