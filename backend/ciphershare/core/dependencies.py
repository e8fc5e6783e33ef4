from fastapi import Depends
from sqlmodel import Session

from .database import get_session
from ..files.service import FileService
from ..listing.service import ListingService
from ..storage.store import ContentStore, get_content_store
from ..sharing.service import SharingService

def get_sharing_service(session: Session = Depends(get_session)) -> SharingService:
    return SharingService(session)

def get_listing_service(session: Session = Depends(get_session)) -> ListingService:
    return ListingService(session)

def get_file_service(
    session: Session = Depends(get_session),
    store: ContentStore = Depends(get_content_store),
) -> FileService:
    return FileService(session, store)
