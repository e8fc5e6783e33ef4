import re
from typing import Optional
from urllib.parse import quote

from fastapi import APIRouter, Depends, File, Form, Response, UploadFile, status

from ..auth.service import get_current_user_id
from ..core.dependencies import get_file_service, get_listing_service, get_sharing_service
from ..core.errors import PayloadTooLargeError
from ..core.settings import settings
from ..files.service import FileService
from ..listing.service import ListingService
from ..models.File import DiscoverableFile, FileEdit, FileEditInfo, FileResponse
from ..models.Sharing import SharedWithMeEntry
from ..sharing.service import SharingService

router = APIRouter(prefix="/files", tags=["files"])

_UNSAFE_FALLBACK_CHARS = re.compile(r'[^\x20-\x7e]|["\\]')

def content_disposition(file_name: str) -> str:
    """
    Attachment header carrying the real name as RFC 5987 UTF-8, with an
    ASCII-only filename= for clients that ignore filename*.
    """
    fallback = _UNSAFE_FALLBACK_CHARS.sub("_", file_name)
    return f"attachment; filename=\"{fallback}\"; filename*=UTF-8''{quote(file_name, safe='')}"

@router.get("/mine", response_model=list[FileResponse])
def show_my_files(
    current_user_id: int = Depends(get_current_user_id),
    listing: ListingService = Depends(get_listing_service)
):
    """
    Files uploaded by the caller, most recently updated first.
    """
    return listing.my_files(current_user_id)

@router.get("/shared", response_model=list[SharedWithMeEntry])
def show_shared_with_me(
    current_user_id: int = Depends(get_current_user_id),
    listing: ListingService = Depends(get_listing_service)
):
    return listing.shared_with_me(current_user_id)

@router.get("/discover", response_model=list[DiscoverableFile])
def show_all_files(
    current_user_id: int = Depends(get_current_user_id),
    listing: ListingService = Depends(get_listing_service)
):
    """
    Files of other users that the caller can still request access to.
    """
    return listing.discoverable_files(current_user_id)

@router.post("", status_code=status.HTTP_201_CREATED)
def upload_file(
    file: UploadFile = File(...),
    file_description: str = Form(""),
    file_size: Optional[int] = Form(None),
    current_user_id: int = Depends(get_current_user_id),
    files: FileService = Depends(get_file_service)
):
    # The part is already spooled by Starlette; read at most one byte past the limit
    if file.size is not None and file.size > settings.MAX_UPLOAD_SIZE:
        raise PayloadTooLargeError()
    data = file.file.read(settings.MAX_UPLOAD_SIZE + 1)
    if len(data) > settings.MAX_UPLOAD_SIZE:
        raise PayloadTooLargeError()

    record = files.upload(
        caller_id=current_user_id,
        data=data,
        filename=file.filename,
        mime=file.content_type,
        description=file_description,
        declared_size=file_size,
    )
    return {
        "message": "File uploaded successfully.",
        "file": FileResponse.model_validate(record),
    }

@router.get("/{file_id}/download")
def download_file(
    file_id: int,
    current_user_id: int = Depends(get_current_user_id),
    files: FileService = Depends(get_file_service)
):
    record, content = files.download(current_user_id, file_id)
    return Response(
        content=content,
        media_type=record.file_mime,
        headers={"Content-Disposition": content_disposition(record.file_name)},
    )

@router.get("/{file_id}/edit-info", response_model=FileEditInfo)
def get_file_edit_info(
    file_id: int,
    current_user_id: int = Depends(get_current_user_id),
    files: FileService = Depends(get_file_service)
):
    return files.edit_info(current_user_id, file_id)

@router.put("/shared/{file_id}")
def edit_at_shared_with_me(
    file_id: int,
    edit: FileEdit,
    current_user_id: int = Depends(get_current_user_id),
    files: FileService = Depends(get_file_service)
):
    """
    Edit metadata of a file shared with the caller (Editor access).
    """
    files.edit_shared_file(current_user_id, file_id, edit.file_name, edit.file_description)
    return {"message": "File metadata edited successfully."}

@router.put("/{file_id}")
def edit_at_my_files(
    file_id: int,
    edit: FileEdit,
    current_user_id: int = Depends(get_current_user_id),
    files: FileService = Depends(get_file_service)
):
    files.edit_my_file(current_user_id, file_id, edit.file_name, edit.file_description)
    return {"message": "File metadata edited successfully."}

@router.delete("/{file_id}")
def delete_file(
    file_id: int,
    current_user_id: int = Depends(get_current_user_id),
    sharing: SharingService = Depends(get_sharing_service)
):
    sharing.delete_file(current_user_id, file_id)
    return {"message": "File deleted successfully."}
