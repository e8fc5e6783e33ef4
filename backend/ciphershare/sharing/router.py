from fastapi import APIRouter, Depends, Query, status

from ..auth.service import get_current_user_id
from ..core.dependencies import get_listing_service, get_sharing_service
from ..listing.service import ListingService
from ..models.Department import DepartmentResponse
from ..models.Sharing import (
    AccessListEntry,
    AccessRequestCreate,
    AccessUpdate,
    DepartmentShareCreate,
    PendingRequestEntry,
    PermissionName,
    UserShareCreate,
)
from ..models.User import UserResponse
from .service import SharingService

router = APIRouter(prefix="/sharing", tags=["sharing"])

@router.post("/requests", status_code=status.HTTP_201_CREATED)
def request_to_share(
    body: AccessRequestCreate,
    current_user_id: int = Depends(get_current_user_id),
    sharing: SharingService = Depends(get_sharing_service)
):
    """
    Ask the owner of a file for Viewer or Editor access.
    """
    request = sharing.request_access(current_user_id, body.requested_file_id, body.requested_permission_id)
    return {"message": "Request sent successfully.", "request": request}

@router.get("/requests", response_model=list[PendingRequestEntry])
def show_share_requests(
    current_user_id: int = Depends(get_current_user_id),
    listing: ListingService = Depends(get_listing_service)
):
    """
    Pending requests from other users on the caller's files.
    """
    return listing.pending_requests(current_user_id)

@router.post("/requests/{request_id}/approve", status_code=status.HTTP_201_CREATED)
def approve_request(
    request_id: int,
    current_user_id: int = Depends(get_current_user_id),
    sharing: SharingService = Depends(get_sharing_service)
):
    grant = sharing.approve_request(current_user_id, request_id)
    return {"message": "Request has been approved.", "grant": grant}

@router.delete("/requests/{request_id}")
def reject_request(
    request_id: int,
    current_user_id: int = Depends(get_current_user_id),
    sharing: SharingService = Depends(get_sharing_service)
):
    sharing.reject_request(current_user_id, request_id)
    return {"message": "Request has been rejected."}

@router.post("/departments", status_code=status.HTTP_201_CREATED)
def share_with_department(
    body: DepartmentShareCreate,
    current_user_id: int = Depends(get_current_user_id),
    sharing: SharingService = Depends(get_sharing_service)
):
    """
    Share a file with every current member of a department.
    """
    result = sharing.share_with_department(
        current_user_id, body.file_id, body.shared_with_department_id, body.permission_id
    )
    return {"message": "File shared successfully.", "result": result}

@router.post("/users", status_code=status.HTTP_201_CREATED)
def share_with_user(
    body: UserShareCreate,
    current_user_id: int = Depends(get_current_user_id),
    sharing: SharingService = Depends(get_sharing_service)
):
    grant = sharing.share_with_user(current_user_id, body.file_id, body.shared_with_user_id, body.permission_id)
    return {"message": "File shared successfully.", "grant": grant}

@router.put("/grants/{grant_id}")
def update_file_access(
    grant_id: int,
    body: AccessUpdate,
    current_user_id: int = Depends(get_current_user_id),
    sharing: SharingService = Depends(get_sharing_service)
):
    sharing.update_access(current_user_id, grant_id, body.shared_permission_id)
    return {"message": "User access to file updated successfully."}

@router.delete("/grants/{grant_id}")
def revoke_file_access(
    grant_id: int,
    current_user_id: int = Depends(get_current_user_id),
    sharing: SharingService = Depends(get_sharing_service)
):
    sharing.revoke(current_user_id, grant_id)
    return {"message": "File unshared with the user successfully."}

@router.get("/files/{file_id}/access", response_model=list[AccessListEntry])
def get_users_with_access(
    file_id: int,
    permission: PermissionName = Query(PermissionName.VIEWER),
    current_user_id: int = Depends(get_current_user_id),
    listing: ListingService = Depends(get_listing_service)
):
    return listing.access_list(current_user_id, file_id, permission.value)

@router.get("/targets/departments", response_model=list[DepartmentResponse])
def get_departments_to_share(
    current_user_id: int = Depends(get_current_user_id),
    listing: ListingService = Depends(get_listing_service)
):
    return listing.departments()

@router.get("/targets/users", response_model=list[UserResponse])
def get_users_to_share_file(
    current_user_id: int = Depends(get_current_user_id),
    listing: ListingService = Depends(get_listing_service)
):
    return listing.users_to_share_with(current_user_id)
