from sqlmodel import Session, col, select

from ..core.errors import NotFoundError
from ..files.repository import FileRepository
from ..models.Department import Department
from ..models.File import DiscoverableFile, FileRead, StoredFile
from ..models.Sharing import (
    AccessListEntry,
    GrantRead,
    PendingRequestEntry,
    Permission,
    SharedFile,
    SharedWithMeEntry,
    ShareRequest,
    ShareRequestRead,
)
from ..models.User import User


class ListingService:
    """
    Read-only views for the UI. Every listing is an explicit join with a
    fixed sort order.
    """

    def __init__(self, session: Session):
        self.session = session
        self.files = FileRepository(session)

    def my_files(self, caller_id: int) -> list[FileRead]:
        return self.files.list_by_owner(caller_id)

    def shared_with_me(self, caller_id: int) -> list[SharedWithMeEntry]:
        statement = (
            select(SharedFile, StoredFile.file_name, StoredFile.file_description, User.name, Permission.permission_name)
            .join(StoredFile, StoredFile.id == SharedFile.file_id)
            .join(User, User.id == StoredFile.uploaded_by_user_id)
            .join(Permission, Permission.id == SharedFile.shared_permission_id)
            .where(SharedFile.shared_with_user_id == caller_id)
            .order_by(col(SharedFile.created_at).desc(), col(SharedFile.id).desc())
        )
        return [
            SharedWithMeEntry(
                **GrantRead.model_validate(grant).model_dump(),
                file_name=file_name,
                file_description=file_description,
                name=owner_name,
                permission_name=permission_name,
            )
            for grant, file_name, file_description, owner_name, permission_name in self.session.exec(statement)
        ]

    def discoverable_files(self, caller_id: int) -> list[DiscoverableFile]:
        """
        Files of other users the caller neither holds a grant for nor has
        already requested.
        """
        granted = select(SharedFile.file_id).where(SharedFile.shared_with_user_id == caller_id)
        requested = select(ShareRequest.requested_file_id).where(ShareRequest.requested_by_user_id == caller_id)

        statement = (
            select(StoredFile, User.name)
            .join(User, User.id == StoredFile.uploaded_by_user_id)
            .where(StoredFile.uploaded_by_user_id != caller_id)
            .where(col(StoredFile.id).not_in(granted))
            .where(col(StoredFile.id).not_in(requested))
            .order_by(col(StoredFile.file_name), col(StoredFile.id))
        )
        return [
            DiscoverableFile(**FileRead.model_validate(file).model_dump(), name=owner_name)
            for file, owner_name in self.session.exec(statement)
        ]

    def pending_requests(self, caller_id: int) -> list[PendingRequestEntry]:
        statement = (
            select(ShareRequest, StoredFile.file_name, StoredFile.file_description, User.name, Permission.permission_name)
            .join(StoredFile, StoredFile.id == ShareRequest.requested_file_id)
            .join(User, User.id == ShareRequest.requested_by_user_id)
            .join(Permission, Permission.id == ShareRequest.requested_permission_id)
            .where(StoredFile.uploaded_by_user_id == caller_id)
            .order_by(col(ShareRequest.created_at).desc(), col(ShareRequest.id).desc())
        )
        return [
            PendingRequestEntry(
                **ShareRequestRead.model_validate(request).model_dump(),
                file_name=file_name,
                file_description=file_description,
                name=requester_name,
                permission_name=permission_name,
            )
            for request, file_name, file_description, requester_name, permission_name in self.session.exec(statement)
        ]

    def access_list(self, caller_id: int, file_id: int, permission_name: str) -> list[AccessListEntry]:
        """
        Grants on a file with the given permission. Visible to the owner and
        to anyone holding a grant on the file.
        """
        file = self.files.find_by_id(file_id)
        if file.uploaded_by_user_id != caller_id:
            own_grant = self.session.exec(
                select(SharedFile.id).where(
                    SharedFile.file_id == file_id,
                    SharedFile.shared_with_user_id == caller_id,
                )
            ).first()
            if own_grant is None:
                raise NotFoundError("File not found.")

        statement = (
            select(SharedFile, User.name, User.email, Permission.permission_name, Department.dep_name)
            .join(User, User.id == SharedFile.shared_with_user_id)
            .join(Permission, Permission.id == SharedFile.shared_permission_id)
            .join(Department, Department.id == SharedFile.shared_with_department_id, isouter=True)
            .where(SharedFile.file_id == file_id)
            .where(Permission.permission_name == permission_name)
            .order_by(col(User.name), col(SharedFile.id))
        )
        return [
            AccessListEntry(
                **GrantRead.model_validate(grant).model_dump(),
                name=name,
                email=email,
                permission_name=permission,
                dep_name=dep_name,
            )
            for grant, name, email, permission, dep_name in self.session.exec(statement)
        ]

    def departments(self) -> list[Department]:
        return list(self.session.exec(select(Department).order_by(col(Department.dep_name))).all())

    def users_to_share_with(self, caller_id: int) -> list[User]:
        statement = select(User).where(User.id != caller_id).order_by(col(User.email), col(User.id))
        return list(self.session.exec(statement).all())
