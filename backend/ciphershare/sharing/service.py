"""
Sharing/ACL engine.

Per (file, user) pair the state moves NoRelation -> Requested -> Granted,
and back to NoRelation on revoke. Every transition that checks a
precondition and then writes runs under the file's lock and commits once,
so a failed write leaves nothing behind. The unique constraints on
``shared_files`` and ``share_requests`` back this up across processes.

The audit chain lock is taken after the file lock and held until the
commit, so audit entries from different files never fork the chain.
"""
import logging
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from ..audit.service import log_event
from ..core import errors
from ..core.errors import ConflictError, NoChangeError, NotFoundError
from ..core.locks import audit_chain_lock, file_lock
from ..directory.service import Directory, SqlDirectory
from ..files.repository import FileRepository
from ..models.Sharing import (
    OWNER,
    DepartmentShareResult,
    GrantRead,
    Permission,
    SharedFile,
    ShareRequest,
    ShareRequestRead,
)

logger = logging.getLogger(__name__)


class SharingService:
    def __init__(self, session: Session, directory: Optional[Directory] = None):
        self.session = session
        self.directory = directory or SqlDirectory(session)
        self.files = FileRepository(session)

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------
    def _permission(self, permission_id: int) -> Permission:
        permission = self.session.get(Permission, permission_id)
        if not permission:
            raise NotFoundError("Permission not found.")
        return permission

    def _grant_for(self, file_id: int, user_id: int) -> Optional[SharedFile]:
        statement = select(SharedFile).where(
            SharedFile.file_id == file_id,
            SharedFile.shared_with_user_id == user_id,
        )
        return self.session.exec(statement).first()

    def _request_for(self, file_id: int, user_id: int) -> Optional[ShareRequest]:
        statement = select(ShareRequest).where(
            ShareRequest.requested_file_id == file_id,
            ShareRequest.requested_by_user_id == user_id,
        )
        return self.session.exec(statement).first()

    def _load_grant(self, grant_id: int) -> SharedFile:
        grant = self.session.exec(select(SharedFile).where(SharedFile.id == grant_id)).first()
        if not grant:
            raise NotFoundError("Shared file not found.")
        return grant

    def _load_request(self, request_id: int) -> ShareRequest:
        request = self.session.exec(select(ShareRequest).where(ShareRequest.id == request_id)).first()
        if not request:
            raise NotFoundError("Share request not found.")
        return request

    def _commit(self, conflict_message: str, code: str) -> None:
        try:
            self.session.commit()
        except IntegrityError:
            self.session.rollback()
            logger.warning("Concurrent duplicate rejected: %s", code)
            raise ConflictError(conflict_message, code=code)

    def get_grant(self, grant_id: int) -> GrantRead:
        return GrantRead.model_validate(self._load_grant(grant_id))

    def get_request(self, request_id: int) -> ShareRequestRead:
        return ShareRequestRead.model_validate(self._load_request(request_id))

    def get_access(self, caller_id: int, file_id: int) -> str:
        """
        Effective permission of the caller on a file: "Owner", "Editor"
        or "Viewer". Files the caller cannot see are reported as missing.
        """
        file = self.files.find_by_id(file_id)
        if file.uploaded_by_user_id == caller_id:
            return OWNER
        grant = self._grant_for(file_id, caller_id)
        if not grant:
            raise NotFoundError("File not found.")
        return self._permission(grant.shared_permission_id).permission_name

    # ------------------------------------------------------------------
    # Request / approve
    # ------------------------------------------------------------------
    def request_access(self, caller_id: int, file_id: int, permission_id: int) -> ShareRequestRead:
        permission = self._permission(permission_id)

        with file_lock(file_id), audit_chain_lock():
            file = self.files.find_by_id(file_id)
            if file.uploaded_by_user_id == caller_id:
                raise ConflictError(errors.OWN_FILE, code="own_file")
            if self._grant_for(file_id, caller_id):
                raise ConflictError(errors.USER_SHARE_EXISTS, code="user_share_exists")
            if self._request_for(file_id, caller_id):
                raise ConflictError(errors.REQUEST_EXISTS, code="request_exists")

            request = ShareRequest(
                requested_file_id=file_id,
                requested_by_user_id=caller_id,
                requested_permission_id=permission.id,
            )
            self.session.add(request)
            log_event(self.session, caller_id, "SHARE_REQUEST_CREATE",
                      f"file={file_id} permission={permission.permission_name}", commit=False)
            self._commit(errors.REQUEST_EXISTS, "request_exists")

        return ShareRequestRead.model_validate(request)

    def approve_request(self, caller_id: int, request_id: int) -> GrantRead:
        file_id = self._load_request(request_id).requested_file_id

        with file_lock(file_id), audit_chain_lock():
            self.files.find_owned(file_id, caller_id)
            # Re-read under the lock; a concurrent approval may have consumed it
            request = self._load_request(request_id)
            requester_id = request.requested_by_user_id

            if self._grant_for(file_id, requester_id):
                # Stale request: resolve it instead of leaving it pending
                self.session.delete(request)
                log_event(self.session, caller_id, "SHARE_REQUEST_STALE",
                          f"file={file_id} user={requester_id}", commit=False)
                self.session.commit()
                raise ConflictError(errors.STALE_REQUEST, code="user_share_exists")

            grant = SharedFile(
                file_id=file_id,
                shared_with_user_id=requester_id,
                shared_with_department_id=self.directory.department_of(requester_id),
                shared_permission_id=request.requested_permission_id,
            )
            self.session.add(grant)
            self.session.delete(request)
            log_event(self.session, caller_id, "SHARE_REQUEST_APPROVE",
                      f"file={file_id} user={requester_id}", commit=False)
            self._commit(errors.USER_SHARE_EXISTS, "user_share_exists")

        logger.info("Request %s approved on file %s", request_id, file_id)
        return GrantRead.model_validate(grant)

    def reject_request(self, caller_id: int, request_id: int) -> None:
        file_id = self._load_request(request_id).requested_file_id

        with file_lock(file_id), audit_chain_lock():
            self.files.find_owned(file_id, caller_id)
            request = self._load_request(request_id)
            self.session.delete(request)
            log_event(self.session, caller_id, "SHARE_REQUEST_REJECT",
                      f"file={file_id} user={request.requested_by_user_id}", commit=False)
            self.session.commit()

    # ------------------------------------------------------------------
    # Direct shares
    # ------------------------------------------------------------------
    def share_with_department(
        self, caller_id: int, file_id: int, department_id: int, permission_id: int
    ) -> DepartmentShareResult:
        """
        Bulk-share: one grant per current member of the department, written
        in a single commit. Any existing grant recorded with this department
        marks the file as already shared with it.
        """
        permission = self._permission(permission_id)
        self.directory.get_department(department_id)

        with file_lock(file_id), audit_chain_lock():
            file = self.files.find_owned(file_id, caller_id)

            marker = self.session.exec(
                select(SharedFile.id).where(
                    SharedFile.file_id == file_id,
                    SharedFile.shared_with_department_id == department_id,
                )
            ).first()
            if marker is not None:
                raise ConflictError(errors.DEPARTMENT_SHARE_EXISTS, code="department_share_exists")

            already_granted = set(self.session.exec(
                select(SharedFile.shared_with_user_id).where(SharedFile.file_id == file_id)
            ).all())
            pending = {
                request.requested_by_user_id: request
                for request in self.session.exec(
                    select(ShareRequest).where(ShareRequest.requested_file_id == file_id)
                )
            }

            grants = []
            skipped = []
            for member_id in self.directory.members_of(department_id):
                if member_id == file.uploaded_by_user_id or member_id in already_granted:
                    skipped.append(member_id)
                    continue
                grant = SharedFile(
                    file_id=file_id,
                    shared_with_user_id=member_id,
                    shared_with_department_id=department_id,
                    shared_permission_id=permission.id,
                )
                self.session.add(grant)
                grants.append(grant)

                # A grant supersedes the member's pending request
                if member_id in pending:
                    self.session.delete(pending[member_id])

            log_event(self.session, caller_id, "SHARE_DEPARTMENT",
                      f"file={file_id} department={department_id} "
                      f"permission={permission.permission_name} granted={len(grants)}", commit=False)
            self._commit(errors.DEPARTMENT_SHARE_EXISTS, "department_share_exists")

        return DepartmentShareResult(
            department_id=department_id,
            granted=[GrantRead.model_validate(grant) for grant in grants],
            skipped_user_ids=skipped,
        )

    def share_with_user(self, caller_id: int, file_id: int, user_id: int, permission_id: int) -> GrantRead:
        permission = self._permission(permission_id)
        department_id = self.directory.department_of(user_id)

        with file_lock(file_id), audit_chain_lock():
            file = self.files.find_owned(file_id, caller_id)
            if user_id == file.uploaded_by_user_id:
                raise ConflictError(errors.OWN_FILE, code="own_file")
            if self._grant_for(file_id, user_id):
                raise ConflictError(errors.USER_SHARE_EXISTS, code="user_share_exists")
            pending = self._request_for(file_id, user_id)

            grant = SharedFile(
                file_id=file_id,
                shared_with_user_id=user_id,
                shared_with_department_id=department_id,
                shared_permission_id=permission.id,
            )
            self.session.add(grant)
            if pending:
                self.session.delete(pending)
            log_event(self.session, caller_id, "SHARE_USER",
                      f"file={file_id} user={user_id} permission={permission.permission_name}", commit=False)
            self._commit(errors.USER_SHARE_EXISTS, "user_share_exists")

        return GrantRead.model_validate(grant)

    # ------------------------------------------------------------------
    # Grant maintenance
    # ------------------------------------------------------------------
    def update_access(self, caller_id: int, grant_id: int, permission_id: int) -> GrantRead:
        permission = self._permission(permission_id)
        file_id = self._load_grant(grant_id).file_id

        with file_lock(file_id), audit_chain_lock():
            self.files.find_owned(file_id, caller_id)
            grant = self._load_grant(grant_id)
            if grant.shared_permission_id == permission.id:
                raise NoChangeError()

            grant.shared_permission_id = permission.id
            self.session.add(grant)
            log_event(self.session, caller_id, "SHARE_UPDATE",
                      f"grant={grant_id} permission={permission.permission_name}", commit=False)
            self.session.commit()

        return GrantRead.model_validate(grant)

    def revoke(self, caller_id: int, grant_id: int) -> None:
        file_id = self._load_grant(grant_id).file_id

        with file_lock(file_id), audit_chain_lock():
            self.files.find_owned(file_id, caller_id)
            grant = self._load_grant(grant_id)
            self.session.delete(grant)
            log_event(self.session, caller_id, "SHARE_REVOKE",
                      f"file={file_id} user={grant.shared_with_user_id}", commit=False)
            self.session.commit()

    def delete_file(self, caller_id: int, file_id: int) -> None:
        """
        Removes a file with all its grants and pending requests in one
        transaction. The ciphertext stays in the append-only store.
        """
        with file_lock(file_id), audit_chain_lock():
            self.files.find_owned(file_id, caller_id)

            grants = self.session.exec(select(SharedFile).where(SharedFile.file_id == file_id)).all()
            for grant in grants:
                self.session.delete(grant)

            requests = self.session.exec(
                select(ShareRequest).where(ShareRequest.requested_file_id == file_id)
            ).all()
            for request in requests:
                self.session.delete(request)

            # Child rows must be gone before the file row
            self.session.flush()
            self.files.delete(file_id)
            log_event(self.session, caller_id, "FILE_DELETE",
                      f"file={file_id} grants={len(grants)} requests={len(requests)}", commit=False)
            self.session.commit()

        logger.info("File %s deleted by user %s", file_id, caller_id)
