from datetime import datetime, timezone
from enum import Enum
from sqlalchemy import UniqueConstraint
from sqlmodel import Field, SQLModel

OWNER = "Owner"
VIEWER = "Viewer"
EDITOR = "Editor"

class PermissionName(str, Enum):
    VIEWER = "Viewer"
    EDITOR = "Editor"

# Fixed permission set, seeded by init_db
PERMISSIONS = {1: VIEWER, 2: EDITOR}

def utcnow() -> datetime:
    return datetime.now(timezone.utc)

class Permission(SQLModel, table=True):
    __tablename__ = "permissions"

    id: int = Field(primary_key=True)
    permission_name: str = Field(unique=True)

class SharedFile(SQLModel, table=True):
    __tablename__ = "shared_files"
    __table_args__ = (
        UniqueConstraint("file_id", "shared_with_user_id", name="uq_shared_file_user"),
    )

    id: int | None = Field(default=None, primary_key=True)
    file_id: int = Field(foreign_key="files.id", index=True)
    shared_with_user_id: int = Field(foreign_key="users.id", index=True)
    # Snapshot of the grantee's department when the grant was made
    shared_with_department_id: int | None = Field(default=None, foreign_key="departments.id", index=True)
    shared_permission_id: int = Field(foreign_key="permissions.id")
    created_at: datetime = Field(default_factory=utcnow)

class ShareRequest(SQLModel, table=True):
    __tablename__ = "share_requests"
    __table_args__ = (
        UniqueConstraint("requested_file_id", "requested_by_user_id", name="uq_share_request_user"),
    )

    id: int | None = Field(default=None, primary_key=True)
    requested_file_id: int = Field(foreign_key="files.id", index=True)
    requested_by_user_id: int = Field(foreign_key="users.id", index=True)
    requested_permission_id: int = Field(foreign_key="permissions.id")
    created_at: datetime = Field(default_factory=utcnow)

# ==========================================
# Pydantic Models (DTOs)
# ==========================================
class GrantRead(SQLModel):
    id: int
    file_id: int
    shared_with_user_id: int
    shared_with_department_id: int | None
    shared_permission_id: int
    created_at: datetime

class ShareRequestRead(SQLModel):
    id: int
    requested_file_id: int
    requested_by_user_id: int
    requested_permission_id: int
    created_at: datetime

class SharedWithMeEntry(GrantRead):
    file_name: str
    file_description: str
    name: str  # owner name
    permission_name: str

class PendingRequestEntry(ShareRequestRead):
    file_name: str
    file_description: str
    name: str  # requester name
    permission_name: str

class AccessListEntry(GrantRead):
    name: str
    email: str | None
    permission_name: str
    dep_name: str | None

class AccessRequestCreate(SQLModel):
    requested_file_id: int
    requested_permission_id: int

class DepartmentShareCreate(SQLModel):
    file_id: int
    shared_with_department_id: int
    permission_id: int

class UserShareCreate(SQLModel):
    file_id: int
    shared_with_user_id: int
    permission_id: int

class AccessUpdate(SQLModel):
    shared_permission_id: int

class DepartmentShareResult(SQLModel):
    department_id: int
    granted: list[GrantRead]
    skipped_user_ids: list[int]
