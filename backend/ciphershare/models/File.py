from datetime import datetime, timezone
from sqlmodel import Field, SQLModel

def utcnow() -> datetime:
    return datetime.now(timezone.utc)

class StoredFile(SQLModel, table=True):
    __tablename__ = "files"

    id: int | None = Field(default=None, primary_key=True)
    file_name: str = Field(index=True)  # includes the extension
    file_description: str = ""
    file_size: int
    file_mime: str
    # Content identifier and wrapped key are written once, at upload
    ipfs_cid: str
    aes_key: str
    uploaded_by_user_id: int = Field(foreign_key="users.id", index=True)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

# Read model handed out by the repository (no lazy relationships)
class FileRead(SQLModel):
    id: int
    file_name: str
    file_description: str
    file_size: int
    file_mime: str
    ipfs_cid: str
    aes_key: str
    uploaded_by_user_id: int
    created_at: datetime
    updated_at: datetime

# Returned to clients; never exposes the wrapped key
class FileResponse(SQLModel):
    id: int
    file_name: str
    file_description: str
    file_size: int
    file_mime: str
    ipfs_cid: str
    uploaded_by_user_id: int
    created_at: datetime
    updated_at: datetime

class FileEdit(SQLModel):
    file_name: str = Field(min_length=1, max_length=255)  # without extension
    file_description: str = ""

class FileEditInfo(SQLModel):
    file_name: str
    file_description: str

class DiscoverableFile(FileResponse):
    name: str  # owner name
