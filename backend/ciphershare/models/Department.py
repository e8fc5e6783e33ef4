from datetime import datetime, timezone
from sqlmodel import Field, SQLModel

class Department(SQLModel, table=True):
    __tablename__ = "departments"

    id: int | None = Field(default=None, primary_key=True)
    dep_name: str = Field(unique=True, index=True)
    description: str | None = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

class DepartmentResponse(SQLModel):
    id: int
    dep_name: str
    description: str | None
