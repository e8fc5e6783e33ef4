from sqlmodel import Field, SQLModel

# ==========================================
# Directory entity (read-only to the core)
# ==========================================
class User(SQLModel, table=True):
    __tablename__ = "users"

    id: int | None = Field(default=None, primary_key=True)
    name: str = Field(index=True, nullable=False)
    email: str | None = Field(default=None, unique=True, index=True, nullable=True)
    department_id: int | None = Field(default=None, foreign_key="departments.id", index=True, nullable=True)

# ==========================================
# Pydantic Models (DTOs)
# ==========================================
class UserResponse(SQLModel):
    id: int
    name: str
    email: str | None = None
    department_id: int | None = None
