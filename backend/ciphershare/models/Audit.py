from datetime import datetime, timezone
from typing import Optional
from sqlmodel import Field, SQLModel
import hashlib

GENESIS_HASH = "0" * 64

class AuditLog(SQLModel, table=True):
    __tablename__ = "audit_logs"

    id: Optional[int] = Field(default=None, primary_key=True)
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc).replace(microsecond=0))
    actor_id: int = Field(index=True)
    action: str
    details: str = ""
    previous_hash: str
    current_hash: str

    def calculate_hash(self) -> str:
        """
        SHA-256 over previous_hash + timestamp + actor_id + action + details.
        """
        # SQLite drops the tzinfo on the way back, so hash the naive form
        ts_str = self.timestamp.replace(tzinfo=None).isoformat()

        data = (
            self.previous_hash +
            ts_str +
            str(self.actor_id) +
            self.action +
            self.details
        )
        return hashlib.sha256(data.encode("utf-8")).hexdigest()

class AuditLogResponse(SQLModel):
    id: int
    timestamp: datetime
    action: str
    details: str
    current_hash: str
