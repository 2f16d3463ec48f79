"""
app/models/audit_record.py

Purpose: Deleted-user audit model

- Snapshot of the user as it was when deleted (with its full log)
- The terminal log entry for the deletion
- Kept outside the users collection since the user itself is gone
"""

from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional
import uuid

from app.models.user import User, UserLog


class AuditRecord(BaseModel):
    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    user_id: str
    user: User
    entry: UserLog
    admin_id: Optional[str] = None
    deleted_at: datetime = Field(default_factory=datetime.utcnow)

    def to_document(self) -> dict:
        doc = self.model_dump(mode="python", exclude={"user"})
        doc["audit_id"] = doc.pop("id")
        doc["user"] = self.user.to_document()
        return doc

    @classmethod
    def from_document(cls, doc: dict) -> "AuditRecord":
        data = {k: v for k, v in doc.items() if k != "_id"}
        data["id"] = data.pop("audit_id")
        data["user"] = User.from_document(data["user"])
        return cls(**data)
