from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime, timezone
import uuid
from enum import Enum

class AuditStatus(str, Enum):
    SUCCESS = "SUCCESS"
    FAILURE = "FAILURE"

class AuditLogEntry(BaseModel):
    event_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    action_type: str
    actor: str = "system"
    status: AuditStatus
    # Request-level events (AuditMiddleware)
    endpoint: Optional[str] = None
    method: Optional[str] = None
    input_hash: Optional[str] = None
    output_hash: Optional[str] = None
    # Entity-level events (e.g. invoice renumbering)
    entity_id: Optional[str] = None
    old_value: Optional[str] = None
    new_value: Optional[str] = None
