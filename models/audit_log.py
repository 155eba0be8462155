# models/audit_log.py

from typing import Any, Dict, Optional
from pydantic import BaseModel, Field

from models.enums import AuditAction


class AuditLogEntry(BaseModel):
    """One row of audit_logs. Never updated; only the admin bulk clear deletes."""
    user_id: Optional[str] = None
    role: str = "unknown"
    company_id: Optional[int] = None
    entity_type: str = Field(..., description="e.g. company, company_car, booking, user")
    entity_id: str
    action: AuditAction
    before_state: Optional[Dict[str, Any]] = None
    after_state: Optional[Dict[str, Any]] = None
    ip: Optional[str] = None
    user_agent: Optional[str] = None
