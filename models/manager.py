# models/manager.py

from typing import Optional
from pydantic import BaseModel


class ManagerCreate(BaseModel):
    """Link an existing user to a company as manager."""
    user_id: str
    company_id: Optional[int] = None   # admins only
    is_active: bool = True


class ManagerUpdate(BaseModel):
    is_active: Optional[bool] = None
    company_id: Optional[int] = None   # only takes part in the access check
