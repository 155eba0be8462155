from typing import Optional

from pydantic import BaseModel, model_validator

from models.enums import Role, COMPANY_ROLES


# -----------------------------------------------------
# CURRENT USER (row from public.users)
# -----------------------------------------------------
class CurrentUser(BaseModel):
    id: str                   # Supabase Auth UID, also users.id
    email: str
    role: Role
    name: Optional[str] = None
    surname: Optional[str] = None


# -----------------------------------------------------
# SCOPE (derived per request, never stored)
# -----------------------------------------------------
class Scope(BaseModel):
    """
    What a caller may act on.

    Only owners and managers carry a company id. An owner or manager
    without a company row resolves to company_id=None (unbound) and is
    stopped by core.scope before touching company data.
    """
    role: Role
    company_id: Optional[int] = None

    @model_validator(mode="after")
    def _company_only_for_company_roles(self):
        if self.company_id is not None and self.role not in COMPANY_ROLES:
            raise ValueError(f"{self.role} scope cannot carry a company_id")
        return self

    @property
    def is_admin(self) -> bool:
        return self.role == Role.admin


# -----------------------------------------------------
# AUTH CONTEXT (passed explicitly through every call)
# -----------------------------------------------------
class AuthContext(BaseModel):
    user: CurrentUser
    scope: Scope

    # Set only for admins in admin-mode (?admin_mode=true&company_id=N)
    admin_company_id: Optional[int] = None

    ip: str = "unknown"
    user_agent: str = "unknown"

    @property
    def is_admin_mode(self) -> bool:
        return self.admin_company_id is not None


# -----------------------------------------------------
# AUTH PAYLOADS
# -----------------------------------------------------
class FailedLoginRequest(BaseModel):
    email: Optional[str] = None
    error: Optional[str] = None


class EnterCompanyRequest(BaseModel):
    companyId: int


class MeResponse(BaseModel):
    user: CurrentUser
    scope: Scope
    admin_company_id: Optional[int] = None
