# models/company.py

from typing import Optional
from pydantic import BaseModel, Field, field_validator
import re


# Company names are shown in the admin panel; Latin only
COMPANY_NAME_PATTERN = re.compile(r"^[a-zA-Z0-9\s\-._]+$")


def _check_company_name(value: Optional[str]) -> Optional[str]:
    if value is None:
        return value
    value = value.strip()
    if not value or not COMPANY_NAME_PATTERN.match(value):
        raise ValueError(
            "Company name must contain only Latin letters, numbers, spaces, hyphens, dots, and underscores"
        )
    return value


class CompanyBase(BaseModel):
    """Base rental company model."""
    name: str = Field(..., max_length=100, description="Company name (required, unique)")
    location_id: Optional[int] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    address: Optional[str] = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        return _check_company_name(v)


class CompanyCreate(CompanyBase):
    """Owners always create for themselves; only admins may set owner_id."""
    owner_id: Optional[str] = None


class CompanyUpdate(BaseModel):
    """Update company model - all fields optional."""
    name: Optional[str] = Field(None, max_length=100)
    location_id: Optional[int] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    address: Optional[str] = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        return _check_company_name(v)
