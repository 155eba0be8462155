# models/user.py

from typing import Optional
from pydantic import BaseModel, Field, field_validator

from models.enums import Role


def _compact_phone(v):
    if isinstance(v, str):
        v = "".join(v.split())
        return v or None
    return v


class AccountBase(BaseModel):
    email: str = Field(..., min_length=3, max_length=255, pattern=r"^[^@\s]+@[^@\s]+$")
    password: str = Field(..., min_length=6, max_length=128)
    name: Optional[str] = Field(None, max_length=100)
    surname: Optional[str] = Field(None, max_length=100)
    phone: Optional[str] = Field(None, max_length=30)
    second_phone: Optional[str] = Field(None, max_length=30)
    telegram: Optional[str] = Field(None, max_length=64)
    gender: Optional[str] = None
    citizenship: Optional[str] = None
    city: Optional[str] = None
    passport_number: Optional[str] = Field(None, max_length=50)

    @field_validator("email")
    @classmethod
    def lower_email(cls, v: str) -> str:
        return v.strip().lower()

    @field_validator("phone", "second_phone")
    @classmethod
    def strip_spaces(cls, v):
        return _compact_phone(v)


class UserCreate(AccountBase):
    """Back-office account. Owners may only create managers and clients."""
    name: str = Field(..., min_length=1, max_length=100)
    surname: str = Field(..., min_length=1, max_length=100)
    role: Role = Role.client


class ClientCreate(AccountBase):
    address: Optional[str] = None
    company_id: Optional[int] = None   # admins only

    @field_validator("telegram")
    @classmethod
    def strip_at(cls, v):
        if isinstance(v, str):
            return v.strip().lstrip("@") or None
        return v
