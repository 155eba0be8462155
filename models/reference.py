# models/reference.py

from typing import Optional
from pydantic import BaseModel, Field, field_validator
import re


LATIN_NAME_PATTERN = re.compile(r"^[a-zA-Z0-9\s\-._]+$")


class LocationCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)

    @field_validator("name")
    @classmethod
    def latin_only(cls, v: str) -> str:
        v = v.strip()
        if not v or not LATIN_NAME_PATTERN.match(v):
            raise ValueError(
                "Must contain only Latin letters, numbers, spaces, hyphens, dots, and underscores"
            )
        return v


class HotelCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    location_id: int
    district_id: Optional[int] = None
