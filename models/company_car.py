# models/company_car.py

from typing import List, Optional
from datetime import date
from pydantic import BaseModel, Field

from models.enums import CarStatus


class CompanyCarBase(BaseModel):
    template_id: Optional[int] = None
    color_id: Optional[int] = None
    license_plate: str = Field(..., min_length=1, max_length=20)
    vin: Optional[str] = Field(None, max_length=17)
    year: Optional[int] = Field(None, ge=1950, le=2100)
    mileage: Optional[int] = Field(None, ge=0)
    price_per_day: float = Field(..., ge=0)
    deposit: float = Field(0, ge=0)
    min_rental_days: int = Field(1, ge=1)
    status: CarStatus = CarStatus.available
    photos: List[str] = []
    insurance_expiry: Optional[date] = None
    registration_expiry: Optional[date] = None
    description: Optional[str] = None


class CompanyCarCreate(CompanyCarBase):
    """
    company_id is only honoured for admins outside admin-mode;
    everyone else creates in their own (or impersonated) company.
    """
    company_id: Optional[int] = None


class CompanyCarUpdate(BaseModel):
    """
    Update model - all fields optional.
    Cars never move between companies; a company_id in the body only
    takes part in the access check.
    """
    template_id: Optional[int] = None
    color_id: Optional[int] = None
    license_plate: Optional[str] = Field(None, min_length=1, max_length=20)
    vin: Optional[str] = Field(None, max_length=17)
    year: Optional[int] = Field(None, ge=1950, le=2100)
    mileage: Optional[int] = Field(None, ge=0)
    price_per_day: Optional[float] = Field(None, ge=0)
    deposit: Optional[float] = Field(None, ge=0)
    min_rental_days: Optional[int] = Field(None, ge=1)
    status: Optional[CarStatus] = None
    photos: Optional[List[str]] = None
    insurance_expiry: Optional[date] = None
    registration_expiry: Optional[date] = None
    description: Optional[str] = None

    # Honoured for admins only
    company_id: Optional[int] = None
