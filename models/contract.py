# models/contract.py

from typing import List, Optional
from datetime import date
from pydantic import BaseModel, Field, model_validator

from models.enums import ContractStatus


class ContractCreate(BaseModel):
    booking_id: Optional[int] = None
    client_id: str
    company_car_id: int
    manager_id: Optional[str] = None
    start_date: date
    end_date: date
    total_amount: float = Field(..., ge=0)
    deposit_amount: float = Field(0, ge=0)
    notes: Optional[str] = None
    photos: List[str] = []

    @model_validator(mode="after")
    def check_dates(self):
        if self.end_date < self.start_date:
            raise ValueError("end_date must be on or after start_date")
        return self


class ContractUpdate(BaseModel):
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    total_amount: Optional[float] = Field(None, ge=0)
    deposit_amount: Optional[float] = Field(None, ge=0)
    status: Optional[ContractStatus] = None
    notes: Optional[str] = None
    photos: Optional[List[str]] = None


class ClosingFee(BaseModel):
    """
    A charge raised when the car comes back. Without a payment_type_id
    the fee is filed under the catch-all "Other" payment type and
    custom_name is kept in the notes.
    """
    payment_type_id: Optional[int] = None
    custom_name: Optional[str] = Field(None, max_length=100)
    amount: float = Field(..., gt=0)
    notes: Optional[str] = None


class ContractClose(BaseModel):
    fees: List[ClosingFee] = []
