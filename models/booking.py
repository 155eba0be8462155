# models/booking.py

from typing import Optional
from datetime import date
from pydantic import BaseModel, model_validator


class BookingCreate(BaseModel):
    """
    Clients always book for themselves; staff must name the client.
    The total is computed from the car's daily price, never taken from the body.
    """
    company_car_id: int
    client_id: Optional[str] = None
    start_date: date
    end_date: date
    notes: Optional[str] = None

    @model_validator(mode="after")
    def check_dates(self):
        if self.end_date <= self.start_date:
            raise ValueError("end_date must be after start_date")
        return self

    @property
    def days(self) -> int:
        return (self.end_date - self.start_date).days
