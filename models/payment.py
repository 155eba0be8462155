# models/payment.py

from typing import Optional
from pydantic import BaseModel, Field


class PaymentCreate(BaseModel):
    contract_id: int
    payment_status_id: int
    payment_type_id: Optional[int] = None
    amount: float = Field(..., gt=0)
    payment_method: str = Field(..., min_length=1, max_length=50)
    notes: Optional[str] = None
