from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from .Offer_model import OfferDiscountType, OfferTarget


class OfferCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=150)
    description: Optional[str] = Field(None, max_length=500)
    discount_type: OfferDiscountType
    discount_value: float = Field(..., gt=0)
    max_discount_amount: Optional[float] = Field(None, gt=0, description="Cap for percentage offers")
    start_date: datetime
    end_date: datetime
    applicable_to: OfferTarget
    target_id: int = Field(..., gt=0)

    @field_validator('name')
    @classmethod
    def strip_name(cls, v):
        if not v.strip():
            raise ValueError('Offer name is required')
        return v.strip()

    @model_validator(mode='after')
    def check_percentage(self):
        if self.discount_type == OfferDiscountType.PERCENTAGE and self.discount_value > 100:
            raise ValueError('Percentage discount must be between 0 and 100')
        return self
