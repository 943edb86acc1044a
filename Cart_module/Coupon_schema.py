from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator


class CouponCreate(BaseModel):
    code: str
    discount: float = Field(..., description="Percentage off the subtotal", gt=0, le=100)
    start_date: datetime
    expiry_date: datetime
    minimum_purchase_amount: float = Field(..., ge=0)
    maximum_discount_amount: float = Field(..., ge=0)
    max_uses: Optional[int] = Field(None, gt=0, description="Leave empty for unlimited uses")

    @field_validator('code')
    @classmethod
    def validate_code(cls, v):
        if not v or not v.strip():
            raise ValueError('Coupon code is required')
        return v.strip().upper()


class ApplyCouponRequest(BaseModel):
    coupon_code: str
    subtotal: float = Field(..., ge=0)

    @field_validator('coupon_code')
    @classmethod
    def validate_coupon_code(cls, v):
        if not v or not v.strip():
            raise ValueError('Coupon code is required')
        return v.strip().upper()
