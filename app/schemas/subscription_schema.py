"""Pydantic schemas for subscription and credit validation."""

from pydantic import BaseModel, Field


class SubscribeSchema(BaseModel):
    """Schema for subscribing to a package."""

    package_id: int = Field(..., gt=0)


class CreditGrantSchema(BaseModel):
    """Schema for an admin credit grant (refund, bonus, approved payment)."""

    user_id: int = Field(..., gt=0)
    amount: int = Field(..., gt=0)
    reason: str = Field(default="Admin credit grant", max_length=255)
