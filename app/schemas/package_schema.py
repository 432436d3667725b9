"""Pydantic schemas for credit package validation."""

from pydantic import BaseModel, Field


class PackageCreateSchema(BaseModel):
    """Schema for creating a package."""

    name: str = Field(..., min_length=1, max_length=120)
    description: str = Field(default="")
    credits: int = Field(..., gt=0)
    duration_days: int = Field(..., gt=0)
    price: float = Field(default=0, ge=0)
    is_active: bool = Field(default=True)


class PackageUpdateSchema(BaseModel):
    """Partial update of a package."""

    name: str | None = Field(default=None, min_length=1, max_length=120)
    description: str | None = None
    credits: int | None = Field(default=None, gt=0)
    duration_days: int | None = Field(default=None, gt=0)
    price: float | None = Field(default=None, ge=0)
    is_active: bool | None = None
