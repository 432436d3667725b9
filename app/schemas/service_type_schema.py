"""Pydantic schemas for service type validation."""

from typing import Literal

from pydantic import BaseModel, Field, model_validator


class OptionCostSchema(BaseModel):
    """Credit surcharge for one select/multiselect option."""

    value: str = Field(..., min_length=1)
    credit_cost: float = Field(default=0, ge=0)


class AttributeSchema(BaseModel):
    """One question on a service type's request form."""

    key: str | None = Field(default=None, pattern=r"^[a-z][a-z0-9_]*$")
    question: str = Field(..., min_length=1, max_length=255)
    type: Literal["text", "textarea", "number", "select", "multiselect"]
    required: bool = Field(default=False)
    options: list[str] | None = Field(default=None)
    options_with_cost: list[OptionCostSchema] | None = Field(default=None)
    credit_impact: float | None = Field(default=None, ge=0)
    included_quantity: float | None = Field(default=None, ge=0)
    min: float | None = Field(default=None)
    max: float | None = Field(default=None)

    @model_validator(mode="after")
    def validate_attribute(self) -> "AttributeSchema":
        """Validate cross-field attribute constraints."""
        if self.type in ("select", "multiselect") and not (self.options or self.options_with_cost):
            raise ValueError(f'"{self.question}" needs options or options_with_cost.')

        if self.min is not None and self.max is not None and self.min > self.max:
            raise ValueError(f'"{self.question}": min must not exceed max.')

        return self


class ServiceTypeCreateSchema(BaseModel):
    """Schema for creating a service type."""

    name: str = Field(..., min_length=1, max_length=120)
    description: str = Field(default="")
    credit_cost: int = Field(default=1, ge=0)
    max_free_revisions: int = Field(default=3, ge=0)
    paid_revision_cost: int = Field(default=1, ge=0)
    reset_free_revisions_on_paid: bool = Field(default=True)
    priority_cost_low: int | None = Field(default=None, ge=0)
    priority_cost_medium: int | None = Field(default=None, ge=0)
    priority_cost_high: int | None = Field(default=None, ge=0)
    attributes: list[AttributeSchema] = Field(default_factory=list)
    is_active: bool = Field(default=True)

    @model_validator(mode="after")
    def validate_keys(self) -> "ServiceTypeCreateSchema":
        keys = [a.key for a in self.attributes if a.key]
        if len(keys) != len(set(keys)):
            raise ValueError("Attribute keys must be unique.")
        return self

    def to_record(self) -> dict:
        """Column values, with attributes stored as plain JSON."""
        data = self.model_dump(exclude={"attributes"})
        data["attributes"] = [a.model_dump(exclude_none=True) for a in self.attributes]
        return data


class ServiceTypeUpdateSchema(BaseModel):
    """Partial update; only the fields sent are changed."""

    name: str | None = Field(default=None, min_length=1, max_length=120)
    description: str | None = None
    credit_cost: int | None = Field(default=None, ge=0)
    max_free_revisions: int | None = Field(default=None, ge=0)
    paid_revision_cost: int | None = Field(default=None, ge=0)
    reset_free_revisions_on_paid: bool | None = None
    priority_cost_low: int | None = Field(default=None, ge=0)
    priority_cost_medium: int | None = Field(default=None, ge=0)
    priority_cost_high: int | None = Field(default=None, ge=0)
    attributes: list[AttributeSchema] | None = None
    is_active: bool | None = None

    def to_record(self) -> dict:
        data = self.model_dump(exclude_unset=True, exclude={"attributes"})
        if self.attributes is not None:
            data["attributes"] = [a.model_dump(exclude_none=True) for a in self.attributes]
        return data
