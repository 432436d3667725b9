"""Pydantic schemas for service request validation."""

from typing import Literal

from pydantic import BaseModel, Field, model_validator


class AttributeResponseSchema(BaseModel):
    """A client's answer to one service type question."""

    key: str | None = Field(default=None)
    question: str = Field(..., min_length=1)
    answer: str | list[str] | int | float | None = Field(default=None)


class RequestQuoteSchema(BaseModel):
    """Schema for pricing a request without creating it."""

    service_type_id: int = Field(..., gt=0)
    priority: Literal["low", "medium", "high"] = Field(default="medium")
    attribute_responses: list[AttributeResponseSchema] = Field(default_factory=list)

    def responses(self) -> list[dict]:
        return [r.model_dump(exclude_none=True) for r in self.attribute_responses]


class RequestCreateSchema(RequestQuoteSchema):
    """Schema for creating a service request."""

    title: str = Field(..., min_length=1, max_length=200)
    description: str = Field(default="")


class RevisionRequestSchema(BaseModel):
    """Schema for asking a revision on delivered work.

    The minimum feedback length is configurable and enforced by the service.
    """

    feedback: str = Field(..., max_length=5000)


class StatusUpdateSchema(BaseModel):
    """Schema for a provider status change."""

    status: Literal["IN_PROGRESS", "DELIVERED"]
    message: str | None = Field(default=None, max_length=5000)

    @model_validator(mode="after")
    def strip_message(self) -> "StatusUpdateSchema":
        if self.message is not None:
            self.message = self.message.strip() or None
        return self
