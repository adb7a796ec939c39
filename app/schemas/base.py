"""Base schemas for the application."""

from datetime import datetime
from enum import Enum
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, field_validator
from pydantic.alias_generators import to_camel


class BaseSchema(BaseModel):
    """Base schema class with common configuration."""

    model_config = ConfigDict(from_attributes=True)


class CamelSchema(BaseSchema):
    """Accepts and emits camelCase keys (``chatId``) while Python code uses snake_case."""

    model_config = ConfigDict(from_attributes=True, alias_generator=to_camel, populate_by_name=True)

    @field_validator("*", mode="before")
    @classmethod
    def unwrap_enums(cls, v):
        # ORM enum columns come back as Enum members
        return v.value if isinstance(v, Enum) else v

    def to_response(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class BaseModelSchema(CamelSchema):
    """Base schema for database models."""

    id: UUID
    created_at: datetime
    updated_at: datetime


class ResponseSchema(BaseSchema):
    """Standard API response schema."""

    success: bool = True
    status: str = "success"
    message: str | None = None
    data: Any | None = None
