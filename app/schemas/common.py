# app/schemas/common.py
import math
from typing import Any, Generic, TypeVar

from fastapi.exceptions import RequestValidationError
from pydantic import BaseModel, ValidationError
from sqlmodel import SQLModel, Field

T = TypeVar("T")
M = TypeVar("M", bound=BaseModel)


class Pagination(BaseModel):
    current_page: int
    total_pages: int
    total_items: int
    items_per_page: int

    @classmethod
    def build(cls, page: int, limit: int, total: int) -> "Pagination":
        return cls(
            current_page=page,
            total_pages=math.ceil(total / limit) if limit else 0,
            total_items=total,
            items_per_page=limit,
        )


class Envelope(BaseModel, Generic[T]):
    """
    Standard success response:
        {"success": true, "message": ..., "data": ..., "pagination": ...}
    """

    success: bool = True
    message: str | None = None
    data: T | None = None
    pagination: Pagination | None = None


class PageParams(SQLModel):
    """
    Shared page/limit query parameters.
    Subclassed by each resource's filter model.
    """

    page: int = Field(default=1, ge=1)
    limit: int = Field(default=10, ge=1, le=100)

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


def not_blank(v: str | None) -> str | None:
    """Strip and reject whitespace-only strings (None passes through)."""
    if v is None:
        return v
    v = v.strip()
    if not v:
        raise ValueError("field cannot be empty")
    return v


def form_model(model: type[M], **fields: Any) -> M:
    """
    Validate multipart form fields against a schema.

    Form fields arrive as strings; unset ones are dropped so model
    defaults apply. Errors surface exactly like body validation errors.
    """
    data = {k: v for k, v in fields.items() if v is not None}
    try:
        return model.model_validate(data)
    except ValidationError as e:
        raise RequestValidationError(
            [{**err, "loc": ("body", *err["loc"])} for err in e.errors()]
        )
