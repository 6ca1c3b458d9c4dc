"""Pydantic schemas for the user and order registries."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class Record(BaseModel):
    """Stored entity. The id is assigned by the store and never changes."""

    model_config = ConfigDict(frozen=True)

    id: int = Field(..., ge=1, examples=[1])


class UserCreate(BaseModel):
    """User create request. A client-supplied id is ignored."""

    model_config = ConfigDict(strict=True)

    name: str = Field(..., examples=["Ana"])


class User(Record):
    name: str = Field(..., examples=["Ana"])


class OrderCreate(BaseModel):
    """Order create request. user_id must name an existing user."""

    model_config = ConfigDict(strict=True)

    user_id: int = Field(..., examples=[1])
    product_name: str = Field(..., examples=["Pen"])


class Order(Record):
    user_id: int = Field(..., examples=[1])
    product_name: str = Field(..., examples=["Pen"])


class UserExists(BaseModel):
    """Answer of the existence probe used by the remote oracle."""

    user_id: int = Field(..., examples=[1])
    exists: bool = Field(..., examples=[True])


class Failure(BaseModel):
    status: str = Field(default="FAIL", examples=["FAIL"])
    fail_reason: str = Field(..., examples=["User not found"])
    errors: list[dict[str, Any]] | None = Field(None, description="Request validation details")
