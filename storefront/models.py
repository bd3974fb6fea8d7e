"""Pydantic models for the marketplace backend contract.

Field names mirror the backend JSON (camelCase) so that a struct dumps to
exactly the body the backend reads. Responses are validated on the way in;
request bodies are validated before they are sent.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError, field_validator

from storefront.api.errors import InvalidInputError


class Role(str, Enum):
    BUYER = "BUYER"
    SELLER = "SELLER"


class BookStatus(str, Enum):
    AVAILABLE = "AVAILABLE"
    SOLD_OUT = "SOLD_OUT"


class OrderStatus(str, Enum):
    PENDING = "PENDING"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class User(BaseModel):
    """Authenticated identity as returned by the user service.

    The user service reads and returns ``name``; older clients sent
    ``username``, which is still accepted when parsing.
    """

    model_config = ConfigDict(populate_by_name=True)

    id: int
    name: str = Field(validation_alias=AliasChoices("name", "username"))
    email: Optional[str] = None
    role: Role = Role.BUYER


class Book(BaseModel):
    id: int
    title: str
    author: str = ""
    isbn: str = ""
    price: Optional[float] = None
    quantity: Optional[int] = None
    sellerId: Optional[int] = None
    status: Optional[BookStatus] = None


class Order(BaseModel):
    id: int
    bookId: int
    buyerId: int
    sellerId: Optional[int] = None
    quantity: int
    totalPrice: float
    status: OrderStatus = OrderStatus.PENDING
    orderDate: Optional[datetime] = None


class AuthResponse(BaseModel):
    token: str
    user: User


# --- request bodies ---------------------------------------------------------


class _Request(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    def to_json(self) -> dict[str, Any]:
        return self.model_dump(mode="json", exclude_none=True)


class RegisterRequest(_Request):
    name: str = Field(min_length=1)
    email: str = Field(min_length=1)
    password: str = Field(min_length=1)
    role: Role = Role.BUYER


class LoginRequest(_Request):
    email: str = Field(min_length=1)
    password: str = Field(min_length=1)


class BookPayload(_Request):
    title: str = Field(min_length=1)
    author: str = Field(min_length=1)
    isbn: str = Field(min_length=1)
    price: Optional[float] = Field(default=None, ge=0)
    quantity: Optional[int] = Field(default=None, ge=0)
    sellerId: Optional[int] = None

    @field_validator("price", "quantity", mode="before")
    @classmethod
    def _blank_is_none(cls, v: Any) -> Any:
        if isinstance(v, str) and v.strip() == "":
            return None
        return v


class PurchaseRequest(_Request):
    buyerId: int
    bookId: int
    quantity: int = Field(ge=1)


def parse_request(model: type[_Request], data: dict[str, Any]):
    """Build a request struct from loose form values.

    Raises:
        InvalidInputError when the values do not fit the struct.
    """
    try:
        return model.model_validate(data)
    except ValidationError as e:
        raise InvalidInputError.from_validation(e) from e
