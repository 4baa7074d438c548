from datetime import datetime
from enum import Enum
from typing import Any, Dict, Generic, List, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, EmailStr, Field, model_validator
from pydantic.alias_generators import to_camel

T = TypeVar("T")


class CamelModel(BaseModel):
    """Stored documents use snake_case, the wire format uses camelCase."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Role(str, Enum):
    USER = "user"
    ADMIN = "admin"


class OrderStatus(str, Enum):
    ACTIVE = "active"
    RETURNED = "returned"
    CANCELED = "canceled"
    BOOK_DELETED = "book_deleted"


class ActivityType(str, Enum):
    USER_REGISTERED = "USER_REGISTERED"
    USER_LOGIN = "USER_LOGIN"
    USER_CREATED = "USER_CREATED"
    USER_UPDATED = "USER_UPDATED"
    USER_DELETED = "USER_DELETED"
    BOOK_CREATED = "BOOK_CREATED"
    BOOK_UPDATED = "BOOK_UPDATED"
    BOOK_DELETED = "BOOK_DELETED"
    BOOK_RENTED = "BOOK_RENTED"
    BOOK_RETURNED = "BOOK_RETURNED"
    ORDER_CREATED = "ORDER_CREATED"
    ORDER_RETURNED = "ORDER_RETURNED"


# ---------- Envelope ----------
class DataResponse(BaseModel, Generic[T]):
    data: T


class Page(CamelModel, Generic[T]):
    items: List[T]
    total: int
    page: int
    page_size: int


# ---------- Auth / Users ----------
class UserBase(CamelModel):
    name: str = Field(..., min_length=2)
    email: EmailStr


class UserRegister(UserBase):
    password: str = Field(..., min_length=6)


class UserCreate(UserRegister):
    role: Role = Role.USER


class UserUpdate(CamelModel):
    name: Optional[str] = Field(None, min_length=2)
    email: Optional[EmailStr] = None
    password: Optional[str] = Field(None, min_length=6)
    role: Optional[Role] = None
    favorites: Optional[List[str]] = None

    @model_validator(mode="after")
    def at_least_one_field(self):
        if not self.model_fields_set:
            raise ValueError("At least one field must be provided")
        return self


class UserResponse(CamelModel):
    id: str
    name: str
    email: str
    role: Role
    favorites: List[str] = []
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class AuthResponse(UserResponse):
    token: str


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"


# ---------- Books ----------
class BookCreate(CamelModel):
    title: str = Field(..., min_length=1)
    author: str = Field(..., min_length=1)
    year: Optional[str] = None
    image: Optional[str] = None
    description: Optional[str] = None


class BookUpdate(CamelModel):
    title: Optional[str] = Field(None, min_length=1)
    author: Optional[str] = Field(None, min_length=1)
    year: Optional[str] = None
    image: Optional[str] = None
    description: Optional[str] = None
    rented_by: Optional[str] = None

    @model_validator(mode="after")
    def at_least_one_field(self):
        if not self.model_fields_set:
            raise ValueError("At least one field must be provided")
        return self


class BookResponse(CamelModel):
    id: str
    title: str
    author: str
    year: Optional[str] = None
    image: Optional[str] = None
    description: Optional[str] = None
    rented_by: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


# ---------- Orders ----------
class BookSnapshot(CamelModel):
    """Frozen copy of a book's display fields, owned by a single order."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    id: Optional[str] = None
    title: Optional[str] = None
    author: Optional[str] = None
    year: Optional[str] = None
    image: Optional[str] = None


class OrderCreate(CamelModel):
    book_id: str = Field(..., min_length=1)


class OrderResponse(CamelModel):
    id: str
    user_id: str
    book_id: Optional[str] = None
    book_snapshot: Optional[BookSnapshot] = None
    status: OrderStatus = OrderStatus.ACTIVE
    rented_at: datetime
    returned_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    display_book: Optional[BookSnapshot] = None
    is_active: bool = False


# ---------- Activity ----------
class ActivityResponse(CamelModel):
    id: str
    type: str
    user_id: Optional[str] = None
    meta: Dict[str, Any] = {}
    created_at: Optional[datetime] = None
