from __future__ import annotations
from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

# Collections are stored snake_case; the API speaks the camelCase the front end sends.


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class BookType(str, Enum):
    INSPIRATION = "inspiration"
    ADVENTURE = "adventure"
    FANTASY = "fantasy"
    SUSPENSE = "suspense"


class Book(CamelModel):
    book_id: str = Field(min_length=1)
    book_name: str
    price: float = Field(ge=0)
    description: Optional[str] = None
    author_name: Optional[str] = None
    quantity: int = 0
    image: Optional[str] = None
    book_type: BookType


class QuantityUpdate(CamelModel):
    quantity: int = Field(ge=0)


class CartItemIn(CamelModel):
    book_id: str
    book_name: str
    price: float = Field(ge=0)
    quantity: int = Field(ge=1, default=1)
    image: Optional[str] = None


class CartItem(CartItemIn):
    id: str
    user_id: str
    added_at: Optional[datetime] = None


class OrderRecord(CamelModel):
    id: str
    user_id: str
    line_id: str
    book_id: str
    book_name: str
    price: float
    quantity: int
    image: Optional[str] = None
    date: datetime


class Registration(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    firstname: str = Field(alias="name", min_length=1)
    lastname: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    age: Optional[int] = Field(default=None, ge=0)
    gender: Optional[str] = None
    address: Optional[str] = Field(default=None, alias="add")
    password: str = Field(alias="psw", min_length=1)


class AdminRegistration(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: str = Field(min_length=1)
    lastname: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    age: Optional[int] = Field(default=None, ge=0)
    gender: Optional[str] = None
    address: Optional[str] = None
    password: str = Field(alias="psw", min_length=1)


class Credentials(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: str
    password: str = Field(alias="psw")


class UserProfile(BaseModel):
    id: str
    firstname: str
    lastname: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    age: Optional[int] = None
    gender: Optional[str] = None
    address: Optional[str] = None


class AdminProfile(BaseModel):
    id: str
    name: str
    lastname: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    age: Optional[int] = None
    gender: Optional[str] = None
    address: Optional[str] = None


class ContactIn(BaseModel):
    name: str
    subject: Optional[str] = None
    description: Optional[str] = None


class ContactMessage(ContactIn):
    id: str
    created_at: Optional[datetime] = None


class MessageOut(BaseModel):
    message: str


class RegisteredOut(MessageOut):
    id: str


class CheckoutOut(MessageOut):
    lines: int
    items: int
    total: float


class SeedResponse(BaseModel):
    inserted: int
