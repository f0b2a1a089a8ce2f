from typing import List

from pydantic import BaseModel, ConfigDict, EmailStr, Field


class Account(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    email: EmailStr


class ProductPayload(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    price: float = Field(ge=0)
    stock: int = Field(ge=0)


class Product(BaseModel):
    id: int
    seller_email: EmailStr
    name: str
    price: float
    stock: int


class SessionInfo(BaseModel):
    email: EmailStr
    account_id: int
    kind: str


class AccountPage(BaseModel):
    page_number: int
    page_size: int
    count: int
    total_page: int
    has_previous_page: bool
    has_next_page: bool
    data: List[Account]
