from __future__ import annotations

from datetime import datetime
from typing import List

from sqlalchemy import DateTime, Float, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from marketplace.db import Base, utcnow


class AccountMixin:
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    email: Mapped[str] = mapped_column(String(255), unique=True, index=True, nullable=False)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.email}>"


class User(AccountMixin, Base):
    """Administrative account."""

    __tablename__ = "users"


class Customer(AccountMixin, Base):
    __tablename__ = "customers"


class Seller(AccountMixin, Base):
    __tablename__ = "sellers"

    products: Mapped[List["Product"]] = relationship(back_populates="seller", cascade="all, delete-orphan")


class Product(Base):
    __tablename__ = "products"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    seller_id: Mapped[int] = mapped_column(ForeignKey("sellers.id"), index=True, nullable=False)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    price: Mapped[float] = mapped_column(Float, nullable=False)
    stock: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    seller: Mapped[Seller] = relationship(back_populates="products")


class LoginAttempt(Base):
    """Failed-login ledger row, one per (account kind, email)."""

    __tablename__ = "login_attempts"
    __table_args__ = (UniqueConstraint("kind", "email", name="uq_login_attempts_kind_email"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    kind: Mapped[str] = mapped_column(String(16), nullable=False)
    email: Mapped[str] = mapped_column(String(255), index=True, nullable=False)
    attempt_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    last_attempt_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)

    def __repr__(self) -> str:
        return f"<LoginAttempt {self.kind}:{self.email} count={self.attempt_count}>"


__all__ = ["AccountMixin", "Customer", "LoginAttempt", "Product", "Seller", "User"]
