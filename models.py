"""
Database tables for the store.

Each class is one table. References between tables (an order's user and
products, a payment's order) are plain integer columns: they are checked by
the request handlers before writing, not by foreign keys.
"""

from datetime import datetime, timezone

from sqlalchemy import JSON, Column, DateTime, Float, Integer, String

from database import Base


def utcnow():
    return datetime.now(timezone.utc)


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    # uniqueness is checked before writes, there is no unique index
    email = Column(String, nullable=False, index=True)
    address = Column(String)
    registration_date = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    role = Column(String, nullable=False)  # admin | client


class Product(Base):
    __tablename__ = "products"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    description = Column(String, nullable=False)
    price = Column(Float, nullable=False)
    category = Column(String, nullable=False)
    quantity = Column(Integer, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)


class Order(Base):
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, nullable=False, index=True)
    product_ids = Column(JSON, nullable=False, default=list)
    total_price = Column(Float, nullable=False)
    status = Column(String, nullable=False, index=True)  # new, processing, ...
    order_date = Column(DateTime(timezone=True), default=utcnow, nullable=False)


class Payment(Base):
    __tablename__ = "payments"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, nullable=False, index=True)
    order_id = Column(Integer, nullable=False, index=True)
    amount = Column(Float, nullable=False)
    payment_status = Column(String)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
